"""Tests for stored collection schema migrations."""

import pytest

from wastescan.db.migrations import (
    CURRENT_SCHEMA_VERSION,
    document_version,
    empty_document,
    migrate,
)
from wastescan.errors import MalformedStoredDataError


def _v0_doc():
    return {
        "scans": [
            {
                "id": "a",
                "createdAt": "2025-01-01T00:00:00+00:00",
                "totalResidualKg": "12",
                "photo": "data:image/png;base64,AA==",
                "streams": [{"id": "e1", "name": "Glass", "weightKg": -1}],
            },
            {"totalResidualKg": 5},
        ]
    }


class TestMigrate:
    def test_untagged_counts_as_v0(self):
        assert document_version({"scans": []}) == 0

    def test_v0_to_current(self):
        doc = migrate(_v0_doc())
        assert doc["schemaVersion"] == CURRENT_SCHEMA_VERSION
        assert [s["id"] for s in doc["scans"]] == ["a"]
        scan = doc["scans"][0]
        assert scan["updatedAt"] == scan["createdAt"]
        assert scan["totalResidualKg"] == 12.0
        assert scan["photo"] == {"dataUrl": "data:image/png;base64,AA==", "mime": "image/png"}
        assert scan["streams"][0]["weightKg"] == 0.0

    def test_bare_list(self):
        doc = migrate([{"id": "a", "createdAt": "2025-01-01T00:00:00+00:00"}])
        assert doc["schemaVersion"] == CURRENT_SCHEMA_VERSION
        assert doc["scans"][0]["id"] == "a"

    def test_input_not_modified(self):
        original = _v0_doc()
        migrate(original)
        assert "schemaVersion" not in original
        assert original["scans"][0]["totalResidualKg"] == "12"

    def test_current_version_is_fixed_point(self):
        doc = migrate(_v0_doc())
        assert migrate(doc) == doc

    def test_empty_document(self):
        assert migrate(empty_document()) == empty_document()

    def test_custom_steps_run_in_order(self):
        calls = []

        def step(n):
            def run(doc):
                calls.append(n)
                return {**doc, f"v{n + 1}": True}
            return run

        doc = migrate({"scans": []}, steps={0: step(0), 1: step(1), 2: step(2)}, target=3)
        assert calls == [0, 1, 2]
        assert doc["schemaVersion"] == 3
        assert doc["v3"] is True

    def test_missing_step(self):
        with pytest.raises(MalformedStoredDataError, match="No migration"):
            migrate({"scans": []}, steps={}, target=1)

    def test_newer_version_left_alone(self):
        doc = {"schemaVersion": CURRENT_SCHEMA_VERSION + 1, "scans": [], "extra": 1}
        assert migrate(doc) == doc

    def test_not_an_object(self):
        with pytest.raises(MalformedStoredDataError):
            migrate("scans")

    def test_missing_scans_array(self):
        with pytest.raises(MalformedStoredDataError, match="no scans array"):
            migrate({"schemaVersion": CURRENT_SCHEMA_VERSION, "scans": {}})

    def test_bad_version_tag(self):
        with pytest.raises(MalformedStoredDataError, match="schemaVersion"):
            migrate({"schemaVersion": "one", "scans": []})
