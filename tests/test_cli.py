"""Tests for the command-line interface."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from wastescan.cli import _parse_stream, main
from wastescan.vision import AnalysisResult, ClassificationResult, SuggestedStream


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.setattr("wastescan.cli.load_dotenv", lambda: None)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    path = tmp_path / "config.toml"
    path.write_text(
        f"""\
[storage]
backend = "sqlite"
path = "{tmp_path / 'ws.db'}"

[report]
output_dir = "{tmp_path / 'reports'}"
"""
    )
    return str(path)


def _run(config_path, *args):
    main(["--config", config_path, *args])


def _new_scan(config_path, capsys, *args) -> str:
    _run(config_path, "new", *args)
    out = capsys.readouterr().out
    return out.strip().rsplit(" ", 1)[-1]


def test_parse_stream():
    assert _parse_stream("Plastics (hard)=3.5") == ("Plastics (hard)", "3.5")
    assert _parse_stream("Glass") == ("Glass", "0")


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1


def test_presets(config_path, capsys):
    _run(config_path, "presets")
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Cardboard"
    assert "Bio/Food" in lines


def test_new_list_show(config_path, capsys):
    scan_id = _new_scan(
        config_path, capsys,
        "--total", "100", "--location", "Depot",
        "--stream", "Cardboard=30", "--stream", "Plastics (hard)=20",
    )

    _run(config_path, "list")
    out = capsys.readouterr().out
    assert scan_id in out
    assert "Depot" in out
    assert "100.0 kg" in out
    assert "50.0%" in out

    _run(config_path, "show", scan_id, "--json")
    data = json.loads(capsys.readouterr().out)
    assert data["totalResidualKg"] == 100
    assert [s["name"] for s in data["streams"]] == ["Cardboard", "Plastics (hard)"]
    assert data["summary"]["separationPercent"] == 50.0


def test_list_empty(config_path, capsys):
    _run(config_path, "list")
    assert "No scans yet" in capsys.readouterr().out


def test_new_requires_total(config_path, capsys):
    with pytest.raises(SystemExit) as exc_info:
        _run(config_path, "new", "--location", "Depot")
    assert exc_info.value.code == 1
    assert "total residual waste weight" in capsys.readouterr().err


def test_edit_and_show_warning(config_path, capsys):
    scan_id = _new_scan(config_path, capsys, "--total", "100", "--stream", "Glass=60")
    _run(config_path, "edit", scan_id, "--stream", "Glass=60", "--stream", "Metal=50")
    capsys.readouterr()

    _run(config_path, "show", scan_id)
    out = capsys.readouterr().out
    assert "110.0 kg" in out
    assert "exceeds total residual weight" in out


def test_edit_clear_streams(config_path, capsys):
    scan_id = _new_scan(config_path, capsys, "--total", "10", "--stream", "Glass=6")
    _run(config_path, "edit", scan_id, "--clear-streams", "--notes", "emptied")
    capsys.readouterr()
    _run(config_path, "show", scan_id, "--json")
    data = json.loads(capsys.readouterr().out)
    assert data["streams"] == []
    assert data["notes"] == "emptied"


def test_delete(config_path, capsys):
    scan_id = _new_scan(config_path, capsys, "--total", "5")
    _run(config_path, "delete", scan_id)
    assert "deleted" in capsys.readouterr().out
    with pytest.raises(SystemExit):
        _run(config_path, "delete", scan_id)


def test_report_default_html(config_path, capsys, tmp_path):
    scan_id = _new_scan(config_path, capsys, "--total", "20", "--stream", "Wood=5")
    _run(config_path, "report", scan_id)
    assert "Report saved" in capsys.readouterr().out
    reports = list((tmp_path / "reports").glob("waste-scan-report-*.html"))
    assert len(reports) == 1
    assert "25.0%" in reports[0].read_text(encoding="utf-8")


def test_report_explicit_html(config_path, capsys, tmp_path):
    scan_id = _new_scan(config_path, capsys, "--total", "20")
    out = tmp_path / "mine.html"
    _run(config_path, "report", scan_id, "--html", str(out))
    assert out.exists()


def test_settings(config_path, capsys):
    _run(config_path, "settings", "show")
    assert "not set" in capsys.readouterr().out
    _run(config_path, "settings", "set-key", "AIza-123")
    _run(config_path, "settings", "show")
    assert "configured" in capsys.readouterr().out
    _run(config_path, "settings", "clear-key")
    _run(config_path, "settings", "show")
    assert "not set" in capsys.readouterr().out


def test_settings_set_key_verify_rejected(config_path, capsys):
    with patch("wastescan.vision.gemini.verify_api_key", return_value=False):
        with pytest.raises(SystemExit):
            _run(config_path, "settings", "set-key", "bad", "--verify")
    _run(config_path, "settings", "show")
    assert "not set" in capsys.readouterr().out


def test_analyze_applies_and_saves(config_path, capsys, tmp_path):
    image = tmp_path / "bin.jpg"
    image.write_bytes(b"\xff\xd8jpeg")
    scan_id = _new_scan(config_path, capsys, "--total", "10", "--photo", str(image))
    _run(config_path, "settings", "set-key", "stored-key")
    capsys.readouterr()

    backend = MagicMock()
    backend.analyze_waste = AsyncMock(
        return_value=AnalysisResult(
            streams=[SuggestedStream("Cardboard", 4)],
            total_estimate_kg=16,
            confidence="high",
        )
    )
    with patch("wastescan.cli.create_backend", return_value=backend) as factory:
        _run(config_path, "analyze", scan_id)

    assert factory.call_args.kwargs["gemini_api_key"] == "stored-key"
    out = capsys.readouterr().out
    assert "high confidence" in out
    assert "25.0%" in out

    _run(config_path, "show", scan_id, "--json")
    data = json.loads(capsys.readouterr().out)
    assert data["totalResidualKg"] == 16
    assert data["streams"][0]["name"] == "Cardboard"


def test_analyze_without_photo(config_path, capsys):
    scan_id = _new_scan(config_path, capsys, "--total", "10")
    with pytest.raises(SystemExit):
        _run(config_path, "analyze", scan_id)
    assert "add a photo" in capsys.readouterr().err


def test_classify(config_path, capsys, tmp_path):
    image = tmp_path / "cup.png"
    image.write_bytes(b"\x89PNG")
    backend = MagicMock()
    backend.classify_waste = AsyncMock(
        return_value=ClassificationResult(markdown="**Bin:** Yellow bin")
    )
    with patch("wastescan.cli.create_backend", return_value=backend):
        _run(config_path, "classify", "--photo", str(image), "--location", "Berlin")
    assert "**Bin:** Yellow bin" in capsys.readouterr().out
    assert backend.classify_waste.call_args.args[1] == "Berlin"
