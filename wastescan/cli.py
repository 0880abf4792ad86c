"""CLI entry point for the waste scan tool."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv

from .camera import ScanCamera, load_photo
from .config import WasteScanConfig, load_config
from .db import ScanRepository, SettingsStore, create_store
from .editor import EditorSession
from .errors import PersistenceError, WasteScanError
from .metrics import format_kg, format_percent, summarize
from .models import STREAM_PRESETS, Scan
from .report import export_html, export_pdf, format_date, format_datetime, report_filename
from .vision import create_backend, require_photo


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="wastescan",
        description="Waste Scan: record waste streams per container and share a report",
    )
    parser.add_argument(
        "--config", "-c", type=str, default=None, help="Path to a TOML config file"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    list_parser = sub.add_parser("list", help="List scans, most recent first")
    list_parser.add_argument("--json", action="store_true", help="Output JSON")

    show_parser = sub.add_parser("show", help="Show one scan with its summary")
    show_parser.add_argument("scan_id")
    show_parser.add_argument("--json", action="store_true", help="Output JSON")

    new_parser = sub.add_parser("new", help="Record a new scan")
    _add_scan_fields(new_parser)

    edit_parser = sub.add_parser("edit", help="Edit a stored scan")
    edit_parser.add_argument("scan_id")
    _add_scan_fields(edit_parser)
    edit_parser.add_argument(
        "--remove-photo", action="store_true", help="Remove the photo"
    )
    edit_parser.add_argument(
        "--clear-streams", action="store_true", help="Remove all streams"
    )

    delete_parser = sub.add_parser("delete", help="Delete a scan")
    delete_parser.add_argument("scan_id")

    report_parser = sub.add_parser("report", help="Export or print a scan report")
    report_parser.add_argument("scan_id")
    report_parser.add_argument(
        "--html", type=str, nargs="?", const="", default=None, metavar="FILE",
        help="Write an HTML report (default name when FILE is omitted)",
    )
    report_parser.add_argument(
        "--pdf", type=str, default=None, metavar="FILE", help="Write a PDF report"
    )
    report_parser.add_argument(
        "--print", action="store_true", dest="do_print",
        help="Print on the default printer",
    )
    report_parser.add_argument(
        "--printer", type=str, default=None, help="Print on the named printer"
    )

    analyze_parser = sub.add_parser(
        "analyze", help="Suggest streams and weights for a scan's photo with AI"
    )
    analyze_parser.add_argument("scan_id")
    analyze_parser.add_argument(
        "--dry-run", action="store_true", help="Show the suggestion without saving"
    )

    classify_parser = sub.add_parser(
        "classify", help="Ask which bin a piece of waste belongs in"
    )
    classify_parser.add_argument("--photo", type=str, help="Image file to classify")
    classify_parser.add_argument(
        "--camera", action="store_true", help="Take the photo with the camera"
    )
    classify_parser.add_argument(
        "--location", type=str, required=True, help="Town or region"
    )

    settings_parser = sub.add_parser("settings", help="Manage the stored API key")
    settings_sub = settings_parser.add_subparsers(dest="settings_command")
    settings_sub.add_parser("show", help="Show whether an API key is stored")
    set_key_parser = settings_sub.add_parser("set-key", help="Store the Gemini API key")
    set_key_parser.add_argument("api_key")
    set_key_parser.add_argument(
        "--verify", action="store_true", help="Check the key with Gemini first"
    )
    settings_sub.add_parser("clear-key", help="Remove the stored API key")

    sub.add_parser("presets", help="List the preset waste stream names")
    sub.add_parser("cameras", help="List available cameras")
    sub.add_parser("printers", help="List available printers")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    config = load_config(args.config)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    match args.command:
        case "presets":
            for name in STREAM_PRESETS:
                print(name)
            return
        case "cameras":
            _cmd_cameras()
            return
        case "printers":
            _cmd_printers()
            return

    store = create_store(config.storage)
    repo = ScanRepository(store)
    settings = SettingsStore(store)
    try:
        match args.command:
            case "list":
                _cmd_list(repo, args)
            case "show":
                _cmd_show(repo, args)
            case "new":
                _cmd_new(repo, config, args)
            case "edit":
                _cmd_edit(repo, config, args)
            case "delete":
                _cmd_delete(repo, args)
            case "report":
                _cmd_report(repo, config, args)
            case "analyze":
                asyncio.run(_cmd_analyze(repo, settings, config, args))
            case "classify":
                asyncio.run(_cmd_classify(settings, config, args))
            case "settings":
                _cmd_settings(settings, args)
    except PersistenceError as e:
        print(f"Warning: your change was not saved durably: {e}", file=sys.stderr)
        sys.exit(1)
    except WasteScanError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        store.close()


def _add_scan_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--total", type=str, help="Total residual weight in kg")
    parser.add_argument("--location", type=str, help="Location of the container")
    parser.add_argument("--notes", type=str, help="Free-text notes")
    parser.add_argument("--photo", type=str, help="Image file to attach")
    parser.add_argument(
        "--camera", action="store_true", help="Take the photo with the camera"
    )
    parser.add_argument(
        "--stream", action="append", default=[], metavar="NAME=KG",
        help="Waste stream and weight, repeatable (replaces existing streams)",
    )


def _parse_stream(spec: str) -> tuple[str, str]:
    name, sep, weight = spec.rpartition("=")
    if not sep:
        return spec.strip(), "0"
    return name.strip(), weight


def _apply_fields(session: EditorSession, config: WasteScanConfig, args) -> None:
    if args.total is not None:
        session.set_total(args.total)
    if args.location is not None:
        session.set_location(args.location)
    if args.notes is not None:
        session.set_notes(args.notes)
    if args.photo:
        session.set_photo(load_photo(args.photo))
    elif args.camera:
        camera = ScanCamera(config.camera.index, config.camera.save_dir)
        print("Capturing photo...")
        session.set_photo(camera.capture_photo())
    if args.stream:
        for index in reversed(range(len(session.scan.streams))):
            session.remove_stream(index)
        for spec in args.stream:
            name, weight = _parse_stream(spec)
            session.add_stream(name, weight)


def _print_scan(scan: Scan) -> None:
    summary = summarize(scan)
    print(f"Scan {scan.id}")
    print(f"  Date:      {format_datetime(scan.created_at)}")
    print(f"  Updated:   {format_datetime(scan.updated_at)}")
    if scan.location:
        print(f"  Location:  {scan.location}")
    print(f"  Photo:     {'yes' if scan.photo else 'no'}")
    print()
    print(f"  Total residual:       {format_kg(summary.total_kg)}")
    print(f"  Extractable:          {format_kg(summary.extracted_kg)}")
    print(f"  Separation potential: {format_percent(summary.separation_pct)}")
    print(f"  Remaining residual:   {format_kg(summary.remaining_kg)}")
    if summary.over_extracted:
        print(
            f"  Warning: Extracted weight ({format_kg(summary.extracted_kg)}) "
            "exceeds total residual weight."
        )
    print()
    if summary.shares:
        print("  Streams:")
        for share in summary.shares:
            print(
                f"    {share.name:<18} {format_kg(share.weight_kg):>10} "
                f"({format_percent(share.share_pct)})"
            )
    else:
        print("  No waste streams recorded")
    if scan.notes:
        print()
        print(f"  Notes: {scan.notes}")


def _cmd_list(repo: ScanRepository, args) -> None:
    scans = repo.list()
    if args.json:
        data = [
            {
                **s.to_dict(),
                "photo": bool(s.photo),
                "separationPercent": summarize(s).separation_pct,
            }
            for s in scans
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return
    if not scans:
        print("No scans yet. Create one with 'wastescan new --total KG'.")
        return
    for scan in scans:
        summary = summarize(scan)
        print(
            f"{scan.id}  {format_date(scan.created_at):<12} "
            f"{(scan.location or '-'):<24} {format_kg(summary.total_kg):>10}  "
            f"{format_percent(summary.separation_pct):>6} separated"
        )


def _cmd_show(repo: ScanRepository, args) -> None:
    scan = repo.get(args.scan_id)
    if scan is None:
        print(f"Scan not found: {args.scan_id}", file=sys.stderr)
        sys.exit(1)
    if args.json:
        data = scan.to_dict()
        summary = summarize(scan)
        data["summary"] = {
            "extractedKg": summary.extracted_kg,
            "remainingKg": summary.remaining_kg,
            "separationPercent": summary.separation_pct,
            "overExtracted": summary.over_extracted,
        }
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return
    _print_scan(scan)


def _cmd_new(repo: ScanRepository, config: WasteScanConfig, args) -> None:
    session = EditorSession.new(repo)
    _apply_fields(session, config, args)
    saved = session.save()
    print(f"Scan saved: {saved.id}")


def _cmd_edit(repo: ScanRepository, config: WasteScanConfig, args) -> None:
    session = EditorSession.open(repo, args.scan_id)
    if session is None:
        print(f"Scan not found: {args.scan_id}", file=sys.stderr)
        sys.exit(1)
    if args.clear_streams:
        for index in reversed(range(len(session.scan.streams))):
            session.remove_stream(index)
    if args.remove_photo:
        session.set_photo(None)
    _apply_fields(session, config, args)
    saved = session.save()
    print(f"Scan saved: {saved.id}")


def _cmd_delete(repo: ScanRepository, args) -> None:
    if not repo.delete(args.scan_id):
        print(f"Scan not found: {args.scan_id}", file=sys.stderr)
        sys.exit(1)
    print(f"Scan deleted: {args.scan_id}")


def _cmd_report(repo: ScanRepository, config: WasteScanConfig, args) -> None:
    scan = repo.get(args.scan_id)
    if scan is None:
        print(f"Scan not found: {args.scan_id}", file=sys.stderr)
        sys.exit(1)

    now = datetime.now(timezone.utc)
    wants_html = args.html is not None or not (args.pdf or args.do_print or args.printer)
    if wants_html:
        html_path = (
            Path(args.html)
            if args.html
            else Path(config.report.output_dir) / report_filename(now)
        )
        export_html(scan, html_path, generated_at=now)
        print(f"Report saved: {html_path}")

    if args.pdf:
        try:
            export_pdf(scan, args.pdf, generated_at=now)
        except ImportError as e:
            print(f"PDF error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"PDF saved: {args.pdf}")

    if args.do_print or args.printer:
        from .printer import Printer

        printer_name = args.printer or config.printer.printer_name or None
        try:
            Printer.print_report(scan, printer_name=printer_name)
        except (ImportError, RuntimeError, FileNotFoundError) as e:
            print(f"Print error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Print job sent: {printer_name or 'default printer'}")


async def _cmd_analyze(
    repo: ScanRepository, settings: SettingsStore, config: WasteScanConfig, args
) -> None:
    session = EditorSession.open(repo, args.scan_id)
    if session is None:
        print(f"Scan not found: {args.scan_id}", file=sys.stderr)
        sys.exit(1)

    backend = create_backend(config, gemini_api_key=settings.get())
    print("Analyzing photo...")
    result = await session.analyze(backend)

    message = "AI analysis complete"
    if result.confidence:
        message += f" ({result.confidence} confidence)"
    print(message)
    if args.dry_run:
        _print_scan(session.scan)
        return
    saved = session.save()
    _print_scan(saved)


async def _cmd_classify(settings: SettingsStore, config: WasteScanConfig, args) -> None:
    if args.photo:
        photo = load_photo(args.photo)
    elif args.camera:
        photo = ScanCamera(config.camera.index, config.camera.save_dir).capture_photo()
    else:
        photo = None
    backend = create_backend(config, gemini_api_key=settings.get())
    result = await backend.classify_waste(require_photo(photo), args.location)
    print(result.markdown)


def _cmd_settings(settings: SettingsStore, args) -> None:
    match args.settings_command:
        case "set-key":
            if args.verify:
                from .vision.gemini import verify_api_key

                if not verify_api_key(args.api_key):
                    print("The API key was rejected by Gemini.", file=sys.stderr)
                    sys.exit(1)
            settings.set(args.api_key)
            print("API key saved.")
        case "clear-key":
            settings.set(None)
            print("API key removed.")
        case _:
            print("API key: " + ("configured" if settings.exists() else "not set"))


def _cmd_cameras() -> None:
    cameras = ScanCamera.list_cameras()
    if not cameras:
        print("No cameras found.")
        return
    print(f"Available cameras: {len(cameras)}")
    for idx in cameras:
        print(f"  camera {idx}")


def _cmd_printers() -> None:
    from .printer import Printer

    try:
        printers = Printer.list_printers()
    except RuntimeError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)

    if not printers:
        print("No printers found.")
        return
    print(f"Available printers: {len(printers)}")
    for p in printers:
        default_mark = " (default)" if p.is_default else ""
        print(f"  {p.name}{default_mark}")


if __name__ == "__main__":
    main()
