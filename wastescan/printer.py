"""Send scan reports to a CUPS printer."""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Scan

logger = logging.getLogger(__name__)

_CUPS_HINT = (
    "Check that CUPS is installed:\n"
    "  Ubuntu/Debian: sudo apt install cups\n"
    "  Fedora/RHEL:   sudo dnf install cups"
)


@dataclass
class PrinterInfo:
    name: str
    is_default: bool


class Printer:
    """Print scan reports using the system lpr command."""

    @staticmethod
    def list_printers() -> list[PrinterInfo]:
        """List available printers using lpstat.

        Raises:
            RuntimeError: If lpstat is not available.
        """
        if shutil.which("lpstat") is None:
            raise RuntimeError(f"lpstat command not found. {_CUPS_HINT}")

        default_name = ""
        try:
            result = subprocess.run(
                ["lpstat", "-d"], capture_output=True, text=True, timeout=10
            )
            # "system default destination: PrinterName"
            if result.returncode == 0 and ":" in result.stdout:
                default_name = result.stdout.strip().split(":")[-1].strip()
        except (subprocess.TimeoutExpired, OSError):
            logger.debug("lpstat -d failed", exc_info=True)

        printers: list[PrinterInfo] = []
        try:
            result = subprocess.run(
                ["lpstat", "-p"], capture_output=True, text=True, timeout=10
            )
            if result.returncode == 0:
                for line in result.stdout.strip().splitlines():
                    parts = line.split()
                    if len(parts) >= 2 and parts[0] == "printer":
                        printers.append(
                            PrinterInfo(name=parts[1], is_default=parts[1] == default_name)
                        )
        except (subprocess.TimeoutExpired, OSError):
            logger.debug("lpstat -p failed", exc_info=True)

        return printers

    @staticmethod
    def print_file(file_path: str | Path, printer_name: str | None = None) -> None:
        """Print a file using lpr.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            RuntimeError: If lpr is not available or printing fails.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if shutil.which("lpr") is None:
            raise RuntimeError(f"lpr command not found. {_CUPS_HINT}")

        cmd = ["lpr"]
        if printer_name:
            cmd.extend(["-P", printer_name])
        cmd.append(str(file_path))

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=30)
        except subprocess.TimeoutExpired:
            raise RuntimeError("The print job timed out.") from None
        if result.returncode != 0:
            raise RuntimeError(f"Printing failed: {result.stderr.strip()}")

    @staticmethod
    def print_report(scan: Scan, printer_name: str | None = None) -> None:
        """Render ``scan`` as a PDF and send it to the printer.

        Raises:
            ValidationError: If the scan has no total residual weight.
        """
        from .report import ensure_exportable, export_pdf

        ensure_exportable(scan, "printing")
        with tempfile.TemporaryDirectory(prefix="wastescan_") as tmp:
            pdf_path = export_pdf(scan, Path(tmp) / "report.pdf")
            Printer.print_file(pdf_path, printer_name=printer_name)
        logger.info("Sent scan %s to %s", scan.id, printer_name or "default printer")
