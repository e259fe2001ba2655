from __future__ import annotations

import asyncio
import os
import shutil
import sys
from logging import LoggerAdapter
from pathlib import Path
from typing import List, Optional

from doc2pdf.storage.local import StagingArea


class ConversionError(RuntimeError):
    """The conversion engine did not produce a usable PDF."""


BINARY_NAMES = ("soffice", "libreoffice")

KNOWN_LOCATIONS = {
    "linux": [
        "/usr/bin/libreoffice",
        "/usr/bin/soffice",
        "/usr/lib/libreoffice/program/soffice",
        "/opt/libreoffice/program/soffice",
        "/snap/bin/libreoffice",
    ],
    "darwin": [
        "/Applications/LibreOffice.app/Contents/MacOS/soffice",
    ],
    "win32": [
        r"C:\Program Files\LibreOffice\program\soffice.exe",
        r"C:\Program Files (x86)\LibreOffice\program\soffice.exe",
    ],
}


class LibreOfficeEngine:
    """Headless LibreOffice, run once per document as a subprocess."""

    def __init__(self, binary: Optional[Path] = None, timeout: Optional[float] = None) -> None:
        self.binary = binary
        self.timeout = timeout

    # ------------------------------------------------------------------
    def resolve_binary(self) -> Optional[str]:
        if self.binary:
            return str(self.binary) if Path(self.binary).is_file() else None

        for name in BINARY_NAMES:
            found = shutil.which(name)
            if found:
                return found

        for candidate in KNOWN_LOCATIONS.get(sys.platform, []):
            if Path(candidate).is_file():
                return candidate
        return None

    def available(self) -> bool:
        return self.resolve_binary() is not None

    @staticmethod
    def command(binary: str, area: StagingArea, extension: str, filter_name: Optional[str] = None) -> List[str]:
        target = extension.lstrip(".")
        if filter_name:
            target = f"{target}:{filter_name}"
        return [
            binary,
            # private profile per run: LibreOffice refuses to share a locked one
            f"-env:UserInstallation={area.profile_dir.as_uri()}",
            "--headless",
            "--convert-to",
            target,
            "--outdir",
            str(area.output_dir),
            str(area.input_path),
        ]

    # ------------------------------------------------------------------
    async def convert(
        self,
        area: StagingArea,
        extension: str = ".pdf",
        filter_name: Optional[str] = None,
        *,
        log: LoggerAdapter,
    ) -> bytes:
        binary = self.resolve_binary()
        if binary is None:
            raise ConversionError("LibreOffice executable not found (set DOC2PDF_SOFFICE_PATH)")

        cmd = self.command(binary, area, extension, filter_name)
        log.debug("Running conversion engine: %s", " ".join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "HOME": str(area.root)},
            )
        except OSError as exc:
            raise ConversionError(f"could not start {binary}: {exc}") from exc

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            self._kill(process)
            raise ConversionError(f"conversion timed out after {self.timeout}s") from exc
        except asyncio.CancelledError:
            self._kill(process)
            raise

        details = (stderr or b"").decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise ConversionError(details or f"engine exited with status {process.returncode}")

        output = area.output_dir / f"{area.input_path.stem}{extension}"
        if not output.is_file():
            raise ConversionError(details or "engine finished without writing an output file")
        try:
            return await asyncio.to_thread(output.read_bytes)
        except OSError as exc:
            raise ConversionError(f"could not read engine output: {exc}") from exc

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
