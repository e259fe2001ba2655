from __future__ import annotations

import asyncio
from io import BytesIO
from logging import LoggerAdapter
from typing import Optional

from pypdf import PdfReader

from doc2pdf.core.config import get_settings
from doc2pdf.services.libreoffice import ConversionError, LibreOfficeEngine
from doc2pdf.storage.local import LocalStorage

PDF_MAGIC = b"%PDF-"


class ConversionService:
    """Stage a document on disk, run it through the engine and return PDF bytes."""

    TARGET_EXTENSION = ".pdf"

    def __init__(self, storage: LocalStorage | None = None, engine: LibreOfficeEngine | None = None) -> None:
        settings = get_settings()
        self.storage = storage or LocalStorage()
        self.engine = engine or LibreOfficeEngine(settings.soffice_path, settings.conversion_timeout)

    # ------------------------------------------------------------------
    async def convert(
        self,
        data: bytes,
        file_type: str,
        *,
        log: LoggerAdapter,
        filter_name: Optional[str] = None,
    ) -> bytes:
        try:
            with self.storage.staging(file_type) as area:
                await asyncio.to_thread(area.write, data)
                log.debug("Staged %d bytes at %s", len(data), area.input_path)
                pdf_bytes = await self.engine.convert(area, self.TARGET_EXTENSION, filter_name, log=log)
        except OSError as exc:
            raise ConversionError(f"could not stage document: {exc}") from exc

        pages = await asyncio.to_thread(self.inspect, pdf_bytes)
        log.debug("Engine returned a %d page PDF (%d bytes)", pages, len(pdf_bytes))
        return pdf_bytes

    @staticmethod
    def inspect(pdf_bytes: bytes) -> int:
        """Return the page count, or raise ConversionError when the bytes are not a readable PDF."""
        if not pdf_bytes.startswith(PDF_MAGIC):
            raise ConversionError("engine output is not a PDF document")
        try:
            pages = len(PdfReader(BytesIO(pdf_bytes)).pages)
        except Exception as exc:  # pypdf raises assorted types on malformed input
            raise ConversionError(f"engine output could not be read as PDF: {exc}") from exc
        if pages == 0:
            raise ConversionError("engine output has no pages")
        return pages
