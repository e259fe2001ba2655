from io import BytesIO

from pypdf import PdfWriter


def build_pdf(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class FakeEngine:
    """Stands in for LibreOfficeEngine and records every staged input it is handed."""

    def __init__(self, result=None, error=None, binary="/usr/bin/soffice", delay=0.0):
        self.result = result if result is not None else build_pdf()
        self.error = error
        self.binary = binary
        self.delay = delay
        self.seen = []

    def resolve_binary(self):
        return self.binary

    def available(self):
        return self.binary is not None

    async def convert(self, area, extension=".pdf", filter_name=None, *, log):
        import asyncio

        data = area.input_path.read_bytes()
        if self.delay:
            await asyncio.sleep(self.delay)
        self.seen.append(
            {
                "name": area.input_path.name,
                "data": data,
                "data_after_wait": area.input_path.read_bytes(),
                "root": area.root,
                "extension": extension,
                "filter_name": filter_name,
            }
        )
        if self.error is not None:
            raise self.error
        return self.result
