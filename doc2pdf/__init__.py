"""
doc2pdf - base64 in, base64 PDF out.

A small FastAPI service that hands office documents to a headless
LibreOffice and returns the PDF rendition.
"""

__version__ = "0.1.0"
