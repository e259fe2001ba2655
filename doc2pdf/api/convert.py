from functools import lru_cache
from logging import Logger

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, Response

from doc2pdf.core.logging import configure_logging, correlated
from doc2pdf.models import ConversionRequest
from doc2pdf.services.conversion_service import ConversionService
from doc2pdf.services.libreoffice import ConversionError
from doc2pdf.utils.file_utils import decode_base64, encode_base64, normalise_file_type

router = APIRouter(tags=["Conversion"])

MISSING_FIELDS_MESSAGE = "Bad Request: data, fileType, or messageID is undefined."
INVALID_FILE_TYPE_MESSAGE = "Bad Request: fileType must be a plain file extension."


@lru_cache()
def get_conversion_service() -> ConversionService:
    return ConversionService()


def get_logger() -> Logger:
    return configure_logging()


def _bad_request(message: str) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=400)


async def invalid_request_handler(request: Request, exc: RequestValidationError) -> PlainTextResponse:
    """Bodies that are not a JSON object of strings count as missing fields."""
    configure_logging().error("%s (%d validation errors)", MISSING_FIELDS_MESSAGE, len(exc.errors()))
    return _bad_request(MISSING_FIELDS_MESSAGE)


@router.post(
    "/convert",
    summary="Convert a base64 encoded document to a base64 encoded PDF",
    response_class=PlainTextResponse,
)
async def convert_document(
    payload: ConversionRequest,
    service: ConversionService = Depends(get_conversion_service),
    base_logger: Logger = Depends(get_logger),
) -> Response:
    log = correlated(base_logger, payload.messageID)
    log.debug("Received a request to convert a file")

    if not (payload.data and payload.fileType and payload.messageID):
        log.error(MISSING_FIELDS_MESSAGE)
        return _bad_request(MISSING_FIELDS_MESSAGE)

    try:
        data = decode_base64(payload.data)
    except ValueError as exc:
        log.error("%s (%s)", MISSING_FIELDS_MESSAGE, exc)
        return _bad_request(MISSING_FIELDS_MESSAGE)
    if not data:
        log.error(MISSING_FIELDS_MESSAGE)
        return _bad_request(MISSING_FIELDS_MESSAGE)

    try:
        file_type = normalise_file_type(payload.fileType)
    except ValueError as exc:
        log.error("%s (%s)", INVALID_FILE_TYPE_MESSAGE, exc)
        return _bad_request(INVALID_FILE_TYPE_MESSAGE)

    try:
        pdf_bytes = await service.convert(data, file_type, log=log)
    except ConversionError as exc:
        log.error("An error occurred during conversion to PDF: %s", exc)
        return Response(status_code=500)

    log.info("Successfully converted %s to PDF.", payload.fileType)
    return PlainTextResponse(encode_base64(pdf_bytes))
