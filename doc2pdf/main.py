# doc2pdf/main.py
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

from doc2pdf.api import routers
from doc2pdf.api.convert import get_conversion_service, invalid_request_handler
from doc2pdf.core.config import get_settings
from doc2pdf.core.limits import PAYLOAD_TOO_LARGE_MESSAGE, BodySizeLimitMiddleware, PayloadTooLarge
from doc2pdf.core.logging import configure_logging
from doc2pdf.services.conversion_service import ConversionService

settings = get_settings()
logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Document-to-PDF service listening at http://localhost:%d", settings.port)
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)


# === Body size limit ===
app.add_middleware(
    BodySizeLimitMiddleware,
    max_bytes=lambda: settings.max_body_bytes,
    logger=logger,
)


async def payload_too_large_handler(request: Request, exc: PayloadTooLarge) -> PlainTextResponse:
    logger.error("Rejected a streamed request body over %d bytes", exc.limit)
    return PlainTextResponse(PAYLOAD_TOO_LARGE_MESSAGE, status_code=413)


app.add_exception_handler(PayloadTooLarge, payload_too_large_handler)
app.add_exception_handler(RequestValidationError, invalid_request_handler)

# === Routers ===
for router in routers:
    app.include_router(router)


@app.get("/health")
async def health_check(service: ConversionService = Depends(get_conversion_service)) -> dict:
    available = service.engine.available()
    binary = service.engine.resolve_binary() if available else None
    logger.debug("Health check invoked (engine=%s)", binary)
    return {"status": "ok", "engine": binary, "engine_available": available}


def run() -> None:
    """Serve the app with uvicorn on the configured host and port."""
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
