from logging import Logger
from typing import Callable

from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.responses import PlainTextResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

PAYLOAD_TOO_LARGE_MESSAGE = "Payload Too Large"


class PayloadTooLarge(HTTPException):
    def __init__(self, limit: int) -> None:
        super().__init__(status_code=413, detail=PAYLOAD_TOO_LARGE_MESSAGE)
        self.limit = limit


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than ``max_bytes()``.

    A declared Content-Length over the limit is answered straight away;
    streamed bodies are counted as they are received and raise
    PayloadTooLarge once the running total passes the limit.
    """

    def __init__(self, app: ASGIApp, max_bytes: Callable[[], int], logger: Logger) -> None:
        self.app = app
        self.max_bytes = max_bytes
        self.logger = logger

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        limit = self.max_bytes()
        length = Headers(scope=scope).get("content-length")
        if length and length.isdigit() and int(length) > limit:
            self.logger.error("Rejected a %s byte request body (limit %d bytes)", length, limit)
            response = PlainTextResponse(PAYLOAD_TOO_LARGE_MESSAGE, status_code=413)
            await response(scope, receive, send)
            return

        received = 0

        async def counting_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > limit:
                    raise PayloadTooLarge(limit)
            return message

        await self.app(scope, counting_receive, send)
