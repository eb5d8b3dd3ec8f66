"""
Request size limit middleware.

Starlette's multipart parser spools file parts to disk without a size
limit, so the upload cap has to be enforced before the body reaches it.
Requests that announce a larger Content-Length are answered with 413
without reading the body; bodies sent without a Content-Length are
counted as they stream in and cut off once they pass the limit.
"""

import json
import logging

from fastapi import HTTPException, status
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

# room for multipart boundaries and part headers around the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024


class UploadSizeLimitMiddleware:
    """
    Reject request bodies larger than the upload cap.

    Pure ASGI middleware, so an oversized request is refused before any
    route, form parser or temporary file is involved.
    """

    def __init__(self, app: ASGIApp, max_upload_size_bytes: int) -> None:
        self.app = app
        self.max_body_size = max_upload_size_bytes + MULTIPART_OVERHEAD_BYTES

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = _content_length(scope)

        if content_length is not None and content_length > self.max_body_size:
            logger.warning(
                "Rejected oversized request",
                extra={
                    "path": scope.get("path"),
                    "content_length": content_length,
                    "max_body_size": self.max_body_size,
                }
            )
            await _send_too_large(send)
            return

        if content_length is None:
            receive = self._counting(receive)

        await self.app(scope, receive, send)

    def _counting(self, receive: Receive) -> Receive:
        received = 0

        async def counted() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_size:
                    # raised inside the route's body parsing, where the
                    # app's exception handlers turn it into a response
                    raise HTTPException(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail="Uploaded file is too large.",
                    )
            return message

        return counted


def _content_length(scope: Scope) -> int | None:
    for header_name, header_value in scope.get("headers", []):
        if header_name == b"content-length":
            try:
                return int(header_value.decode())
            except (ValueError, UnicodeDecodeError):
                return None
    return None


async def _send_too_large(send: Send) -> None:
    await send({
        "type": "http.response.start",
        "status": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
        "headers": [[b"content-type", b"application/json"]],
    })
    await send({
        "type": "http.response.body",
        "body": json.dumps({"error": "Uploaded file is too large."}).encode(),
    })
