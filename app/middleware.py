import uuid

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.logging import request_id_ctx_var

HEADER_NAME = b"x-correlation-id"


class CorrelationIdMiddleware:
    """Attach or generate an X-Correlation-ID for each request.

    The id is stored on a contextvar so log records carry it through
    RequestIdFilter, and it is echoed back on the response.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        # Only act on HTTP requests
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        correlation_id = headers.get(HEADER_NAME)
        if correlation_id is None:
            correlation_id = str(uuid.uuid4()).encode()
            scope["headers"] = list(scope.get("headers", [])) + [(HEADER_NAME, correlation_id)]

        token = request_id_ctx_var.set(correlation_id.decode("latin-1"))

        async def send_with_header(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)["X-Correlation-ID"] = correlation_id.decode("latin-1")
            await send(message)

        try:
            await self.app(scope, receive, send_with_header)
        finally:
            request_id_ctx_var.reset(token)
