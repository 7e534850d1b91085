"""Request ID middleware.

Echoes the caller's X-Request-Id, or assigns a fresh one, on every response.
The id is also exposed as ``request.state.request_id`` and tagged onto every
log record written while the request is served.
"""

from __future__ import annotations

import uuid

from ordinal.logging_setup import request_id_var


class RequestIdMiddleware:
    def __init__(self, app, header_name: str = "X-Request-Id") -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.header_name = header_name

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        header_bytes = self.header_name.lower().encode("latin-1")
        incoming = None
        for k, v in scope.get("headers") or []:
            if k.lower() == header_bytes:
                incoming = v
                break
        request_id = incoming or str(uuid.uuid4()).encode("latin-1")
        scope.setdefault("state", {})["request_id"] = request_id.decode("latin-1")

        async def send_wrapper(message):  # type: ignore[no-untyped-def]
            if message.get("type") == "http.response.start":
                headers = list(message.get("headers") or [])
                if header_bytes not in [k.lower() for k, _ in headers]:
                    headers.append((self.header_name.encode("latin-1"), request_id))
                message = {**message, "headers": headers}
            await send(message)

        token = request_id_var.set(request_id.decode("latin-1"))
        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            request_id_var.reset(token)


__all__ = ["RequestIdMiddleware"]
