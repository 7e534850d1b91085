"""Page history recording middleware.

Pushes every successful, non-XHR GET onto the session page-history stack of
its area. Must run inside Starlette's ``SessionMiddleware`` so that
``scope["session"]`` exists and is written back after the stack changes.
Handlers can name the page by setting ``request.state.page_title``.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ordinal.logic.page_history import PageHistory, PageHistorySettings, area_for_path

logger = logging.getLogger(__name__)


class PageHistoryMiddleware:
    def __init__(self, app, settings: PageHistorySettings, skip_prefixes: Iterable[str] = ()) -> None:  # type: ignore[no-untyped-def]
        self.app = app
        self.settings = settings
        self.skip_prefixes = tuple(skip_prefixes)

    def _should_record(self, scope) -> bool:  # type: ignore[no-untyped-def]
        if scope.get("type") != "http" or scope.get("method") != "GET":
            return False
        if "session" not in scope:
            return False
        path = scope.get("path") or ""
        if any(path == p or path.startswith(p.rstrip("/") + "/") for p in self.skip_prefixes):
            return False
        for k, v in scope.get("headers") or []:
            if k.lower() == b"x-requested-with" and v.lower() == b"xmlhttprequest":
                return False
        return True

    async def __call__(self, scope, receive, send):  # type: ignore[no-untyped-def]
        if not self._should_record(scope):
            await self.app(scope, receive, send)
            return

        path = scope.get("path") or "/"
        query = (scope.get("query_string") or b"").decode("latin-1")
        uri = f"{path}?{query}" if query else path

        async def send_wrapper(message):  # type: ignore[no-untyped-def]
            # Record before the session middleware serialises the cookie
            if message.get("type") == "http.response.start" and int(message.get("status", 500)) < 400:
                title = (scope.get("state") or {}).get("page_title")
                area = area_for_path(path, self.settings.admin_prefix)
                PageHistory(scope["session"], self.settings, area).record(uri, title)
            await send(message)

        await self.app(scope, receive, send_wrapper)


__all__ = ["PageHistoryMiddleware"]
