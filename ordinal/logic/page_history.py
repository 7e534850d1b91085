"""Per-session page history stack.

Keeps a last-in-first-out list of ``{"uri", "title"}`` entries inside a
session mapping, one stack per area (``site`` or ``admin``), stored at
``session[session_key][area]``. The newest page is at index 0, so index 1 is
always "the page before this one".

Typical use: record every rendered page, then after saving a form call
``back(1)`` to return to the listing the user came from; after an action that
never renders (delete, toggle) call ``back(0)``.
"""

from __future__ import annotations

from typing import Any, Dict, List, MutableMapping, Optional, Union
import logging

from pydantic import BaseModel

from ordinal.config import HistoryConfig, load_config

logger = logging.getLogger(__name__)

SITE = "site"
ADMIN = "admin"

Redirect = Union[str, Dict[str, Any]]


class PageHistorySettings(BaseModel):
    session_key: str = "History"
    save_site_history: bool = True
    save_admin_history: bool = True
    default_title: str = "Previous page"
    previous_page_var: str = "previousPage"
    admin_prefix: str = "admin"


def history_settings(config: Optional[HistoryConfig] = None, **overrides: Any) -> PageHistorySettings:
    """Build settings from the loaded application config plus explicit overrides."""
    config = config or load_config().history
    values: Dict[str, Any] = {"session_key": config.session_key, "admin_prefix": config.admin_prefix}
    values.update(overrides)
    return PageHistorySettings(**values)


def area_for_path(path: str, admin_prefix: Optional[str]) -> str:
    """Return ``admin`` when the first path segment is the admin prefix."""
    if not admin_prefix:
        return SITE
    first = (path or "").split("?", 1)[0].strip("/").split("/", 1)[0]
    return ADMIN if first == admin_prefix.strip("/") else SITE


class PageHistory:
    def __init__(
        self,
        session: MutableMapping[str, Any],
        settings: Optional[PageHistorySettings] = None,
        area: str = SITE,
    ) -> None:
        if area not in (SITE, ADMIN):
            raise ValueError(f"unknown history area: {area!r}")
        self.session = session
        self.settings = settings or PageHistorySettings()
        self.area = area

    def _enabled(self) -> bool:
        if self.area == ADMIN:
            return self.settings.save_admin_history
        return self.settings.save_site_history

    def entries(self) -> List[Dict[str, str]]:
        bucket = self.session.get(self.settings.session_key) or {}
        return [dict(e) for e in bucket.get(self.area) or []]

    def _write(self, stack: List[Dict[str, str]]) -> None:
        bucket = dict(self.session.get(self.settings.session_key) or {})
        bucket[self.area] = stack
        # Reassign so dirty-tracking session backends notice the change
        self.session[self.settings.session_key] = bucket

    def record(self, uri: Optional[str], title: Optional[str] = None, is_ajax: bool = False) -> Optional[Dict[str, str]]:
        """Record a rendered page and return the previous page entry, if any."""
        if not isinstance(uri, str) or not uri:
            return None
        if is_ajax or not self._enabled():
            return None

        stack = self.entries()
        if stack and stack[0].get("uri") == uri:
            pass  # refresh
        elif len(stack) > 1 and stack[1].get("uri") == uri:
            stack.pop(0)  # user went back one page
        else:
            stack.insert(0, {"uri": uri, "title": title or self.settings.default_title})

        self._write(stack)
        logger.debug("history.record area=%s uri=%s depth=%s", self.area, uri, len(stack))
        return stack[1] if len(stack) > 1 else None

    def previous_page(self) -> Optional[Dict[str, str]]:
        stack = self.entries()
        return stack[1] if len(stack) > 1 else None

    def view_vars(self) -> Dict[str, Dict[str, str]]:
        """Template variables exposing the previous page under the configured name."""
        prev = self.previous_page()
        return {self.settings.previous_page_var: prev} if prev else {}

    def back(self, index: int = -1, default: Optional[Redirect] = None) -> Redirect:
        """Return the redirect target ``abs(index)`` entries down the stack.

        Falls back to ``default``, then to the index action of the current
        area.
        """
        stack = self.entries()
        offset = abs(int(index))
        if offset < len(stack) and stack[offset].get("uri"):
            return stack[offset]["uri"]
        if default:
            return default
        target: Dict[str, Any] = {"action": "index"}
        if self.area == ADMIN:
            target[self.settings.admin_prefix] = True
        return target


__all__ = [
    "ADMIN",
    "SITE",
    "PageHistory",
    "PageHistorySettings",
    "area_for_path",
    "history_settings",
]
