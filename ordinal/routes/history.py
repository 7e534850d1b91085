"""Session page-history routes.

Expose the caller's page stack and the target a "back" link should use.
These routes are excluded from recording themselves.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Request

from ordinal.logic.page_history import PageHistory

router = APIRouter()


def _history(request: Request, area: str) -> PageHistory:
    return PageHistory(request.session, request.app.state.history_settings, area)


@router.get("/history")
def get_history(request: Request, area: Literal["site", "admin"] = "site") -> Dict[str, Any]:
    history = _history(request, area)
    return {"area": area, "entries": history.entries(), **history.view_vars()}


@router.get("/history/back")
def get_back_target(
    request: Request,
    index: int = -1,
    default: Optional[str] = None,
    area: Literal["site", "admin"] = "site",
) -> Dict[str, Any]:
    return {"target": _history(request, area).back(index, default)}


__all__ = ["router"]
