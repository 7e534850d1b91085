"""APIRouter registration for the ordinal service."""

from __future__ import annotations

from fastapi import APIRouter

from ordinal.routes.history import router as history_router
from ordinal.routes.items import router as items_router
from ordinal.routes.search import router as search_router

api_router = APIRouter()
api_router.include_router(items_router, tags=["Items"])
api_router.include_router(search_router, tags=["Search"])
api_router.include_router(history_router, tags=["History"])

__all__ = ["api_router"]
