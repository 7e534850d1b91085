"""Ordered-record bookkeeping service.

Keeps a dense order column per group of records under insert, move and
delete, and serves it over a small FastAPI application. Business logic lives
in `ordinal/logic/`, route handlers in `ordinal/routes/`.
"""

from __future__ import annotations

from ordinal.main import create_app

__all__ = ["create_app"]
