"""Search route over item titles with paging and spelling suggestions."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Form, Request
from fastapi.responses import RedirectResponse

from ordinal.config import load_config
from ordinal.logic.search_paging import (
    SearchRedirect,
    SearchResults,
    SqlItemSearch,
    resolve_search_query,
    run_search,
)

router = APIRouter()


@router.get("/search", response_model=SearchResults)
def search(request: Request):
    resolved = resolve_search_query(request.query_params, config=load_config().search)
    # GET never carries a form term, so resolution always yields a query here
    return run_search(SqlItemSearch(), resolved)


@router.post("/search")
def submit_search(request: Request, term: Optional[str] = Form(default=None)):
    resolved = resolve_search_query(request.query_params, form_term=term, config=load_config().search)
    # Keep the caller's paging arguments (show, page, ...) across the redirect
    params = dict(request.query_params)
    if isinstance(resolved, SearchRedirect):
        params["term"] = resolved.term
    target = str(request.url_for("search"))
    if params:
        target = f"{target}?{urlencode(params)}"
    return RedirectResponse(target, status_code=303)


__all__ = ["router"]
