"""Search request resolution and paging.

Turns raw request parameters into a bounded ``SearchQuery`` and runs it
against a ``SearchBackend``. A submitted search form is answered with a
redirect so the term ends up in the URL and result pages stay bookmarkable.
"""

from __future__ import annotations

import difflib
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, Field
from sqlalchemy import func, or_, select

from ordinal.config import SearchConfig
from ordinal.db.base import get_engine
from ordinal.logic.sequenced_items import sequence_item

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[A-Za-z0-9]+")


class SearchQuery(BaseModel):
    term: str = ""
    limit: int = Field(default=10, gt=0)
    page: int = Field(default=1, gt=0)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class SearchRedirect(BaseModel):
    term: str


class SearchPage(BaseModel):
    results: List[Dict[str, Any]]
    total: int


class SearchResults(BaseModel):
    term: str
    results: List[Dict[str, Any]]
    page: int
    limit: int
    total: int
    pages: int
    spelling_suggestion: Optional[str] = None


class SearchBackend(Protocol):
    def paginate(self, query: SearchQuery) -> SearchPage:
        ...

    def spelling_suggestion(self, term: str) -> Optional[str]:
        ...


def _positive_int(raw: Any, default: int) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def resolve_search_query(
    params: Mapping[str, Any],
    form_term: Optional[str] = None,
    config: Optional[SearchConfig] = None,
) -> Union[SearchQuery, SearchRedirect]:
    """Build the query for this request, or a redirect for a submitted form."""
    config = config or SearchConfig()
    if form_term and form_term.strip():
        return SearchRedirect(term=form_term.strip())
    term = str(params.get("term") or "").strip()
    limit = min(_positive_int(params.get("show"), config.default_limit), config.max_limit)
    page = _positive_int(params.get("page"), 1)
    return SearchQuery(term=term, limit=limit, page=page)


def run_search(backend: SearchBackend, query: SearchQuery) -> SearchResults:
    page = backend.paginate(query)
    suggestion = backend.spelling_suggestion(query.term) if query.term else None
    pages = (page.total + query.limit - 1) // query.limit if page.total else 0
    logger.info(
        "search.run term=%s page=%s limit=%s total=%s suggestion=%s",
        query.term,
        query.page,
        query.limit,
        page.total,
        suggestion,
    )
    return SearchResults(
        term=query.term,
        results=page.results,
        page=query.page,
        limit=query.limit,
        total=page.total,
        pages=pages,
        spelling_suggestion=suggestion,
    )


class SqlItemSearch:
    """Case-insensitive substring search over item titles."""

    def _conditions(self, term: str) -> List[Any]:
        words = term.split()
        if not words:
            return []
        return [or_(*(sequence_item.c.title.icontains(w, autoescape=True) for w in words))]

    def paginate(self, query: SearchQuery) -> SearchPage:
        conds = self._conditions(query.term)
        if not conds:
            return SearchPage(results=[], total=0)
        with get_engine().connect() as conn:
            total = conn.execute(select(func.count()).select_from(sequence_item).where(*conds)).scalar_one()
            rows = conn.execute(
                select(sequence_item.c.id, sequence_item.c.title, sequence_item.c.list_key, sequence_item.c.position)
                .where(*conds)
                .order_by(sequence_item.c.list_key.asc(), sequence_item.c.position.asc())
                .limit(query.limit)
                .offset(query.offset)
            ).fetchall()
        return SearchPage(results=[dict(r._mapping) for r in rows], total=int(total))

    def spelling_suggestion(self, term: str) -> Optional[str]:
        """Suggest a corrected term from words found in stored titles.

        Returns None when every word already appears in the vocabulary.
        """
        with get_engine().connect() as conn:
            titles = conn.execute(select(sequence_item.c.title)).scalars().all()
        vocabulary = {w.lower() for t in titles for w in _WORD.findall(t or "")}
        if not vocabulary:
            return None
        changed = False
        corrected = []
        for word in term.split():
            lw = word.lower()
            if lw in vocabulary:
                corrected.append(word)
                continue
            match = difflib.get_close_matches(lw, vocabulary, n=1, cutoff=0.75)
            if match:
                corrected.append(match[0])
                changed = True
            else:
                corrected.append(word)
        return " ".join(corrected) if changed else None


__all__ = [
    "SearchBackend",
    "SearchPage",
    "SearchQuery",
    "SearchRedirect",
    "SearchResults",
    "SqlItemSearch",
    "resolve_search_query",
    "run_search",
]
