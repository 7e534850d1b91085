"""Functional tests for the session page-history stack."""

from __future__ import annotations

import pytest

from ordinal.config import HistoryConfig
from ordinal.logic.page_history import (
    ADMIN,
    SITE,
    PageHistory,
    PageHistorySettings,
    area_for_path,
    history_settings,
)


def test_record_pushes_pages_newest_first() -> None:
    session: dict = {}
    history = PageHistory(session)
    assert history.record("/items", "Items") is None
    prev = history.record("/items/1/edit", "Edit item")
    assert prev == {"uri": "/items", "title": "Items"}
    assert session["History"][SITE] == [
        {"uri": "/items/1/edit", "title": "Edit item"},
        {"uri": "/items", "title": "Items"},
    ]


def test_refresh_does_not_grow_stack() -> None:
    history = PageHistory({})
    history.record("/a", "A")
    history.record("/b", "B")
    history.record("/b", "B again")
    assert [e["uri"] for e in history.entries()] == ["/b", "/a"]


def test_returning_to_previous_page_pops_top() -> None:
    history = PageHistory({})
    history.record("/a", "A")
    history.record("/b", "B")
    history.record("/c", "C")
    prev = history.record("/b", "B")
    assert [e["uri"] for e in history.entries()] == ["/b", "/a"]
    assert prev == {"uri": "/a", "title": "A"}


def test_missing_title_uses_default_title() -> None:
    history = PageHistory({}, PageHistorySettings(default_title="Back"))
    history.record("/a")
    assert history.entries() == [{"uri": "/a", "title": "Back"}]


@pytest.mark.parametrize("uri,is_ajax", [("", False), (None, False), ("/a", True)])
def test_empty_uri_and_ajax_requests_are_ignored(uri, is_ajax) -> None:
    session: dict = {}
    assert PageHistory(session).record(uri, "A", is_ajax=is_ajax) is None
    assert session == {}


def test_disabled_area_is_not_recorded() -> None:
    session: dict = {}
    settings = PageHistorySettings(save_admin_history=False)
    PageHistory(session, settings, area=ADMIN).record("/admin/items", "Items")
    PageHistory(session, settings, area=SITE).record("/items", "Items")
    assert ADMIN not in session["History"]
    assert session["History"][SITE] == [{"uri": "/items", "title": "Items"}]


def test_site_and_admin_stacks_are_separate() -> None:
    session: dict = {}
    PageHistory(session, area=SITE).record("/a", "A")
    PageHistory(session, area=ADMIN).record("/admin/x", "X")
    assert PageHistory(session, area=SITE).entries() == [{"uri": "/a", "title": "A"}]
    assert PageHistory(session, area=ADMIN).entries() == [{"uri": "/admin/x", "title": "X"}]


def test_custom_session_key() -> None:
    session: dict = {}
    PageHistory(session, PageHistorySettings(session_key="Trail")).record("/a", "A")
    assert "Trail" in session and "History" not in session


def test_back_uses_absolute_index_into_stack() -> None:
    history = PageHistory({})
    for uri in ("/list", "/list/2", "/edit"):
        history.record(uri, uri)
    assert history.back() == "/list/2"
    assert history.back(1) == "/list/2"
    assert history.back(0) == "/edit"
    assert history.back(-2) == "/list"


def test_back_falls_back_to_default_then_index_action() -> None:
    assert PageHistory({}).back(3, default="/home") == "/home"
    assert PageHistory({}).back(3) == {"action": "index"}
    assert PageHistory({}, area=ADMIN).back(3) == {"action": "index", "admin": True}


def test_view_vars_expose_previous_page() -> None:
    history = PageHistory({}, PageHistorySettings(previous_page_var="backLink"))
    history.record("/a", "A")
    assert history.view_vars() == {}
    history.record("/b", "B")
    assert history.view_vars() == {"backLink": {"uri": "/a", "title": "A"}}


@pytest.mark.parametrize(
    "path,prefix,expected",
    [
        ("/admin/items", "admin", ADMIN),
        ("/admin", "admin", ADMIN),
        ("/administrator/x", "admin", SITE),
        ("/items?admin=1", "admin", SITE),
        ("/admin/items", "", SITE),
    ],
)
def test_area_for_path(path, prefix, expected) -> None:
    assert area_for_path(path, prefix) == expected


def test_unknown_area_rejected() -> None:
    with pytest.raises(ValueError):
        PageHistory({}, area="backend")


def test_history_settings_follow_app_config_with_overrides() -> None:
    settings = history_settings(HistoryConfig(session_key="Trail", admin_prefix="cms"), save_admin_history=False)
    assert settings.session_key == "Trail"
    assert settings.admin_prefix == "cms"
    assert settings.save_admin_history is False
    assert settings.default_title == "Previous page"
