import asyncio
import math

import pytest

from studyadmin.services.errors import FetchError, StoreError
from studyadmin.services.selection import (
    AllMatching,
    EmailSelectionController,
    ExplicitSelection,
    PageQuery,
)
from studyadmin.services.user_emails import PaginatedUsers, UserEmailRow

def _rows(n, prefix="user"):
    return [UserEmailRow(id=f"{prefix}-{i}", display_name=f"{prefix} {i}", email=f"{prefix}{i}@x.test", created_at=None)
            for i in range(n)]

class FakeDirectory:
    """In-memory stand-in for the user/email fetchers, with optional gates per search."""
    def __init__(self, rows):
        self.rows = rows
        self.gates = {}
        self.page_calls = 0
        self.all_calls = 0

    def _matching(self, search):
        needle = (search or "").lower()
        return [r for r in self.rows if needle in r.email.lower() or needle in (r.display_name or "").lower()]

    async def fetch_page(self, q: PageQuery):
        self.page_calls += 1
        gate = self.gates.get(q.search)
        if gate is not None:
            await gate.wait()
        rows = self._matching(q.search)
        start = (q.page - 1) * q.limit
        return PaginatedUsers(users=rows[start:start + q.limit], total=len(rows), page=q.page,
                              limit=q.limit, total_pages=math.ceil(len(rows) / q.limit))

    async def fetch_all_emails(self, search):
        self.all_calls += 1
        gate = self.gates.get(("all", search))
        if gate is not None:
            await gate.wait()
        return list(dict.fromkeys(r.email for r in self._matching(search)))

def _ctrl(directory, **kw):
    return EmailSelectionController(directory.fetch_page, directory.fetch_all_emails, **kw)


def test_page_query_args_roundtrip_omits_defaults():
    assert PageQuery().to_args() == {}
    q = PageQuery.from_args({"page": "3", "limit": "50", "q": " bob "})
    assert q == PageQuery(page=3, limit=50, search="bob")
    assert q.to_args() == {"page": 3, "limit": 50, "q": "bob"}
    assert PageQuery.from_args({"page": "-2", "limit": "7"}) == PageQuery()
    with pytest.raises(ValueError):
        PageQuery(limit=30)

def test_refresh_loads_page_and_totals():
    d = FakeDirectory(_rows(47))
    ctrl = _ctrl(d)
    assert asyncio.run(ctrl.refresh()) is True
    assert ctrl.total == 47 and ctrl.total_pages == 2
    assert len(ctrl.rows) == 25
    assert ctrl.busy is False

def test_stale_search_result_never_overwrites_newer_one():
    alice = [UserEmailRow(id="a1", display_name="Alice", email="alice@x.test", created_at=None)]
    bob = [UserEmailRow(id="b1", display_name="Bob", email="bob@x.test", created_at=None)]
    d = FakeDirectory(alice + bob)
    gate = asyncio.Event()
    d.gates["alice"] = gate
    ctrl = _ctrl(d)

    async def scenario():
        slow = asyncio.ensure_future(ctrl.set_search("alice"))
        await asyncio.sleep(0)
        assert ctrl.busy is True
        fast = await ctrl.set_search("bob")
        gate.set()
        return fast, await slow

    fast, slow = asyncio.run(scenario())
    assert (fast, slow) == (True, False)
    assert ctrl.page_ids == ["b1"]
    assert ctrl.query.search == "bob"
    assert ctrl.busy is False

def test_query_change_clears_selection():
    d = FakeDirectory(_rows(60))
    ctrl = _ctrl(d)
    asyncio.run(ctrl.refresh())
    ctrl.toggle_row("user-0")
    asyncio.run(ctrl.go_to_page(2))
    assert ctrl.selected_count == 0

    ctrl.toggle_row(ctrl.page_ids[0])
    asyncio.run(ctrl.set_limit(50))
    assert ctrl.selection == ExplicitSelection()

    asyncio.run(ctrl.select_all_matching())
    assert ctrl.navigate(PageQuery(page=1, limit=50, search="user1")) is True
    assert ctrl.select_all_matching_active is False
    assert ctrl.navigate(ctrl.query) is False

def test_go_to_page_is_clamped():
    d = FakeDirectory(_rows(30))
    ctrl = _ctrl(d)
    asyncio.run(ctrl.refresh())
    asyncio.run(ctrl.go_to_page(99))
    assert ctrl.query.page == 2
    asyncio.run(ctrl.go_to_page(0))
    assert ctrl.query.page == 1

def test_toggle_all_on_page_selects_then_clears():
    d = FakeDirectory(_rows(30))
    ctrl = _ctrl(d)
    asyncio.run(ctrl.refresh())
    ctrl.toggle_row("user-3")
    assert ctrl.page_fully_selected is False
    ctrl.toggle_all_on_page()
    assert ctrl.selected_ids == frozenset(ctrl.page_ids)
    assert ctrl.page_fully_selected is True
    ctrl.toggle_all_on_page()
    assert ctrl.selected_count == 0

def test_select_all_matching_counts_full_result_and_resolves_every_email():
    d = FakeDirectory(_rows(47))
    ctrl = _ctrl(d)
    asyncio.run(ctrl.refresh())
    assert asyncio.run(ctrl.select_all_matching()) is True
    assert ctrl.selection == AllMatching(search="", count=47)
    assert ctrl.selected_count == 47
    assert ctrl.page_fully_selected is True

    emails = asyncio.run(ctrl.resolve_selected_emails())
    assert len(emails) == 47
    # cached from select-all, no second full fetch
    assert d.all_calls == 1

def test_toggle_row_in_all_matching_mode_drops_to_explicit_page_selection():
    d = FakeDirectory(_rows(47))
    ctrl = _ctrl(d)
    asyncio.run(ctrl.refresh())
    asyncio.run(ctrl.select_all_matching())
    ctrl.toggle_row("user-0")
    assert isinstance(ctrl.selection, ExplicitSelection)
    assert ctrl.selected_count == 24
    assert "user-0" not in ctrl.selected_ids

def test_select_all_result_dropped_when_search_changes_mid_flight():
    d = FakeDirectory(_rows(10, "ann") + _rows(10, "ben"))
    gate = asyncio.Event()
    d.gates[("all", "ann")] = gate
    ctrl = _ctrl(d)

    async def scenario():
        await ctrl.set_search("ann")
        pending = asyncio.ensure_future(ctrl.select_all_matching())
        await asyncio.sleep(0)
        await ctrl.set_search("ben")
        gate.set()
        return await pending

    assert asyncio.run(scenario()) is False
    assert ctrl.select_all_matching_active is False
    assert ctrl.query.search == "ben"

def test_resolved_emails_are_unique_and_in_listing_order():
    rows = [
        UserEmailRow(id="1", display_name="A", email="shared@x.test", created_at=None),
        UserEmailRow(id="2", display_name="B", email="b@x.test", created_at=None),
        UserEmailRow(id="3", display_name="C", email="shared@x.test", created_at=None),
    ]
    ctrl = _ctrl(FakeDirectory(rows))
    asyncio.run(ctrl.refresh())
    for row_id in ("3", "2", "1"):
        ctrl.toggle_row(row_id)
    assert asyncio.run(ctrl.resolve_selected_emails()) == ["shared@x.test", "b@x.test"]

def test_timeout_surfaces_as_fetch_error_and_clears_busy():
    async def never(q):
        await asyncio.sleep(5)

    async def no_emails(search):
        return []

    ctrl = EmailSelectionController(never, no_emails, timeout=0.01)
    with pytest.raises(FetchError):
        asyncio.run(ctrl.refresh())
    assert ctrl.busy is False

def test_store_error_surfaces_as_fetch_error():
    async def broken(q):
        raise StoreError("db down")

    async def broken_all(search):
        raise StoreError("db down")

    ctrl = EmailSelectionController(broken, broken_all)
    with pytest.raises(FetchError):
        asyncio.run(ctrl.refresh())
    with pytest.raises(FetchError):
        asyncio.run(ctrl.select_all_matching())

def test_session_roundtrip_keeps_query_and_selection():
    d = FakeDirectory(_rows(60))
    ctrl = _ctrl(d)
    asyncio.run(ctrl.set_search("user"))
    ctrl.toggle_row("user-1")
    ctrl.toggle_row("user-2")
    state = ctrl.to_session()

    restored = EmailSelectionController.from_session(state, d.fetch_page, d.fetch_all_emails)
    assert restored.query == ctrl.query
    assert restored.selected_ids == {"user-1", "user-2"}
    assert restored.page_ids == ctrl.page_ids
    assert asyncio.run(restored.resolve_selected_emails()) == ["user1@x.test", "user2@x.test"]

    asyncio.run(ctrl.select_all_matching())
    restored = EmailSelectionController.from_session(ctrl.to_session(), d.fetch_page, d.fetch_all_emails)
    assert restored.selection == AllMatching(search="user", count=60)

def test_tampered_session_gives_clean_controller():
    d = FakeDirectory(_rows(3))
    ctrl = EmailSelectionController.from_session({"page": "x", "limit": 13}, d.fetch_page, d.fetch_all_emails)
    assert ctrl.generation == 0
    assert EmailSelectionController.from_session({"generation": "x"}, d.fetch_page, d.fetch_all_emails).generation == 0
    assert ctrl.query == PageQuery()
    assert ctrl.selected_count == 0

def test_toggle_all_on_page_twice_restores_selection():
    d = FakeDirectory(_rows(30))
    ctrl = _ctrl(d)
    asyncio.run(ctrl.refresh())
    before = ctrl.selection
    ctrl.toggle_all_on_page()
    ctrl.toggle_all_on_page()
    assert ctrl.selection == before

def test_search_change_resets_page_and_both_selection_modes():
    d = FakeDirectory(_rows(60))
    ctrl = _ctrl(d)
    asyncio.run(ctrl.refresh())
    asyncio.run(ctrl.go_to_page(2))
    asyncio.run(ctrl.select_all_matching())
    assert ctrl.query.page == 2
    asyncio.run(ctrl.set_search("user5"))
    assert ctrl.query.page == 1
    assert ctrl.selection == ExplicitSelection()
    assert ctrl.select_all_matching_active is False

def test_session_roundtrip_keeps_generation_for_listing_checks():
    d = FakeDirectory(_rows(5, "ann") + _rows(5, "ben"))
    ctrl = _ctrl(d)
    asyncio.run(ctrl.set_search("ann"))
    shown = (ctrl.query.search, ctrl.generation)
    asyncio.run(ctrl.set_search("ben"))

    restored = EmailSelectionController.from_session(ctrl.to_session(), d.fetch_page, d.fetch_all_emails)
    assert restored.generation == ctrl.generation
    assert restored.is_current("ben", str(ctrl.generation)) is True
    assert restored.is_current(*shown) is False
    assert restored.is_current("ben", shown[1]) is False
    assert restored.is_current("ben", None) is False
    assert restored.is_current("ben", "x") is False
