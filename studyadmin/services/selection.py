"""
Paged, searchable, multi-select list over the user-email result set.

The controller owns a PageQuery, the current selection and the rows of the
page being shown. Every fetch is tagged with a generation number; a response
is applied only if no newer query was issued while it was in flight, so a
slow "alice" search can never overwrite a later "bob" search.

Selection has two mutually exclusive modes, modelled as two types:

    ExplicitSelection(ids)      rows picked one by one / per page
    AllMatching(search, count)  every row matching `search`, on every page
"""
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Mapping, Optional, Union

from .errors import FetchError, StoreError
from .user_emails import PaginatedUsers, UserEmailRow

logger = logging.getLogger(__name__)

PAGE_SIZES = (25, 50, 100)
DEFAULT_LIMIT = 25


def _to_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class PageQuery:
    page: int = 1
    limit: int = DEFAULT_LIMIT
    search: str = ""

    def __post_init__(self):
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.limit not in PAGE_SIZES:
            raise ValueError(f"limit must be one of {PAGE_SIZES}")

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "PageQuery":
        """Parse ?page=&limit=&q=; anything unusable falls back to the default."""
        page = max(1, _to_int(args.get("page"), 1))
        limit = _to_int(args.get("limit"), DEFAULT_LIMIT)
        if limit not in PAGE_SIZES:
            limit = DEFAULT_LIMIT
        return cls(page=page, limit=limit, search=(args.get("q") or "").strip())

    def to_args(self) -> Dict[str, Any]:
        """URL parameters for a shareable link; defaults are omitted."""
        args: Dict[str, Any] = {}
        if self.page > 1:
            args["page"] = self.page
        if self.limit != DEFAULT_LIMIT:
            args["limit"] = self.limit
        if self.search:
            args["q"] = self.search
        return args


@dataclass(frozen=True)
class ExplicitSelection:
    ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class AllMatching:
    search: str
    count: int


Selection = Union[ExplicitSelection, AllMatching]

PageFetcher = Callable[[PageQuery], Awaitable[PaginatedUsers]]
EmailsFetcher = Callable[[str], Awaitable[List[str]]]


@dataclass
class _AllMatchingCache:
    search: str
    emails: List[str] = field(default_factory=list)


class EmailSelectionController:
    def __init__(
        self,
        fetch_page: PageFetcher,
        fetch_all_emails: EmailsFetcher,
        *,
        query: Optional[PageQuery] = None,
        timeout: Optional[float] = None,
    ):
        self._fetch_page = fetch_page
        self._fetch_all_emails = fetch_all_emails
        self.timeout = timeout

        self.query = query or PageQuery()
        self.selection: Selection = ExplicitSelection()
        self.rows: List[UserEmailRow] = []
        self.total = 0
        self.busy = False

        self._generation = 0
        self._seen: Dict[str, str] = {}  # id -> email for pages fetched under the current search
        self._all_cache: Optional[_AllMatchingCache] = None

    # ---- derived state -----------------------------------------------------
    @property
    def generation(self) -> int:
        return self._generation

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.query.limit) if self.total else 0

    @property
    def select_all_matching_active(self) -> bool:
        return isinstance(self.selection, AllMatching)

    @property
    def selected_ids(self) -> FrozenSet[str]:
        if isinstance(self.selection, ExplicitSelection):
            return self.selection.ids
        return frozenset()

    @property
    def selected_count(self) -> int:
        # "Selected: N" shows the full result size in all-matching mode
        if isinstance(self.selection, AllMatching):
            return self.total
        return len(self.selection.ids)

    @property
    def page_ids(self) -> List[str]:
        return [r.id for r in self.rows]

    @property
    def page_fully_selected(self) -> bool:
        ids = self.page_ids
        if not ids:
            return False
        if isinstance(self.selection, AllMatching):
            return True
        return set(ids) <= self.selection.ids

    def is_current(self, search: Optional[str], generation: Any) -> bool:
        """True when (search, generation) names the listing this controller last loaded."""
        try:
            generation = int(generation)
        except (TypeError, ValueError):
            return False
        return generation == self._generation and (search or "").strip() == self.query.search

    # ---- fetching ------------------------------------------------------------
    async def _guarded(self, awaitable, what: str):
        try:
            if self.timeout is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError as e:
            raise FetchError(f"{what} timed out after {self.timeout}s") from e
        except StoreError as e:
            raise FetchError(f"{what} failed: {e}") from e

    async def refresh(self) -> bool:
        """
        Fetch the page for the current query. Returns True when the result
        was applied, False when a newer request superseded it.
        """
        self._generation += 1
        generation = self._generation
        query = self.query
        self.busy = True
        try:
            result = await self._guarded(self._fetch_page(query), "page fetch")
        except FetchError:
            if generation == self._generation:
                self.busy = False
                logger.warning("page fetch failed for %r", query)
                raise
            return False

        if generation != self._generation:
            logger.debug("discarding stale page (gen %s, latest %s)", generation, self._generation)
            return False

        self.rows = list(result.users)
        self.total = result.total
        for row in self.rows:
            self._seen[row.id] = row.email
        self.busy = False
        return True

    def _reset_for(self, query: PageQuery) -> None:
        if query.search != self.query.search:
            self._seen = {}
        self.query = query
        self.selection = ExplicitSelection()

    async def set_search(self, search: str) -> bool:
        self._reset_for(replace(self.query, page=1, search=(search or "").strip()))
        return await self.refresh()

    async def set_limit(self, limit: int) -> bool:
        self._reset_for(replace(self.query, page=1, limit=int(limit)))
        return await self.refresh()

    async def go_to_page(self, page: int) -> bool:
        page = max(1, min(int(page), max(self.total_pages, 1)))
        self._reset_for(replace(self.query, page=page))
        return await self.refresh()

    def navigate(self, query: PageQuery) -> bool:
        """
        Adopt a query restored from URL parameters. Selection is cleared when
        page, limit or search differ. Returns True when the query changed.
        """
        if query == self.query:
            return False
        self._reset_for(query)
        return True

    # ---- selection -----------------------------------------------------------
    def toggle_row(self, row_id: str) -> None:
        if isinstance(self.selection, AllMatching):
            # every visible row was implicitly selected
            ids = set(self.page_ids)
        else:
            ids = set(self.selection.ids)
        if row_id in ids:
            ids.discard(row_id)
        else:
            ids.add(row_id)
        self.selection = ExplicitSelection(frozenset(ids))

    def toggle_all_on_page(self) -> None:
        if self.page_fully_selected:
            self.selection = ExplicitSelection()
        else:
            self.selection = ExplicitSelection(frozenset(self.page_ids))

    def clear_selection(self) -> None:
        self.selection = ExplicitSelection()

    async def select_all_matching(self) -> bool:
        """
        Fetch every matching email for the current search (all pages) and
        switch to all-matching mode. Returns False when the query changed
        before the fetch finished; the stale result is then dropped.
        """
        generation = self._generation
        search = self.query.search
        emails = await self._guarded(self._fetch_all_emails(search), "select all")
        if generation != self._generation or search != self.query.search:
            logger.debug("discarding stale select-all for %r", search)
            return False
        self._all_cache = _AllMatchingCache(search=search, emails=list(emails))
        self.selection = AllMatching(search=search, count=len(emails))
        return True

    async def resolve_selected_emails(self) -> List[str]:
        """Emails of the current selection, each address once, in listing order."""
        if isinstance(self.selection, AllMatching):
            cache = self._all_cache
            if cache is not None and cache.search == self.selection.search:
                emails = cache.emails
            else:
                emails = await self._guarded(
                    self._fetch_all_emails(self.selection.search), "email resolution"
                )
                self._all_cache = _AllMatchingCache(search=self.selection.search, emails=list(emails))
        else:
            picked = self.selection.ids
            emails = [email for row_id, email in self._seen.items() if row_id in picked]
        return list(dict.fromkeys(e for e in emails if e))

    # ---- persistence (Flask session) -------------------------------------------
    def to_session(self) -> Dict[str, Any]:
        # only ids the next request can use; the cookie stays small
        keep = set(self.page_ids) | set(self.selected_ids)
        state: Dict[str, Any] = {
            "generation": self._generation,
            "page": self.query.page,
            "limit": self.query.limit,
            "q": self.query.search,
            "total": self.total,
            "seen": {i: e for i, e in self._seen.items() if i in keep},
            "page_ids": self.page_ids,
        }
        if isinstance(self.selection, AllMatching):
            state["mode"] = "all"
            state["all_search"] = self.selection.search
            state["all_count"] = self.selection.count
        else:
            state["mode"] = "ids"
            state["ids"] = sorted(self.selection.ids)
        return state

    @classmethod
    def from_session(
        cls,
        state: Optional[Mapping[str, Any]],
        fetch_page: PageFetcher,
        fetch_all_emails: EmailsFetcher,
        *,
        timeout: Optional[float] = None,
    ) -> "EmailSelectionController":
        ctrl = cls(fetch_page, fetch_all_emails, timeout=timeout)
        if not state:
            return ctrl
        try:
            ctrl.query = PageQuery(
                page=int(state.get("page", 1)),
                limit=int(state.get("limit", DEFAULT_LIMIT)),
                search=state.get("q") or "",
            )
            ctrl._generation = int(state.get("generation") or 0)
        except (TypeError, ValueError):
            # tampered or outdated session payload: start clean
            return ctrl
        ctrl.total = int(state.get("total") or 0)
        ctrl._seen = {str(k): v for k, v in (state.get("seen") or {}).items()}
        ctrl.rows = [
            UserEmailRow(id=i, display_name=None, email=ctrl._seen.get(i, ""), created_at=None)
            for i in state.get("page_ids") or []
        ]
        if state.get("mode") == "all":
            ctrl.selection = AllMatching(
                search=state.get("all_search") or "",
                count=int(state.get("all_count") or 0),
            )
        else:
            ctrl.selection = ExplicitSelection(frozenset(state.get("ids") or ()))
        return ctrl
