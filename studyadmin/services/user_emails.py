from __future__ import annotations

import logging
import math
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from studyadmin.models import (
    Profile,
    Task,
    Note,
    FlashcardDeck,
    Flashcard,
    StudyPlan,
    PomodoroSession,
    UserAchievement,
    Subscription,
)
from .errors import StoreError
from .store import RowStore, DEFAULT_IDENTITY_PAGE_SIZE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserEmailRow:
    id: str
    display_name: Optional[str]
    email: str
    created_at: Optional[datetime]

    def to_dict(self) -> dict:
        d = asdict(self)
        d["created_at"] = self.created_at.isoformat() if self.created_at else None
        return d


@dataclass(frozen=True)
class PaginatedUsers:
    users: List[UserEmailRow]
    total: int
    page: int
    limit: int
    total_pages: int

    def to_dict(self) -> dict:
        return {
            "users": [u.to_dict() for u in self.users],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "total_pages": self.total_pages,
        }


def _matches(row: UserEmailRow, needle: str) -> bool:
    return needle in (row.display_name or "").lower() or needle in row.email.lower()


def _user_rows(session: Session, search: str, page_size: int) -> List[UserEmailRow]:
    """Profiles (newest first) joined with identity emails; no email -> dropped."""
    store = RowStore(session)
    emails = store.identity_emails(page_size)
    profiles = store.select(Profile, order=[Profile.created_at.desc(), Profile.id.asc()])

    rows = [
        UserEmailRow(id=p.id, display_name=p.display_name, email=emails[p.id], created_at=p.created_at)
        for p in profiles
        if emails.get(p.id)
    ]
    needle = (search or "").strip().lower()
    if needle:
        rows = [r for r in rows if _matches(r, needle)]
    return rows


def get_users_with_emails(
    session: Session,
    *,
    page: int = 1,
    limit: int = 25,
    search: str = "",
    page_size: int = DEFAULT_IDENTITY_PAGE_SIZE,
) -> PaginatedUsers:
    """
    One page of users with their email. Raises StoreError on store failure;
    an out-of-range page yields an empty users list with the real totals.
    """
    try:
        rows = _user_rows(session, search, page_size)
    except StoreError as e:
        logger.error("Error in get_users_with_emails: %s", e)
        raise

    total = len(rows)
    total_pages = math.ceil(total / limit) if limit else 0
    start = (page - 1) * limit
    return PaginatedUsers(
        users=rows[start:start + limit],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
    )


def get_all_user_emails(
    session: Session,
    *,
    search: str = "",
    page_size: int = DEFAULT_IDENTITY_PAGE_SIZE,
) -> List[str]:
    """Every email matching `search` across the whole user base, de-duplicated."""
    try:
        rows = _user_rows(session, search, page_size)
    except StoreError as e:
        logger.error("Error in get_all_user_emails: %s", e)
        raise
    return list(dict.fromkeys(r.email for r in rows))


def get_user_details(session: Session, user_id: str) -> Optional[Dict]:
    """Profile, activity counts and subscription for the user detail card."""
    store = RowStore(session)
    profile = store.get(Profile, user_id)
    if profile is None:
        return None

    def _count(label, model, *filters) -> int:
        try:
            return store.count(model, filters=filters)
        except StoreError as e:
            logger.warning("user detail count %s failed for %s: %s", label, user_id, e)
            return 0

    deck_ids = [d.id for d in store.select(FlashcardDeck, filters=[FlashcardDeck.user_id == user_id])]
    stats = {
        "total_tasks": _count("tasks", Task, Task.user_id == user_id),
        "completed_tasks": _count("completed_tasks", Task, Task.user_id == user_id, Task.completed.is_(True)),
        "total_notes": _count("notes", Note, Note.user_id == user_id),
        "total_flashcards": _count("flashcards", Flashcard, Flashcard.deck_id.in_(deck_ids)) if deck_ids else 0,
        "total_study_plans": _count("study_plans", StudyPlan, StudyPlan.user_id == user_id),
        "pomodoro_sessions": _count(
            "pomodoro_sessions", PomodoroSession,
            PomodoroSession.user_id == user_id, PomodoroSession.completed.is_(True),
        ),
        "achievements": _count("achievements", UserAchievement, UserAchievement.user_id == user_id),
    }

    subs = store.select(Subscription, filters=[Subscription.user_id == user_id], range_=(0, 1))
    return {
        "profile": profile.to_dict(),
        "stats": stats,
        "subscription": subs[0].to_dict() if subs else None,
    }
