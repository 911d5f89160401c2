from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from studyadmin.models import (
    CommunityMessage,
    CommunityReport,
    Profile,
    StudyRoom,
    StudyRoomMessage,
    StudyRoomReport,
)
from studyadmin.observability import log_event
from .errors import ServiceError, StoreError
from .store import RowStore, safe_lookup_map

logger = logging.getLogger(__name__)


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    MESSAGE_DELETED = "message_deleted"
    DISMISSED = "dismissed"


@dataclass(frozen=True)
class ReportKind:
    key: str
    label: str
    report_model: Any
    message_model: Any
    room_model: Any = None


COMMUNITY = ReportKind("community", "Community", CommunityReport, CommunityMessage)
STUDY_ROOM = ReportKind("study_room", "Study Rooms", StudyRoomReport, StudyRoomMessage, StudyRoom)
REPORT_KINDS = {k.key: k for k in (COMMUNITY, STUDY_ROOM)}


def get_kind(key: str) -> ReportKind:
    try:
        return REPORT_KINDS[key]
    except KeyError:
        raise ServiceError(f"Unknown report kind: {key}") from None


@dataclass(frozen=True)
class ReportView:
    id: str
    kind: str
    message_id: Optional[str]
    reporter_id: Optional[str]
    reason: Optional[str]
    created_at: Optional[datetime]
    message: Any = None
    reporter: Any = None
    room: Any = None
    status: ReportStatus = ReportStatus.PENDING

    @property
    def message_content(self) -> str:
        return self.message.content if self.message is not None else ""

    @property
    def reporter_name(self) -> str:
        if self.reporter is not None and self.reporter.display_name:
            return self.reporter.display_name
        return ""


@dataclass(frozen=True)
class ModerationResult:
    kind: str
    status: ReportStatus
    target_id: str
    reports_removed: int = 0


def _matches(view: ReportView, needle: str) -> bool:
    return (
        needle in view.message_content.lower()
        or needle in (view.reason or "").lower()
        or needle in view.reporter_name.lower()
    )


def list_reports(session: Session, kind: ReportKind, *, search: str = "") -> List[ReportView]:
    """
    Pending reports of one kind, newest first, with message/reporter/room
    resolved by batch lookup. Raises StoreError when the reports themselves
    cannot be read; a failed secondary lookup just leaves that field empty.
    """
    store = RowStore(session)
    model = kind.report_model
    try:
        reports = store.select(model, order=[model.created_at.desc()])
    except StoreError as e:
        logger.error("Error fetching %s reports: %s", kind.key, e)
        raise StoreError(f"Failed to fetch {kind.label.lower()} reports") from e

    messages = safe_lookup_map(store, kind.message_model, (r.message_id for r in reports))
    reporters = safe_lookup_map(store, Profile, (r.reporter_id for r in reports))
    rooms: Dict[Any, Any] = {}
    if kind.room_model is not None:
        rooms = safe_lookup_map(store, kind.room_model, (r.room_id for r in reports))

    views = [
        ReportView(
            id=r.id,
            kind=kind.key,
            message_id=r.message_id,
            reporter_id=r.reporter_id,
            reason=r.reason,
            created_at=r.created_at,
            message=messages.get(r.message_id),
            reporter=reporters.get(r.reporter_id),
            room=rooms.get(getattr(r, "room_id", None)),
        )
        for r in reports
    ]
    needle = (search or "").strip().lower()
    if needle:
        views = [v for v in views if _matches(v, needle)]
    return views


def report_counts(session: Session) -> Dict[str, int]:
    store = RowStore(session)
    counts = {}
    for key, kind in REPORT_KINDS.items():
        try:
            counts[key] = store.count(kind.report_model)
        except StoreError as e:
            logger.error("Error counting %s reports: %s", key, e)
            counts[key] = 0
    counts["total"] = sum(counts.values())
    return counts


def delete_reported_message(session: Session, kind: ReportKind, message_id: str) -> ModerationResult:
    """
    Delete a reported message, then every report filed against it.
    Irreversible. A failure on the report cleanup is logged, not raised:
    the message is already gone at that point.
    """
    store = RowStore(session)
    removed = store.delete(kind.message_model, kind.message_model.id == message_id)
    if not removed:
        raise StoreError("Failed to delete message: not found")

    cleaned = 0
    try:
        cleaned = store.delete(kind.report_model, kind.report_model.message_id == message_id)
    except StoreError as e:
        logger.error("Error deleting reports for %s message %s: %s", kind.key, message_id, e)

    log_event(logger, "report_message_deleted", kind=kind.key, message_id=message_id, reports_removed=cleaned)
    return ModerationResult(kind=kind.key, status=ReportStatus.MESSAGE_DELETED,
                            target_id=message_id, reports_removed=cleaned)


def dismiss_report(session: Session, kind: ReportKind, report_id: str) -> ModerationResult:
    """Drop the report; the message stays visible."""
    removed = RowStore(session).delete(kind.report_model, kind.report_model.id == report_id)
    if not removed:
        raise StoreError("Failed to dismiss report: not found")
    log_event(logger, "report_dismissed", kind=kind.key, report_id=report_id)
    return ModerationResult(kind=kind.key, status=ReportStatus.DISMISSED,
                            target_id=report_id, reports_removed=removed)
