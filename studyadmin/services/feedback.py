from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from studyadmin.models import FeatureFeedback, Profile
from .errors import StoreError
from .sentiment import FeatureSentimentTally, aggregate_sentiment
from .store import RowStore, attach, safe_lookup_map

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"


@dataclass(frozen=True)
class FeedbackRow:
    id: str
    feature_name: str
    selected_option: Optional[str]
    created_at: Optional[datetime]
    user_id: Optional[str]
    display_name: str
    avatar_url: str


def list_feature_feedback(session: Session, *, search: str = "") -> List[FeedbackRow]:
    """Newest feedback first, each row carrying its author's display name."""
    store = RowStore(session)
    try:
        feedback = store.select(FeatureFeedback, order=[FeatureFeedback.created_at.desc()])
    except StoreError as e:
        logger.error("Error fetching feature feedback: %s", e)
        return []

    profiles = safe_lookup_map(store, Profile, (f.user_id for f in feedback))

    rows = []
    for item, p in attach(feedback, profiles, key="user_id"):
        rows.append(FeedbackRow(
            id=item.id,
            feature_name=item.feature_name,
            selected_option=item.selected_option,
            created_at=item.created_at,
            user_id=item.user_id,
            display_name=(p.display_name if p and p.display_name else UNKNOWN_USER),
            avatar_url=(p.avatar_url if p and p.avatar_url else ""),
        ))

    needle = (search or "").strip().lower()
    if needle:
        rows = [
            r for r in rows
            if needle in r.feature_name.lower() or needle in r.display_name.lower()
        ]
    return rows


def feedback_stats(session: Session) -> Dict:
    """Totals per feature and per raw option value."""
    try:
        feedback = RowStore(session).select(FeatureFeedback)
    except StoreError as e:
        logger.error("Error fetching feedback stats: %s", e)
        return {"total": 0, "by_feature": {}, "by_option": {}}

    by_feature: Dict[str, int] = {}
    by_option: Dict[str, int] = {}
    for item in feedback:
        by_feature[item.feature_name] = by_feature.get(item.feature_name, 0) + 1
        by_option[item.selected_option] = by_option.get(item.selected_option, 0) + 1

    return {"total": len(feedback), "by_feature": by_feature, "by_option": by_option}


def feedback_breakdown(session: Session) -> List[FeatureSentimentTally]:
    try:
        feedback = RowStore(session).select(FeatureFeedback)
    except StoreError as e:
        logger.error("Error fetching feedback breakdown: %s", e)
        return []
    return aggregate_sentiment(feedback)


def delete_feedback(session: Session, feedback_id: str) -> None:
    removed = RowStore(session).delete(FeatureFeedback, FeatureFeedback.id == feedback_id)
    if not removed:
        raise StoreError(f"Feedback {feedback_id} not found")
