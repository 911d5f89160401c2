from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


class Sentiment(str, enum.Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    UNRECOGNIZED = "unrecognized"


_LEXICON: Dict[str, Sentiment] = {
    **{w: Sentiment.POSITIVE for w in ("positive", "like", "good", "yes")},
    **{w: Sentiment.NEGATIVE for w in ("negative", "dislike", "bad", "no")},
    **{w: Sentiment.NEUTRAL for w in ("neutral", "maybe", "ok")},
}


@dataclass(frozen=True)
class Classification:
    sentiment: Sentiment
    raw: Optional[str]  # the option as stored, kept for UNRECOGNIZED reporting


@dataclass
class FeatureSentimentTally:
    feature_name: str
    total: int = 0
    positive: int = 0
    negative: int = 0
    neutral: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    def percent(self, bucket: str) -> int:
        """Rounded share of `bucket` in total (0 when there are no responses)."""
        if not self.total:
            return 0
        return round(getattr(self, bucket) * 100 / self.total)


def normalize_option(raw: Optional[str]) -> str:
    return (raw or "").strip().lower()


def classify_option(raw: Optional[str]) -> Classification:
    return Classification(_LEXICON.get(normalize_option(raw), Sentiment.UNRECOGNIZED), raw)


def fold_unrecognized(sentiment: Sentiment) -> Sentiment:
    """Bucketing policy: options outside the lexicon count as neutral."""
    if sentiment is Sentiment.UNRECOGNIZED:
        return Sentiment.NEUTRAL
    return sentiment


def _field(record: Any, name: str):
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def aggregate_sentiment(records: Iterable[Any]) -> List[FeatureSentimentTally]:
    """
    Tally feedback per feature into positive/negative/neutral buckets.

    Returns one tally per distinct feature_name, largest total first; features
    with equal totals keep the order in which they were first seen.
    Records can be mappings or objects exposing feature_name/selected_option.
    """
    tallies: Dict[str, FeatureSentimentTally] = {}
    for record in records or ():
        feature = _field(record, "feature_name")
        tally = tallies.get(feature)
        if tally is None:
            tally = tallies[feature] = FeatureSentimentTally(feature_name=feature)
        tally.total += 1

        classified = classify_option(_field(record, "selected_option"))
        if classified.sentiment is Sentiment.UNRECOGNIZED:
            logger.debug("unrecognized feedback option %r for %s", classified.raw, feature)
        bucket = fold_unrecognized(classified.sentiment)
        setattr(tally, bucket.value, getattr(tally, bucket.value) + 1)

    # sorted() is stable: ties stay in first-seen order
    return sorted(tallies.values(), key=lambda t: t.total, reverse=True)
