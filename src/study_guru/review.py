"""Recording review outcomes against a topic."""
from dataclasses import dataclass
from datetime import date, datetime

from loguru import logger

from study_guru import fsrs_scheduler, srs
from study_guru.errors import TopicNotFoundError
from study_guru.models import FsrsCard
from study_guru.topics import get_topic_by_id, save_review


@dataclass
class ReviewOutcome:
    status: str
    next_review_date: date
    card: FsrsCard


def record_review(
    db_path: str,
    topic_id: int,
    confidence: int,
    xp: int = 0,
    now: datetime | None = None,
) -> ReviewOutcome:
    """Record a self-rated review, updating both the interval date and the FSRS card.

    Confidence outside 0-5 is clamped. A topic with no history starts from an empty card.
    """
    now = srs.as_local_naive(now or datetime.now())
    topic = get_topic_by_id(db_path, topic_id)
    if topic is None:
        raise TopicNotFoundError(topic_id)

    confidence = srs.clamp_confidence(confidence)
    status = srs.status_for_confidence(confidence)
    next_review = srs.next_review_date(confidence, now.date())
    card = fsrs_scheduler.review_card(
        topic.progress.card, fsrs_scheduler.confidence_to_rating(confidence), now,
    )

    save_review(db_path, topic_id, status, confidence, now, next_review, card, xp=max(0, xp))
    logger.info(
        "Reviewed topic {} '{}' at confidence {}: {} (next {}, FSRS due {})",
        topic_id, topic.name, confidence, status, next_review, card.due.date(),
    )
    return ReviewOutcome(status=status, next_review_date=next_review, card=card)
