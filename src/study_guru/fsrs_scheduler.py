"""Adaptive (FSRS) review scheduling.

The memory model itself comes from the ``fsrs`` library. This module adapts
it to topic-level study:

* learning and relearning steps are disabled, so every review lands on a
  whole-day interval instead of minute-level steps meant for flashcards;
* fuzzing is off, so the same history always produces the same due date;
* intervals are capped at a year, matching the exam-prep horizon;
* the library's card has no repetition, lapse or day counters, so they are
  tracked here alongside it.
"""
from datetime import datetime, timezone

from fsrs import Card, Rating, Scheduler, State
from loguru import logger

from study_guru.models import FsrsCard
from study_guru.srs import clamp_confidence

MAXIMUM_INTERVAL_DAYS = 365

scheduler = Scheduler(
    learning_steps=(),
    relearning_steps=(),
    maximum_interval=MAXIMUM_INTERVAL_DAYS,
    enable_fuzzing=False,
)


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken as local time."""
    return moment.astimezone(timezone.utc)


def new_card(now: datetime | None = None) -> FsrsCard:
    """Empty card for a topic with no review history, due immediately."""
    now = as_utc(now or datetime.now())
    return FsrsCard(due=now, state=State.Learning.value)


def confidence_to_rating(confidence: int) -> Rating:
    confidence = clamp_confidence(confidence)
    if confidence <= 2:
        return Rating.Again
    if confidence == 3:
        return Rating.Hard
    if confidence == 4:
        return Rating.Good
    return Rating.Easy


def _to_library_card(card: FsrsCard) -> Card:
    state = State(card.state)
    return Card(
        card_id=0,
        state=state,
        step=None if state == State.Review else 0,
        stability=card.stability,
        difficulty=card.difficulty,
        due=card.due,
        last_review=card.last_review,
    )


def review_card(card: FsrsCard | None, rating: Rating, now: datetime | None = None) -> FsrsCard:
    """Apply one review to ``card`` (a fresh card when None) and return the updated card."""
    now = as_utc(now or datetime.now())
    if card is None:
        card = new_card(now)

    updated, _ = scheduler.review_card(_to_library_card(card), rating, review_datetime=now)

    elapsed_days = (now - card.last_review).days if card.last_review else 0
    lapsed = rating == Rating.Again and card.state == State.Review.value
    result = FsrsCard(
        due=updated.due,
        stability=updated.stability,
        difficulty=updated.difficulty,
        elapsed_days=max(0, elapsed_days),
        scheduled_days=max(0, (updated.due - now).days),
        reps=card.reps + 1,
        lapses=card.lapses + (1 if lapsed else 0),
        state=updated.state.value,
        last_review=now,
    )
    logger.debug(
        "FSRS {} -> stability={:.2f} difficulty={:.2f} due in {}d",
        rating.name, result.stability, result.difficulty, result.scheduled_days,
    )
    return result


def retrievability(card: FsrsCard | None, now: datetime | None = None) -> float:
    """Probability of recall right now; 0 for a card never reviewed."""
    if card is None or card.last_review is None:
        return 0.0
    now = as_utc(now or datetime.now())
    return scheduler.get_card_retrievability(_to_library_card(card), current_datetime=now)


def is_card_due(card: FsrsCard | None, now: datetime | None = None) -> bool:
    if card is None:
        return False
    return card.due <= as_utc(now or datetime.now())
