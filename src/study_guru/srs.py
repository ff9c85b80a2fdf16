"""Fixed-interval review scheduling keyed on self-rated confidence."""
from datetime import date, datetime, timedelta

# Days until next review, indexed by confidence 0-5
INTERVALS = [1, 1, 3, 7, 14, 21]


def clamp_confidence(confidence: int) -> int:
    return min(max(0, int(confidence)), 5)


def interval_days(confidence: int) -> int:
    return INTERVALS[clamp_confidence(confidence)]


def next_review_date(confidence: int, today: date | None = None) -> date:
    """Calendar date the topic comes due again after a review at this confidence."""
    today = today or date.today()
    return today + timedelta(days=interval_days(confidence))


def status_for_confidence(confidence: int) -> str:
    """Topic status after a review outcome. Every call site recording a review goes through here."""
    confidence = clamp_confidence(confidence)
    if confidence >= 4:
        return "mastered"
    if confidence >= 2:
        return "reviewed"
    return "seen"


def is_due(next_review: date | None, today: date | None = None, status: str = "seen") -> bool:
    """A topic is due once it has been studied and its review date is today or earlier.

    Unseen topics are never due. A studied topic with no review date is due.
    The review queries in ``topics`` use the same rule.
    """
    if status == "unseen":
        return False
    if next_review is None:
        return True
    return next_review <= (today or date.today())


def as_local_naive(moment: datetime) -> datetime:
    """Study timestamps are naive local time; aware ones are converted."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)
