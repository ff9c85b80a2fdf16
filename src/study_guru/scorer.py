"""Priority scoring for choosing what to study next.

All terms are additive with hand-tuned weights. The due and nemesis bonuses
put a topic well ahead of an otherwise identical one, unless it was studied
very recently.
"""
from datetime import datetime

from study_guru.models import Topic
from study_guru.srs import as_local_naive, is_due

STATUS_BONUS = {"unseen": 10, "seen": 6, "reviewed": 3, "mastered": 0}
DUE_BONUS = 16
FIRST_WATCH_BONUS = 10
NEMESIS_BONUS = 50


def _recency_penalty(topic: Topic, now: datetime) -> float:
    last = topic.progress.last_studied_at
    if last is None:
        return 0
    hours_since = (now - as_local_naive(last)).total_seconds() / 3600
    if topic.progress.is_nemesis:
        return 30 if hours_since < 12 else 0
    if hours_since < 24:
        return 20
    if hours_since < 48:
        return 10
    return 0


def score_topic(topic: Topic, mood: str, now: datetime | None = None) -> float:
    now = as_local_naive(now or datetime.now())
    p = topic.progress
    score = topic.inicet_priority * 1.5
    score += STATUS_BONUS.get(p.status, 0)
    score += (5 - p.confidence) * 2

    if is_due(p.next_review_date, now.date(), p.status):
        score += DUE_BONUS
    # Freshly introduced, needs quick reinforcement
    if p.status == "seen" and p.confidence <= 1 and p.times_studied <= 1:
        score += FIRST_WATCH_BONUS
    if p.is_nemesis:
        score += NEMESIS_BONUS

    score -= _recency_penalty(topic, now)

    if mood in ("tired", "stressed"):
        if p.status == "unseen":
            score -= 10
        if p.status == "mastered":
            score += 5
    elif mood == "energetic":
        if p.status == "unseen":
            score += 5
        if topic.inicet_priority >= 8:
            score += 5
    return score


def rank_topics(topics: list[Topic], mood: str, now: datetime | None = None) -> list[tuple[Topic, float]]:
    """(topic, score) pairs, highest first; ties keep input order."""
    now = as_local_naive(now or datetime.now())
    scored = [(t, score_topic(t, mood, now)) for t in topics]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)
