# tests/test_fsrs_scheduler.py
from datetime import datetime, timedelta, timezone

from fsrs import Rating, State

from study_guru.fsrs_scheduler import (
    confidence_to_rating, is_card_due, new_card, retrievability, review_card,
)

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def test_confidence_to_rating():
    assert confidence_to_rating(0) == Rating.Again
    assert confidence_to_rating(2) == Rating.Again
    assert confidence_to_rating(3) == Rating.Hard
    assert confidence_to_rating(4) == Rating.Good
    assert confidence_to_rating(5) == Rating.Easy
    assert confidence_to_rating(12) == Rating.Easy


def test_new_card_is_due_now():
    card = new_card(NOW)
    assert card.due == NOW
    assert card.reps == 0
    assert card.last_review is None
    assert card.state == State.Learning.value


def test_fresh_card_reviews_are_independent_of_call_order():
    easy_first = review_card(None, Rating.Easy, NOW)
    again = review_card(None, Rating.Again, NOW)
    easy_second = review_card(None, Rating.Easy, NOW)
    assert easy_first == easy_second
    assert again.due < easy_first.due


def test_review_populates_every_field():
    card = review_card(None, Rating.Good, NOW)
    assert card.stability is not None
    assert card.difficulty is not None
    assert card.reps == 1
    assert card.lapses == 0
    assert card.last_review == NOW
    assert card.due > NOW
    assert card.scheduled_days >= 1
    assert card.state == State.Review.value


def test_better_rating_schedules_further_out():
    hard = review_card(None, Rating.Hard, NOW)
    easy = review_card(None, Rating.Easy, NOW)
    assert easy.due > hard.due


def test_forgetting_a_review_card_counts_a_lapse():
    card = review_card(None, Rating.Good, NOW)
    later = card.due + timedelta(hours=1)
    lapsed = review_card(card, Rating.Again, later)
    assert lapsed.lapses == 1
    assert lapsed.reps == 2
    assert lapsed.elapsed_days == (later - NOW).days
    assert lapsed.stability < card.stability


def test_retrievability():
    assert retrievability(None, NOW) == 0.0
    card = review_card(None, Rating.Good, NOW)
    soon = retrievability(card, NOW + timedelta(days=1))
    much_later = retrievability(card, NOW + timedelta(days=60))
    assert 0 < much_later < soon <= 1


def test_is_card_due():
    assert not is_card_due(None, NOW)
    card = review_card(None, Rating.Good, NOW)
    assert not is_card_due(card, NOW)
    assert is_card_due(card, card.due + timedelta(seconds=1))


def test_naive_datetimes_are_accepted():
    card = review_card(None, Rating.Good, datetime(2026, 3, 1, 9, 0))
    assert card.due.tzinfo is not None
