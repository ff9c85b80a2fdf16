# tests/test_topics.py
from datetime import date, datetime, timezone

import pytest

from study_guru.db import init_db, get_connection
from study_guru.fsrs_scheduler import review_card
from study_guru.seed import seed_syllabus
from study_guru.srs import as_local_naive, is_due
from study_guru.topics import (
    get_all_subjects, get_all_topics_with_progress, get_nemesis_topics, get_topic_by_id,
    get_topics_due_for_review, get_weakest_topics, record_wrong_answer, save_review,
    set_nemesis, update_topic_notes, upsert_topic_progress,
)
from fsrs import Rating

SYLLABUS = [
    {"id": 1, "name": "Anatomy", "short_code": "ANAT", "inicet_weight": 8, "topics": [
        {"name": "Brachial Plexus", "priority": 9, "minutes": 40},
        {"name": "Histology", "priority": 4, "minutes": 20},
    ]},
    {"id": 2, "name": "Pathology", "short_code": "PATH", "inicet_weight": 10, "topics": [
        {"name": "Neoplasia", "priority": 10, "minutes": 60},
    ]},
]


def _setup(db_path):
    init_db(db_path)
    seed_syllabus(db_path, SYLLABUS)
    return {t.name: t.id for t in get_all_topics_with_progress(db_path)}


def test_get_all_subjects(tmp_db):
    _setup(tmp_db)
    subjects = get_all_subjects(tmp_db)
    assert [s.short_code for s in subjects] == ["ANAT", "PATH"]
    assert subjects[1].inicet_weight == 10


def test_topics_ordered_by_priority_with_default_progress(tmp_db):
    _setup(tmp_db)
    topics = get_all_topics_with_progress(tmp_db)
    assert [t.name for t in topics] == ["Neoplasia", "Brachial Plexus", "Histology"]
    assert all(t.progress.status == "unseen" for t in topics)
    assert topics[0].subject_name == "Pathology"
    assert topics[0].subject_code == "PATH"


def test_get_topic_by_id_missing(tmp_db):
    _setup(tmp_db)
    assert get_topic_by_id(tmp_db, 999) is None


def test_save_review_round_trips_progress_and_card(tmp_db):
    ids = _setup(tmp_db)
    now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    card = review_card(None, Rating.Good, now)
    save_review(tmp_db, ids["Neoplasia"], "mastered", 4, now, date(2026, 3, 15), card, xp=80)

    topic = get_topic_by_id(tmp_db, ids["Neoplasia"])
    assert topic.progress.status == "mastered"
    assert topic.progress.confidence == 4
    assert topic.progress.times_studied == 1
    assert topic.progress.xp_earned == 80
    assert topic.progress.last_studied_at == as_local_naive(now)
    assert topic.progress.last_studied_at.tzinfo is None
    assert topic.progress.next_review_date == date(2026, 3, 15)
    assert topic.progress.card == card


def test_save_review_increments_counters(tmp_db):
    ids = _setup(tmp_db)
    now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    card = review_card(None, Rating.Hard, now)
    save_review(tmp_db, ids["Histology"], "reviewed", 3, now, date(2026, 3, 8), card, xp=10)
    save_review(tmp_db, ids["Histology"], "reviewed", 3, now, date(2026, 3, 8), card, xp=5)
    topic = get_topic_by_id(tmp_db, ids["Histology"])
    assert topic.progress.times_studied == 2
    assert topic.progress.xp_earned == 15


def test_fsrs_columns_all_empty_or_all_set(tmp_db):
    ids = _setup(tmp_db)
    now = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    record_wrong_answer(tmp_db, ids["Histology"])
    save_review(tmp_db, ids["Neoplasia"], "seen", 1, now, date(2026, 3, 2), review_card(None, Rating.Again, now))
    conn = get_connection(tmp_db)
    rows = conn.execute(
        """SELECT fsrs_due, fsrs_stability, fsrs_difficulty, fsrs_elapsed_days, fsrs_scheduled_days,
        fsrs_reps, fsrs_lapses, fsrs_state, fsrs_last_review FROM topic_progress"""
    ).fetchall()
    conn.close()
    for row in rows:
        values = [row[i] for i in range(9)]
        assert all(v is None for v in values) or all(v is not None for v in values)


def test_due_for_review(tmp_db):
    ids = _setup(tmp_db)
    upsert_topic_progress(tmp_db, ids["Neoplasia"], {"status": "seen", "confidence": 1, "next_review_date": date(2026, 3, 1)})
    upsert_topic_progress(tmp_db, ids["Histology"], {"status": "reviewed", "confidence": 3, "next_review_date": date(2026, 3, 9)})
    due = get_topics_due_for_review(tmp_db, today=date(2026, 3, 2))
    assert [t.name for t in due] == ["Neoplasia"]
    due_later = get_topics_due_for_review(tmp_db, today=date(2026, 3, 10))
    assert [t.name for t in due_later] == ["Neoplasia", "Histology"]


def test_unseen_topics_are_never_due(tmp_db):
    _setup(tmp_db)
    assert get_topics_due_for_review(tmp_db, today=date(2030, 1, 1)) == []


def test_weakest_topics(tmp_db):
    ids = _setup(tmp_db)
    upsert_topic_progress(tmp_db, ids["Neoplasia"], {"status": "seen", "confidence": 1, "times_studied": 2})
    upsert_topic_progress(tmp_db, ids["Histology"], {"status": "mastered", "confidence": 5, "times_studied": 3})
    assert [t.name for t in get_weakest_topics(tmp_db)] == ["Neoplasia"]


def test_upsert_rejects_unknown_columns(tmp_db):
    ids = _setup(tmp_db)
    with pytest.raises(ValueError):
        upsert_topic_progress(tmp_db, ids["Neoplasia"], {"topic_id": 5})


def test_nemesis_inputs(tmp_db):
    ids = _setup(tmp_db)
    record_wrong_answer(tmp_db, ids["Histology"])
    record_wrong_answer(tmp_db, ids["Histology"])
    set_nemesis(tmp_db, ids["Histology"])
    nemeses = get_nemesis_topics(tmp_db)
    assert [t.name for t in nemeses] == ["Histology"]
    assert nemeses[0].progress.wrong_count == 2
    assert nemeses[0].progress.status == "unseen"
    set_nemesis(tmp_db, ids["Histology"], False)
    assert get_nemesis_topics(tmp_db) == []


def test_studied_topic_without_date_is_due(tmp_db):
    ids = _setup(tmp_db)
    upsert_topic_progress(tmp_db, ids["Histology"], {"status": "reviewed", "confidence": 3})
    due = get_topics_due_for_review(tmp_db, today=date(2026, 3, 2))
    assert [t.name for t in due] == ["Histology"]
    progress = due[0].progress
    assert is_due(progress.next_review_date, date(2026, 3, 2), progress.status)


def test_aware_last_studied_at_is_read_back_naive(tmp_db):
    ids = _setup(tmp_db)
    aware = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
    conn = get_connection(tmp_db)
    conn.execute(
        "INSERT INTO topic_progress (topic_id, status, last_studied_at) VALUES (?, 'seen', ?)",
        (ids["Neoplasia"], aware.isoformat()),
    )
    conn.commit()
    conn.close()
    topic = get_topic_by_id(tmp_db, ids["Neoplasia"])
    assert topic.progress.last_studied_at.tzinfo is None
    assert topic.progress.last_studied_at == as_local_naive(aware)


def test_update_topic_notes(tmp_db):
    ids = _setup(tmp_db)
    update_topic_notes(tmp_db, ids["Neoplasia"], "  Hallmarks: sustained proliferative signalling  ")
    topic = get_topic_by_id(tmp_db, ids["Neoplasia"])
    assert topic.progress.user_notes == "Hallmarks: sustained proliferative signalling"
    assert topic.progress.status == "unseen"
    update_topic_notes(tmp_db, ids["Neoplasia"], "Rewritten")
    assert get_topic_by_id(tmp_db, ids["Neoplasia"]).progress.user_notes == "Rewritten"
