"""Tests for data model classes."""
from study_guru.models import (
    Agenda, AgendaItem, DailyPlan, Subject, Topic, TopicProgress, UserProfile,
)


def test_subject_defaults():
    s = Subject(id=1, name="Anatomy", short_code="ANAT")
    assert s.inicet_weight == 5
    assert s.color_hex == "#555555"
    assert s.display_order == 0


def test_topic_defaults():
    t = Topic(id=7, subject_id=1, name="Brachial Plexus")
    assert t.estimated_minutes == 35
    assert t.inicet_priority == 5
    assert t.parent_topic_id is None


def test_topic_without_progress_gets_unseen_defaults():
    t = Topic(id=7, subject_id=1, name="Brachial Plexus")
    assert t.progress.topic_id == 7
    assert t.progress.status == "unseen"
    assert t.progress.confidence == 0
    assert t.progress.card is None
    assert t.progress.is_nemesis is False


def test_topic_keeps_given_progress():
    p = TopicProgress(topic_id=7, status="reviewed", confidence=3)
    t = Topic(id=7, subject_id=1, name="Brachial Plexus", progress=p)
    assert t.progress is p


def test_daily_plan_defaults():
    d = DailyPlan(date="2026-03-01", day_label="Today")
    assert d.items == []
    assert d.total_minutes == 0
    assert d.is_rest_day is False


def test_agenda():
    t = Topic(id=1, subject_id=1, name="Heart Sounds")
    agenda = Agenda(
        items=[AgendaItem(topic=t, content_types=["quiz"], estimated_minutes=20)],
        total_minutes=45, focus_note="Heart", mode="normal", guru_message="Go",
    )
    assert agenda.items[0].topic.name == "Heart Sounds"


def test_user_profile_defaults():
    p = UserProfile()
    assert p.daily_goal_minutes == 120
    assert p.preferred_session_length == 45
    assert p.current_level == 1
