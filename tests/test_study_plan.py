# tests/test_study_plan.py
from datetime import date, datetime

from study_guru.db import init_db
from study_guru.models import DailyPlan, PlanItem, Topic, TopicProgress
from study_guru.profile import update_user_profile
from study_guru.seed import seed_all
from study_guru.study_plan import (
    filter_for_availability, generate_study_plan, get_todays_agenda_with_times,
    simulate_study_plan, slot_today,
)

TODAY = date(2026, 3, 1)


def make_topic(topic_id, priority=5, minutes=40, subject_id=1, **progress):
    return Topic(
        id=topic_id, subject_id=subject_id, name=f"Topic {topic_id}", inicet_priority=priority,
        estimated_minutes=minutes, progress=TopicProgress(topic_id=topic_id, **progress),
    )


def simulate(topics, due=(), weights=None, goal=120, days=10):
    return simulate_study_plan(list(topics), list(due), weights or {}, goal, days, TODAY)


def test_new_topics_fill_first_day_and_book_reviews():
    topics = [make_topic(i) for i in range(1, 21)]
    plan, _ = simulate(topics)
    day0 = plan[0]
    studied = [i.topic.id for i in day0.items if i.type == "study"]
    assert len(studied) == 3
    assert day0.total_minutes == 120
    for offset in (1, 4):
        reviewed = {i.topic.id for i in plan[offset].items if i.type == "review"}
        assert set(studied) <= reviewed
    assert [i.id for i in plan[1].items if i.type == "review"] == [f"rev_{t}_1" for t in studied]


def test_second_day_takes_reviews_then_new_topics():
    plan, _ = simulate([make_topic(i) for i in range(1, 21)])
    day1 = plan[1]
    assert [i.type for i in day1.items] == ["review"] * 3 + ["study"] * 2
    assert day1.total_minutes == 125


def test_plan_length_and_labels():
    plan, summary = simulate([make_topic(1)], days=90)
    assert len(plan) == 60
    assert summary.days_remaining == 90
    assert [d.day_label for d in plan[:3]] == ["Today", "Tomorrow", "Tue, Mar 3"]
    assert plan[2].date == "2026-03-03"


def test_no_days_left_gives_empty_plan():
    plan, summary = simulate([make_topic(1)], days=0)
    assert plan == []
    assert summary.days_remaining == 0


def test_rest_days_are_empty():
    plan, summary = simulate([make_topic(1, minutes=30)])
    assert [d.is_rest_day for d in plan[:5]] == [False, False, True, True, False]
    for day in plan:
        if day.is_rest_day:
            assert day.items == []
            assert day.total_minutes == 0
    assert summary.feasible is True
    assert summary.message == "Plan looks solid. Stick to it!"


def test_overloaded_backlog_is_infeasible():
    topics = [make_topic(i, minutes=60) for i in range(1, 101)]
    _, summary = simulate(topics, goal=60, days=5)
    assert summary.feasible is False
    assert summary.total_topics_left > 0
    assert summary.message.startswith(f"Tight! {summary.total_topics_left} topics")


def test_review_overflow_rolls_to_next_day():
    topics = [make_topic(i, minutes=10) for i in range(1, 11)]
    plan, _ = simulate(topics, goal=30)
    assert [i.topic.id for i in plan[0].items] == [1, 2, 3]
    assert [i.id for i in plan[1].items] == ["rev_1_1", "rev_2_1"]
    assert plan[2].items[0].id == "rev_3_1"


def test_due_topics_are_reviewed_first_not_deep_dived():
    due = make_topic(1, status="seen", confidence=1, next_review_date=TODAY)
    weak = make_topic(2, status="seen", confidence=2, minutes=30)
    solid = make_topic(3, status="reviewed", confidence=4)
    plan, _ = simulate([due, weak, solid], due=[due])
    assert [(i.topic.id, i.type) for i in plan[0].items] == [(1, "review"), (2, "deep_dive")]
    assert plan[0].items[0].duration == 15
    assert plan[2].items[0].id == "rev_2_post_dive"


def test_deep_dives_stop_past_soft_cap():
    topics = [make_topic(i, status="seen", confidence=1, minutes=80) for i in range(1, 4)]
    plan, summary = simulate(topics)
    assert [i.type for i in plan[0].items] == ["deep_dive"]
    assert summary.total_topics_left == 0


def test_new_topics_ordered_by_subject_weight_and_priority():
    low_weight = make_topic(1, priority=9, subject_id=2)
    high_weight = make_topic(2, priority=5, subject_id=1)
    plan, _ = simulate([low_weight, high_weight], weights={1: 10, 2: 2})
    assert [i.topic.id for i in plan[0].items] == [2, 1]


def test_summary_hours():
    plan, summary = simulate([make_topic(i) for i in range(1, 21)], days=10)
    total = sum(d.total_minutes for d in plan)
    assert summary.total_hours_left == round(total / 60)
    assert summary.required_hours_per_day > 0


def test_filter_for_availability():
    topic = make_topic(1)
    items = [
        PlanItem(id="a", topic=topic, type="deep_dive", duration=30),
        PlanItem(id="b", topic=topic, type="study", duration=20),
        PlanItem(id="c", topic=topic, type="review", duration=15),
    ]
    assert [i.id for i in filter_for_availability(items, None)] == ["a", "b", "c"]
    assert [i.id for i in filter_for_availability(items, 40)] == ["b", "c"]
    assert [i.id for i in filter_for_availability(items, 15)] == ["c"]
    assert filter_for_availability(items, 0) == []


def test_slot_today_uses_upcoming_preferred_hours():
    topic = make_topic(1)
    plan = DailyPlan(date="2026-03-01", day_label="Today", items=[
        PlanItem(id="a", topic=topic, type="study", duration=40),
        PlanItem(id="b", topic=topic, type="review", duration=15),
        PlanItem(id="c", topic=topic, type="review", duration=15),
    ], total_minutes=70)
    tasks = slot_today(plan, None, [9, 19, 21], datetime(2026, 3, 1, 18, 0))
    assert [t.time_label for t in tasks] == ["19:00 - 19:40", "19:40 - 19:55", "21:00 - 21:15"]


def test_slot_today_late_in_the_day():
    topic = make_topic(1)
    plan = DailyPlan(date="2026-03-01", day_label="Today", items=[
        PlanItem(id="a", topic=topic, type="study", duration=40),
    ], total_minutes=40)
    tasks = slot_today(plan, None, [9, 19, 21], datetime(2026, 3, 1, 22, 10))
    assert tasks[0].time_label == "23:00 - 23:40"


def test_slot_today_without_plan():
    assert slot_today(None, 60, [9], datetime(2026, 3, 1, 8, 0)) == []


def test_generate_study_plan_from_database(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    plan, summary = generate_study_plan(tmp_db, TODAY)
    assert len(plan) == 60
    assert plan[0].total_minutes == 120
    assert summary.days_remaining == (date(2027, 5, 1) - TODAY).days


def test_generate_study_plan_defaults_daily_goal(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    update_user_profile(tmp_db, daily_goal_minutes=0)
    plan, _ = generate_study_plan(tmp_db, TODAY)
    assert plan[0].total_minutes == 120


def test_generate_study_plan_after_exam(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    update_user_profile(tmp_db, inicet_date="2026-01-01")
    plan, summary = generate_study_plan(tmp_db, TODAY)
    assert plan == []
    assert summary.days_remaining == 0
    assert get_todays_agenda_with_times(tmp_db, now=datetime(2026, 3, 1, 8, 0)) == []


def test_todays_agenda_with_times(tmp_db):
    init_db(tmp_db)
    seed_all(tmp_db)
    tasks = get_todays_agenda_with_times(tmp_db, now=datetime(2026, 3, 1, 8, 0))
    assert [t.topic.name for t in tasks] == ["Neoplasia", "Cardiology"]
    assert [t.time_label for t in tasks] == ["09:00 - 10:00", "19:00 - 20:00"]
