"""Day-by-day study plan projection up to the exam.

The simulator drains three backlogs in fixed priority (overdue reviews, weak
topic deep dives, new topics) against the daily goal, and books synthetic
follow-up reviews on later days as it goes. Nothing is persisted; the plan is
recomputed from current progress on every call and assumes the student
follows it exactly.
"""
from collections import defaultdict
from datetime import date, datetime, timedelta

from study_guru.models import DailyPlan, PlanItem, StudyPlanSummary, TodayTask, Topic
from study_guru.profile import get_days_to_exam, get_user_profile
from study_guru.sessions import get_preferred_study_hours
from study_guru.srs import as_local_naive
from study_guru.topics import get_all_subjects, get_all_topics_with_progress, get_topics_due_for_review

MAX_PLAN_DAYS = 60
DEFAULT_DAILY_GOAL = 120
REVIEW_MINUTES = 15
REVIEW_OVERFLOW = 1.2
DEEP_DIVE_SOFT_CAP = 0.6
DEEP_DIVE_REVIEW_OFFSET = 2
NEW_TOPIC_REVIEW_OFFSETS = (1, 4)
SLOT_BLOCK_MINUTES = 50


def _day_label(day: date, offset: int) -> str:
    if offset == 0:
        return "Today"
    if offset == 1:
        return "Tomorrow"
    return f"{day:%a, %b} {day.day}"


def _review(topic: Topic, suffix: str) -> PlanItem:
    return PlanItem(id=f"rev_{topic.id}_{suffix}", topic=topic, type="review", duration=REVIEW_MINUTES)


def _summary_message(new_left: int, avg_minutes: int, daily_goal: int) -> str:
    if new_left > 0:
        return f"Tight! {new_left} topics didn't fit. Increase daily goal."
    if avg_minutes > daily_goal:
        return f"Heavy load! Avg {round(avg_minutes / 60)}h/day required."
    return "Plan looks solid. Stick to it!"


def simulate_study_plan(
    topics: list[Topic],
    due_topics: list[Topic],
    subject_weights: dict[int, int],
    daily_goal: int,
    days_to_exam: int,
    today: date,
) -> tuple[list[DailyPlan], StudyPlanSummary]:
    daily_goal = daily_goal if daily_goal > 0 else DEFAULT_DAILY_GOAL
    due_ids = {t.id for t in due_topics}

    queue_reviews = [_review(t, "init") for t in due_topics]
    queue_deep = [
        PlanItem(id=f"dive_{t.id}_init", topic=t, type="deep_dive", duration=max(1, t.estimated_minutes))
        for t in topics
        if t.progress.status != "unseen" and t.progress.confidence < 3 and t.id not in due_ids
    ]
    new_topics = sorted(
        (t for t in topics if t.progress.status == "unseen"),
        key=lambda t: subject_weights.get(t.subject_id, 5) * 1.5 + t.inicet_priority,
        reverse=True,
    )
    queue_new = [
        PlanItem(id=f"new_{t.id}_init", topic=t, type="study", duration=max(1, t.estimated_minutes))
        for t in new_topics
    ]

    future_reviews: dict[int, list[PlanItem]] = defaultdict(list)
    plan = []
    total_minutes = 0

    for offset in range(min(days_to_exam, MAX_PLAN_DAYS)):
        day = today + timedelta(days=offset)
        items = []
        minutes = 0

        # Reviews booked by earlier days; overflow rolls to tomorrow, never dropped
        overflow = []
        for item in future_reviews.pop(offset, []):
            if minutes + item.duration <= daily_goal * REVIEW_OVERFLOW:
                items.append(item)
                minutes += item.duration
            else:
                overflow.append(item)
        if overflow:
            future_reviews[offset + 1][:0] = overflow

        while queue_reviews and minutes < daily_goal:
            item = queue_reviews.pop(0)
            items.append(item)
            minutes += item.duration

        dives = 0
        while queue_deep and minutes < daily_goal:
            if dives >= 1 and minutes > daily_goal * DEEP_DIVE_SOFT_CAP:
                break
            item = queue_deep.pop(0)
            items.append(item)
            minutes += item.duration
            dives += 1
            future_reviews[offset + DEEP_DIVE_REVIEW_OFFSET].append(_review(item.topic, "post_dive"))

        while queue_new and minutes < daily_goal:
            item = queue_new.pop(0)
            items.append(item)
            minutes += item.duration
            for n, gap in enumerate(NEW_TOPIC_REVIEW_OFFSETS, 1):
                future_reviews[offset + gap].append(_review(item.topic, str(n)))

        plan.append(DailyPlan(
            date=day.isoformat(),
            day_label=_day_label(day, offset),
            items=items,
            total_minutes=minutes,
            is_rest_day=minutes == 0,
        ))
        total_minutes += minutes

    filled_days = sum(1 for d in plan if d.total_minutes > 0)
    avg_minutes = round(total_minutes / filled_days) if filled_days else 0
    summary = StudyPlanSummary(
        total_topics_left=len(queue_new) + len(queue_deep),
        total_hours_left=round(total_minutes / 60),
        days_remaining=days_to_exam,
        required_hours_per_day=round(avg_minutes / 60, 1),
        feasible=not queue_new,
        message=_summary_message(len(queue_new), avg_minutes, daily_goal),
    )
    return plan, summary


def generate_study_plan(db_path: str, today: date | None = None) -> tuple[list[DailyPlan], StudyPlanSummary]:
    today = today or date.today()
    profile = get_user_profile(db_path)
    return simulate_study_plan(
        topics=get_all_topics_with_progress(db_path),
        due_topics=get_topics_due_for_review(db_path, limit=1000, today=today),
        subject_weights={s.id: s.inicet_weight for s in get_all_subjects(db_path)},
        daily_goal=profile.daily_goal_minutes,
        days_to_exam=get_days_to_exam(profile.inicet_date, today),
        today=today,
    )


def filter_for_availability(items: list[PlanItem], available_minutes: int | None) -> list[PlanItem]:
    """Trim today's items to what fits the time the student says they have."""
    if available_minutes is None:
        return list(items)
    if available_minutes <= 0:
        return []
    kept = []
    total = 0
    for item in items:
        if available_minutes < 45 and item.type == "deep_dive":
            continue
        if available_minutes < 20 and item.type != "review":
            continue
        if total + item.duration <= available_minutes:
            kept.append(item)
            total += item.duration
    return kept


def slot_today(
    today_plan: DailyPlan | None,
    available_minutes: int | None,
    preferred_hours: list[int],
    now: datetime,
) -> list[TodayTask]:
    """Lay today's items into roughly 50-minute blocks at the student's usual study hours."""
    if today_plan is None:
        return []
    items = filter_for_availability(today_plan.items, available_minutes)
    if not items:
        return []

    hours = [h for h in preferred_hours if h >= now.hour]
    if not hours:
        hours = [now.hour + 1, now.hour + 2, now.hour + 3]

    midnight = datetime.combine(now.date(), datetime.min.time())
    tasks = []
    hour_index = 0
    slot_minutes = 0
    for item in items:
        if hour_index < len(hours):
            hour = hours[hour_index]
        else:
            hour = hours[-1] + 1 + (hour_index - len(hours))
        start = midnight + timedelta(hours=hour % 24, minutes=slot_minutes)
        end = start + timedelta(minutes=item.duration)
        tasks.append(TodayTask(
            time_label=f"{start:%H:%M} - {end:%H:%M}",
            topic=item.topic,
            type=item.type,
            duration=item.duration,
        ))
        slot_minutes += item.duration
        if slot_minutes >= SLOT_BLOCK_MINUTES:
            hour_index += 1
            slot_minutes = 0
    return tasks


def get_todays_agenda_with_times(
    db_path: str,
    available_minutes: int | None = None,
    now: datetime | None = None,
) -> list[TodayTask]:
    now = as_local_naive(now or datetime.now())
    plan, _ = generate_study_plan(db_path, now.date())
    return slot_today(plan[0] if plan else None, available_minutes, get_preferred_study_hours(db_path), now)
