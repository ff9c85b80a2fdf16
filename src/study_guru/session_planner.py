"""Assembling the agenda for one study session."""
from datetime import datetime

from loguru import logger

from study_guru.errors import NothingToScheduleError
from study_guru.guru import AgendaResponse, SessionPlanner
from study_guru.models import Agenda, AgendaItem, Topic
from study_guru.profile import get_user_profile
from study_guru.scorer import rank_topics
from study_guru.sessions import get_days_since_last_active, get_recently_studied_topic_names
from study_guru.srs import as_local_naive, is_due
from study_guru.topics import get_all_topics_with_progress

CANDIDATE_COUNT = 15
FORGIVENESS_DAYS = 3
FORGIVENESS_MINUTES = 5
FORGIVENESS_CONTENT = ["keypoints"]
NEMESIS_CONTENT_ROTATION = ("error_hunt", "detective", "teach_back")
PYQ_SPRINT_SIZE = 8
PYQ_MINUTES_PER_TOPIC = 3

MOOD_CONTENT_TYPES = {
    "energetic": ["quiz", "error_hunt", "detective", "keypoints"],
    "good": ["keypoints", "story", "quiz", "mnemonic"],
    "okay": ["keypoints", "mnemonic", "quiz", "story"],
    "tired": ["mnemonic", "story", "keypoints"],
    "stressed": ["story", "keypoints", "mnemonic"],
    "distracted": ["keypoints", "detective"],
}
DEFAULT_CONTENT_TYPES = ["keypoints", "story", "mnemonic", "quiz"]


def get_mood_content_types(mood: str) -> list[str]:
    return list(MOOD_CONTENT_TYPES.get(mood, DEFAULT_CONTENT_TYPES))


def get_session_mode(mood: str) -> str:
    if mood == "distracted":
        return "sprint"
    if mood in ("tired", "stressed"):
        return "gentle"
    if mood == "energetic":
        return "deep"
    return "normal"


def get_session_length(mood: str, preferred_minutes: int) -> int:
    if mood == "distracted":
        return 10
    if mood == "stressed":
        return 20
    if mood == "tired":
        return 30
    return preferred_minutes


def content_types_for(topic: Topic, mood: str, now: datetime) -> list[str]:
    """Mood defaults, unless the topic is due (quiz only) or a nemesis (one active-recall drill)."""
    now = as_local_naive(now)
    if is_due(topic.progress.next_review_date, now.date(), topic.progress.status):
        # A due review only counts when answered correctly
        return ["quiz"]
    if topic.progress.is_nemesis:
        return [NEMESIS_CONTENT_ROTATION[topic.progress.wrong_count % len(NEMESIS_CONTENT_ROTATION)]]
    return get_mood_content_types(mood)


def _forgiveness_agenda(topics: list[Topic], days_inactive: int) -> Agenda:
    # Lightest possible re-entry: the most familiar topic, no scoring
    familiar = sorted(
        (t for t in topics if t.progress.status != "unseen"),
        key=lambda t: t.progress.confidence,
        reverse=True,
    )
    topic = familiar[0] if familiar else topics[0]
    return Agenda(
        items=[AgendaItem(topic=topic, content_types=list(FORGIVENESS_CONTENT), estimated_minutes=FORGIVENESS_MINUTES)],
        total_minutes=FORGIVENESS_MINUTES,
        focus_note=f"Just five minutes: {topic.name}",
        mode="gentle",
        guru_message=(
            f"It's been {days_inactive} days, and that's okay. No catching up today, "
            "just five easy minutes to get moving again."
        ),
    )


def _fallback_selection(candidates: list[Topic], mode: str, recent_topic_names: list[str]) -> AgendaResponse:
    count = 1 if mode in ("sprint", "gentle") else 2
    recent = set(recent_topic_names)
    fresh = [t for t in candidates if t.name not in recent]
    picks = fresh[:count] or candidates[:count]
    return AgendaResponse(
        selected_topic_ids=[t.id for t in picks],
        focus_note="Today: " + " + ".join(t.name for t in picks),
        guru_message=(
            "Take it easy today. Small steps still move you forward."
            if mode == "gentle"
            else "Let's get started. You've got this."
        ),
    )


def plan_agenda(
    topics: list[Topic],
    mood: str,
    preferred_minutes: int,
    recent_topic_names: list[str] | None = None,
    days_since_active: int = 0,
    planner: SessionPlanner | None = None,
    now: datetime | None = None,
) -> Agenda:
    """Build one session agenda from explicit inputs.

    The planner only chooses among the top-scored candidates. If it fails or picks
    nothing usable, the top candidates by score are used instead, skipping topics
    from recent sessions where possible.

    Raises:
        NothingToScheduleError: if ``topics`` is empty.
    """
    if not topics:
        raise NothingToScheduleError()
    now = as_local_naive(now or datetime.now())
    recent_topic_names = recent_topic_names or []

    if days_since_active >= FORGIVENESS_DAYS:
        logger.info("Inactive for {} days, building a forgiveness session", days_since_active)
        return _forgiveness_agenda(topics, days_since_active)

    session_minutes = get_session_length(mood, preferred_minutes)
    mode = get_session_mode(mood)
    ranked = rank_topics(topics, mood, now)[:CANDIDATE_COUNT]
    candidates = [t for t, _ in ranked]
    by_id = {t.id: t for t in candidates}

    response = None
    if planner is not None:
        try:
            response = planner.plan_session(ranked, session_minutes, mood, recent_topic_names)
        except Exception as e:
            logger.warning("Session planner failed, using score order: {}", e)
    selected_ids = []
    if response is not None:
        selected_ids = list(dict.fromkeys(i for i in response.selected_topic_ids if i in by_id))
        if not selected_ids:
            logger.warning("Session planner returned no usable topic ids, using score order")
    if not selected_ids:
        response = _fallback_selection(candidates, mode, recent_topic_names)
        selected_ids = response.selected_topic_ids

    items = [
        AgendaItem(
            topic=by_id[tid],
            content_types=content_types_for(by_id[tid], mood, now),
            estimated_minutes=by_id[tid].estimated_minutes,
        )
        for tid in selected_ids
    ]
    if not items:
        top = candidates[0]
        items.append(AgendaItem(topic=top, content_types=get_mood_content_types(mood), estimated_minutes=top.estimated_minutes))

    return Agenda(
        items=items,
        total_minutes=session_minutes,
        focus_note=response.focus_note,
        mode=mode,
        guru_message=response.guru_message,
    )


def build_session(
    db_path: str,
    mood: str,
    preferred_minutes: int | None = None,
    planner: SessionPlanner | None = None,
    now: datetime | None = None,
) -> Agenda:
    now = as_local_naive(now or datetime.now())
    if preferred_minutes is None:
        preferred_minutes = get_user_profile(db_path).preferred_session_length
    return plan_agenda(
        get_all_topics_with_progress(db_path),
        mood,
        preferred_minutes,
        recent_topic_names=get_recently_studied_topic_names(db_path, 3),
        days_since_active=get_days_since_last_active(db_path, now.date()),
        planner=planner,
        now=now,
    )


def plan_pyq_sprint(topics: list[Topic]) -> Agenda:
    """Timed previous-year-question practice: high-yield topics, quiz only, no personalization."""
    if not topics:
        raise NothingToScheduleError()
    ranked = sorted(
        topics,
        key=lambda t: (t.progress.times_studied > 0 or t.progress.status != "unseen", t.inicet_priority),
        reverse=True,
    )[:PYQ_SPRINT_SIZE]
    items = [AgendaItem(topic=t, content_types=["quiz"], estimated_minutes=PYQ_MINUTES_PER_TOPIC) for t in ranked]
    return Agenda(
        items=items,
        total_minutes=PYQ_MINUTES_PER_TOPIC * len(items),
        focus_note=f"PYQ Sprint: {len(items)} high-yield topics",
        mode="sprint",
        guru_message="Exam conditions. One question at a time, no second guessing.",
    )


def build_pyq_sprint(db_path: str) -> Agenda:
    return plan_pyq_sprint(get_all_topics_with_progress(db_path))
