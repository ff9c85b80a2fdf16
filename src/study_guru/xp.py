"""Experience points, levels and the session reward."""
import random
from dataclasses import dataclass, field

from loguru import logger

from study_guru.db import get_connection
from study_guru.models import Topic
from study_guru.profile import get_user_profile

XP_REWARDS = {
    "topic_unseen": 150,
    "topic_review": 80,
    "quiz_correct": 20,
    "quiz_perfect": 50,
    "daily_checkin": 25,
    "session_complete": 100,
    "confidence_5": 75,
}

LEVELS = [
    (1, "Intern", 0),
    (2, "House Officer", 500),
    (3, "Junior Resident", 1500),
    (4, "Senior Resident", 3500),
    (5, "Registrar", 7000),
    (6, "Specialist", 12000),
    (7, "Consultant", 20000),
    (8, "Professor", 32000),
    (9, "HOD", 50000),
    (10, "AIIMS Director", 75000),
]

LUCKY_CHANCE = 0.15


@dataclass
class SessionXp:
    total: int
    breakdown: list[tuple[str, int]] = field(default_factory=list)
    lucky: bool = False


@dataclass
class LevelInfo:
    level: int
    name: str
    xp_required: int
    xp_for_next: int
    progress: float


def level_for_xp(total_xp: int) -> int:
    for level, _, required in reversed(LEVELS):
        if total_xp >= required:
            return level
    return 1


def get_level_info(total_xp: int) -> LevelInfo:
    level = level_for_xp(total_xp)
    _, name, required = LEVELS[level - 1]
    if level < len(LEVELS):
        next_required = LEVELS[level][2]
        progress = min(1.0, (total_xp - required) / (next_required - required))
    else:
        next_required = required
        progress = 1.0
    return LevelInfo(level=level, name=name, xp_required=required, xp_for_next=next_required, progress=progress)


def calculate_session_xp(
    completed_topics: list[Topic],
    quiz_results: list[tuple[int, int]],
    is_first_session_today: bool,
    rng: random.Random | None = None,
) -> SessionXp:
    """XP for a finished session. ``quiz_results`` holds (correct, total) pairs.

    The lucky-day doubling draws from ``rng`` so callers can make it deterministic.
    """
    rng = rng or random.Random()
    breakdown = []
    for topic in completed_topics:
        key = "topic_unseen" if topic.progress.status == "unseen" else "topic_review"
        breakdown.append((topic.name, XP_REWARDS[key]))
    for correct, total in quiz_results:
        if correct > 0:
            breakdown.append(("Quiz correct answers", correct * XP_REWARDS["quiz_correct"]))
        if total > 0 and correct == total:
            breakdown.append(("Perfect quiz bonus", XP_REWARDS["quiz_perfect"]))
    if is_first_session_today:
        breakdown.append(("Session complete", XP_REWARDS["session_complete"]))

    total = sum(amount for _, amount in breakdown)
    lucky = rng.random() < LUCKY_CHANCE
    if lucky:
        breakdown.append(("Lucky day 2x multiplier", total))
        total *= 2
    return SessionXp(total=total, breakdown=breakdown, lucky=lucky)


def add_xp(db_path: str, amount: int) -> tuple[int, bool, int]:
    """Add XP to the profile. Returns (new total, leveled up, new level)."""
    profile = get_user_profile(db_path)
    new_total = profile.total_xp + amount
    new_level = max(profile.current_level, level_for_xp(new_total))
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE user_profile SET total_xp = ?, current_level = ? WHERE id = 1",
        (new_total, new_level),
    )
    conn.commit()
    conn.close()
    leveled_up = new_level > profile.current_level
    if leveled_up:
        logger.info("Level up: {} -> {}", profile.current_level, new_level)
    return new_total, leveled_up, new_level


def award_session_xp(
    db_path: str,
    completed_topics: list[Topic],
    quiz_results: list[tuple[int, int]],
    is_first_session_today: bool,
    rng: random.Random | None = None,
) -> SessionXp:
    result = calculate_session_xp(completed_topics, quiz_results, is_first_session_today, rng)
    correct = sum(c for c, _ in quiz_results)
    if correct:
        conn = get_connection(db_path)
        conn.execute(
            "UPDATE user_profile SET quiz_correct_count = quiz_correct_count + ? WHERE id = 1",
            (correct,),
        )
        conn.commit()
        conn.close()
    add_xp(db_path, result.total)
    return result
