"""User profile, streak and daily check-in log."""
from datetime import date, timedelta

from study_guru.db import get_connection
from study_guru.models import DailyLog, UserProfile

PROFILE_FIELDS = (
    "display_name", "total_xp", "current_level", "streak_current", "streak_best",
    "daily_goal_minutes", "inicet_date", "neet_date", "preferred_session_length",
    "last_active_date", "quiz_correct_count",
)


def get_user_profile(db_path: str) -> UserProfile:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM user_profile WHERE id = 1").fetchone()
    conn.close()
    if not row:
        return UserProfile()
    return UserProfile(**{name: row[name] for name in PROFILE_FIELDS})


def update_user_profile(db_path: str, **updates) -> None:
    unknown = set(updates) - set(PROFILE_FIELDS)
    if unknown:
        raise ValueError(f"Unknown profile fields: {sorted(unknown)}")
    if not updates:
        return
    assignments = ", ".join(f"{name} = ?" for name in updates)
    conn = get_connection(db_path)
    conn.execute("INSERT OR IGNORE INTO user_profile (id) VALUES (1)")
    conn.execute(f"UPDATE user_profile SET {assignments} WHERE id = 1", tuple(updates.values()))
    conn.commit()
    conn.close()


def update_streak(db_path: str, studied_today: bool, today: date | None = None) -> None:
    """Extend the streak on the first study day after yesterday; restart it after a gap."""
    today = today or date.today()
    profile = get_user_profile(db_path)
    if profile.last_active_date == today.isoformat() or not studied_today:
        return
    yesterday = (today - timedelta(days=1)).isoformat()
    streak = profile.streak_current + 1 if profile.last_active_date == yesterday else 1
    update_user_profile(
        db_path,
        streak_current=streak,
        streak_best=max(streak, profile.streak_best),
        last_active_date=today.isoformat(),
    )


def checkin_today(db_path: str, mood: str, today: date | None = None) -> None:
    today = today or date.today()
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO daily_log (date, checked_in, mood) VALUES (?, 1, ?)
        ON CONFLICT(date) DO UPDATE SET checked_in = 1, mood = excluded.mood""",
        (today.isoformat(), mood),
    )
    conn.commit()
    conn.close()


def get_daily_log(db_path: str, day: date | None = None) -> DailyLog | None:
    day = day or date.today()
    conn = get_connection(db_path)
    r = conn.execute("SELECT * FROM daily_log WHERE date = ?", (day.isoformat(),)).fetchone()
    conn.close()
    if not r:
        return None
    return DailyLog(
        date=r["date"],
        checked_in=bool(r["checked_in"]),
        mood=r["mood"],
        total_minutes=r["total_minutes"],
        xp_earned=r["xp_earned"],
        session_count=r["session_count"],
    )


def get_days_to_exam(exam_date: str, today: date | None = None) -> int:
    today = today or date.today()
    return max(0, (date.fromisoformat(exam_date) - today).days)
