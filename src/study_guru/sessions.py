"""Study session log and the history-derived signals the planners use."""
import json
from collections import Counter
from datetime import date, datetime, timedelta

from study_guru.db import get_connection
from study_guru.models import StudySession
from study_guru.srs import as_local_naive

DEFAULT_STUDY_HOURS = [9, 19, 21]


def create_session(
    db_path: str,
    planned_topics: list[int],
    mood: str | None,
    mode: str,
    started_at: datetime | None = None,
) -> int:
    started_at = as_local_naive(started_at or datetime.now())
    conn = get_connection(db_path)
    cur = conn.execute(
        "INSERT INTO sessions (started_at, planned_topics, mood, mode) VALUES (?, ?, ?, ?)",
        (started_at.isoformat(), json.dumps(planned_topics), mood, mode),
    )
    conn.commit()
    session_id = cur.lastrowid
    conn.close()
    return session_id


def end_session(
    db_path: str,
    session_id: int,
    completed_topics: list[int],
    xp_earned: int,
    duration_minutes: int,
    notes: str | None = None,
    ended_at: datetime | None = None,
) -> None:
    """Close the session and roll its totals into today's daily log."""
    ended_at = as_local_naive(ended_at or datetime.now())
    conn = get_connection(db_path)
    conn.execute(
        """UPDATE sessions
        SET ended_at = ?, completed_topics = ?, total_xp_earned = ?, duration_minutes = ?, notes = ?
        WHERE id = ?""",
        (ended_at.isoformat(), json.dumps(completed_topics), xp_earned, duration_minutes, notes, session_id),
    )
    conn.execute(
        """INSERT INTO daily_log (date, session_count, total_minutes, xp_earned)
        VALUES (?, 1, ?, ?)
        ON CONFLICT(date) DO UPDATE SET
            session_count = session_count + 1,
            total_minutes = total_minutes + excluded.total_minutes,
            xp_earned = xp_earned + excluded.xp_earned""",
        (ended_at.date().isoformat(), duration_minutes, xp_earned),
    )
    conn.commit()
    conn.close()


def log_external_session(
    db_path: str,
    source: str,
    duration_minutes: int,
    topic_ids: list[int] | None = None,
    notes: str | None = None,
    ended_at: datetime | None = None,
) -> int:
    """Record study done outside the app (video lectures, question banks, books).

    Stored as a finished `external` session so it counts toward activity,
    preferred hours and recently studied topics like any other session.
    """
    duration_minutes = max(0, int(duration_minutes))
    ended_at = as_local_naive(ended_at or datetime.now())
    started_at = ended_at - timedelta(minutes=duration_minutes)
    topic_ids = topic_ids or []
    session_id = create_session(db_path, topic_ids, None, "external", started_at)
    end_session(
        db_path, session_id, topic_ids, 0, duration_minutes,
        notes=f"{source}: {notes}" if notes else source,
        ended_at=ended_at,
    )
    return session_id


def get_total_external_minutes(db_path: str) -> int:
    conn = get_connection(db_path)
    total = conn.execute(
        "SELECT COALESCE(SUM(duration_minutes), 0) FROM sessions WHERE mode = 'external' AND duration_minutes > 0"
    ).fetchone()[0]
    conn.close()
    return total


def _row_to_session(r) -> StudySession:
    return StudySession(
        id=r["id"],
        started_at=datetime.fromisoformat(r["started_at"]),
        ended_at=datetime.fromisoformat(r["ended_at"]) if r["ended_at"] else None,
        planned_topics=json.loads(r["planned_topics"]),
        completed_topics=json.loads(r["completed_topics"]),
        total_xp_earned=r["total_xp_earned"],
        duration_minutes=r["duration_minutes"],
        mood=r["mood"],
        mode=r["mode"],
    )


def get_recent_sessions(db_path: str, limit: int = 7) -> list[StudySession]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM sessions ORDER BY started_at DESC LIMIT ?", (limit,)
    ).fetchall()
    conn.close()
    return [_row_to_session(r) for r in rows]


def get_recently_studied_topic_names(db_path: str, session_count: int = 3) -> list[str]:
    """Names of topics completed in the last ``session_count`` finished sessions."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT completed_topics FROM sessions
        WHERE ended_at IS NOT NULL ORDER BY started_at DESC LIMIT ?""",
        (session_count,),
    ).fetchall()
    topic_ids = sorted({tid for r in rows for tid in json.loads(r["completed_topics"])})
    if not topic_ids:
        conn.close()
        return []
    placeholders = ", ".join("?" for _ in topic_ids)
    names = conn.execute(
        f"SELECT name FROM topics WHERE id IN ({placeholders}) ORDER BY id", topic_ids
    ).fetchall()
    conn.close()
    return [r["name"] for r in names]


def get_preferred_study_hours(db_path: str) -> list[int]:
    """Top three start hours of real (10+ minute) sessions, padded with defaults."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT started_at FROM sessions
        WHERE duration_minutes >= 10 ORDER BY started_at DESC LIMIT 50"""
    ).fetchall()
    conn.close()
    counts = Counter(datetime.fromisoformat(r["started_at"]).hour for r in rows)
    ranked = [hour for hour, _ in counts.most_common()]
    if len(ranked) >= 3:
        return ranked[:3]
    merged = list(dict.fromkeys(ranked + DEFAULT_STUDY_HOURS))
    return sorted(merged[:3])


def get_days_since_last_active(db_path: str, today: date | None = None) -> int:
    """Whole days since the last finished session; 0 when there is no history yet."""
    today = today or date.today()
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT MAX(ended_at) AS last FROM sessions WHERE ended_at IS NOT NULL"
    ).fetchone()
    conn.close()
    if not row["last"]:
        return 0
    return max(0, (today - datetime.fromisoformat(row["last"]).date()).days)
