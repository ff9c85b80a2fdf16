"""Topic and per-topic progress queries."""
from datetime import date, datetime

from study_guru.db import get_connection
from study_guru.models import FsrsCard, Subject, Topic, TopicProgress
from study_guru.srs import as_local_naive

TOPIC_SELECT = """SELECT
    t.id, t.subject_id, t.parent_topic_id, t.name, t.estimated_minutes, t.inicet_priority,
    p.status, p.confidence, p.last_studied_at, p.times_studied, p.xp_earned,
    p.next_review_date, p.user_notes,
    p.fsrs_due, p.fsrs_stability, p.fsrs_difficulty, p.fsrs_elapsed_days,
    p.fsrs_scheduled_days, p.fsrs_reps, p.fsrs_lapses, p.fsrs_state, p.fsrs_last_review,
    p.wrong_count, p.is_nemesis,
    s.name as subject_name, s.short_code
FROM topics t
JOIN subjects s ON t.subject_id = s.id
LEFT JOIN topic_progress p ON t.id = p.topic_id"""

PROGRESS_COLUMNS = {
    "status", "confidence", "last_studied_at", "times_studied", "xp_earned",
    "next_review_date", "user_notes", "fsrs_due", "fsrs_stability", "fsrs_difficulty",
    "fsrs_elapsed_days", "fsrs_scheduled_days", "fsrs_reps", "fsrs_lapses", "fsrs_state",
    "fsrs_last_review", "wrong_count", "is_nemesis",
}


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _parse_local_datetime(value: str | None) -> datetime | None:
    return as_local_naive(datetime.fromisoformat(value)) if value else None


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _to_storage(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _row_to_card(r) -> FsrsCard | None:
    if r["fsrs_due"] is None:
        return None
    return FsrsCard(
        due=datetime.fromisoformat(r["fsrs_due"]),
        stability=r["fsrs_stability"],
        difficulty=r["fsrs_difficulty"],
        elapsed_days=r["fsrs_elapsed_days"] or 0,
        scheduled_days=r["fsrs_scheduled_days"] or 0,
        reps=r["fsrs_reps"] or 0,
        lapses=r["fsrs_lapses"] or 0,
        state=r["fsrs_state"],
        last_review=_parse_datetime(r["fsrs_last_review"]),
    )


def card_to_columns(card: FsrsCard) -> dict:
    """FSRS card as topic_progress column values. All nine are always written together."""
    return {
        "fsrs_due": card.due,
        "fsrs_stability": card.stability,
        "fsrs_difficulty": card.difficulty,
        "fsrs_elapsed_days": card.elapsed_days,
        "fsrs_scheduled_days": card.scheduled_days,
        "fsrs_reps": card.reps,
        "fsrs_lapses": card.lapses,
        "fsrs_state": card.state,
        "fsrs_last_review": card.last_review,
    }


def _row_to_topic(r) -> Topic:
    progress = TopicProgress(
        topic_id=r["id"],
        status=r["status"] or "unseen",
        confidence=r["confidence"] or 0,
        last_studied_at=_parse_local_datetime(r["last_studied_at"]),
        times_studied=r["times_studied"] or 0,
        xp_earned=r["xp_earned"] or 0,
        next_review_date=_parse_date(r["next_review_date"]),
        user_notes=r["user_notes"] or "",
        card=_row_to_card(r),
        wrong_count=r["wrong_count"] or 0,
        is_nemesis=bool(r["is_nemesis"]),
    )
    return Topic(
        id=r["id"],
        subject_id=r["subject_id"],
        parent_topic_id=r["parent_topic_id"],
        name=r["name"] or "Unnamed Topic",
        estimated_minutes=r["estimated_minutes"] if r["estimated_minutes"] is not None else 35,
        inicet_priority=r["inicet_priority"] if r["inicet_priority"] is not None else 5,
        subject_name=r["subject_name"] or "Unknown",
        subject_code=r["short_code"] or "???",
        progress=progress,
    )


def get_all_subjects(db_path: str) -> list[Subject]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM subjects ORDER BY display_order").fetchall()
    conn.close()
    return [
        Subject(
            id=r["id"], name=r["name"], short_code=r["short_code"], color_hex=r["color_hex"],
            inicet_weight=r["inicet_weight"], neet_weight=r["neet_weight"],
            display_order=r["display_order"],
        )
        for r in rows
    ]


def get_all_topics_with_progress(db_path: str) -> list[Topic]:
    conn = get_connection(db_path)
    rows = conn.execute(f"{TOPIC_SELECT} ORDER BY t.inicet_priority DESC, t.id").fetchall()
    conn.close()
    return [_row_to_topic(r) for r in rows]


def get_topic_by_id(db_path: str, topic_id: int) -> Topic | None:
    conn = get_connection(db_path)
    row = conn.execute(f"{TOPIC_SELECT} WHERE t.id = ?", (topic_id,)).fetchone()
    conn.close()
    return _row_to_topic(row) if row else None


def get_topics_due_for_review(db_path: str, limit: int = 10, today: date | None = None) -> list[Topic]:
    """Studied topics due by `srs.is_due` (no date, or the date has arrived), least confident first."""
    today = today or date.today()
    conn = get_connection(db_path)
    rows = conn.execute(
        f"""{TOPIC_SELECT}
        WHERE p.status != 'unseen'
          AND (p.next_review_date IS NULL OR p.next_review_date <= ?)
        ORDER BY p.confidence ASC, p.last_studied_at ASC
        LIMIT ?""",
        (today.isoformat(), limit),
    ).fetchall()
    conn.close()
    return [_row_to_topic(r) for r in rows]


def get_weakest_topics(db_path: str, limit: int = 5) -> list[Topic]:
    conn = get_connection(db_path)
    rows = conn.execute(
        f"""{TOPIC_SELECT}
        WHERE p.times_studied > 0 AND p.confidence < 3
        ORDER BY p.confidence ASC, p.times_studied DESC
        LIMIT ?""",
        (limit,),
    ).fetchall()
    conn.close()
    return [_row_to_topic(r) for r in rows]


def upsert_topic_progress(db_path: str, topic_id: int, fields: dict) -> None:
    """Insert or overwrite the given topic_progress columns in one statement."""
    unknown = set(fields) - PROGRESS_COLUMNS
    if unknown:
        raise ValueError(f"Unknown progress fields: {sorted(unknown)}")
    if not fields:
        return
    if isinstance(fields.get("last_studied_at"), datetime):
        fields = {**fields, "last_studied_at": as_local_naive(fields["last_studied_at"])}
    columns = list(fields)
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns)
    conn = get_connection(db_path)
    conn.execute(
        f"""INSERT INTO topic_progress (topic_id, {', '.join(columns)}) VALUES (?, {placeholders})
        ON CONFLICT(topic_id) DO UPDATE SET {updates}""",
        (topic_id, *[_to_storage(fields[c]) for c in columns]),
    )
    conn.commit()
    conn.close()


def save_review(
    db_path: str,
    topic_id: int,
    status: str,
    confidence: int,
    studied_at: datetime,
    next_review: date,
    card: FsrsCard,
    xp: int = 0,
) -> None:
    """Persist one review: both schedulers' outputs plus the study counters, atomically."""
    fields = {
        "status": status,
        "confidence": confidence,
        "last_studied_at": as_local_naive(studied_at),
        "next_review_date": next_review,
        **card_to_columns(card),
    }
    columns = list(fields)
    placeholders = ", ".join("?" for _ in columns)
    updates = ", ".join(f"{c} = excluded.{c}" for c in columns)
    conn = get_connection(db_path)
    conn.execute(
        f"""INSERT INTO topic_progress (topic_id, times_studied, xp_earned, {', '.join(columns)})
        VALUES (?, 1, ?, {placeholders})
        ON CONFLICT(topic_id) DO UPDATE SET
            times_studied = times_studied + 1,
            xp_earned = xp_earned + excluded.xp_earned,
            {updates}""",
        (topic_id, xp, *[_to_storage(fields[c]) for c in columns]),
    )
    conn.commit()
    conn.close()


def record_wrong_answer(db_path: str, topic_id: int) -> None:
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO topic_progress (topic_id, wrong_count) VALUES (?, 1)
        ON CONFLICT(topic_id) DO UPDATE SET wrong_count = wrong_count + 1""",
        (topic_id,),
    )
    conn.commit()
    conn.close()


def set_nemesis(db_path: str, topic_id: int, is_nemesis: bool = True) -> None:
    upsert_topic_progress(db_path, topic_id, {"is_nemesis": is_nemesis})


def get_nemesis_topics(db_path: str) -> list[Topic]:
    conn = get_connection(db_path)
    rows = conn.execute(f"{TOPIC_SELECT} WHERE p.is_nemesis = 1 ORDER BY p.wrong_count DESC").fetchall()
    conn.close()
    return [_row_to_topic(r) for r in rows]


def update_topic_notes(db_path: str, topic_id: int, notes: str) -> None:
    """Replace the student's free-text notes for a topic."""
    upsert_topic_progress(db_path, topic_id, {"user_notes": notes.strip()})
