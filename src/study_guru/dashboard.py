"""Syllabus coverage, memory strength and study statistics."""
from datetime import datetime

from study_guru.db import get_connection
from study_guru.fsrs_scheduler import is_card_due, retrievability
from study_guru.topics import get_all_topics_with_progress


def get_coverage_label(pct: float) -> str:
    if pct >= 80:
        return "STRONG"
    elif pct >= 50:
        return "ON TRACK"
    elif pct >= 20:
        return "STARTED"
    return "UNTOUCHED"


def get_coverage_color(pct: float) -> str:
    if pct >= 80:
        return "green"
    elif pct >= 50:
        return "yellow"
    elif pct >= 20:
        return "dark_orange"
    return "red"


def get_subject_coverage(db_path: str) -> list[dict]:
    """Per-subject share of topics studied at least once, and mastered."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT s.id, s.name, s.short_code, s.inicet_weight,
            COUNT(t.id) AS total,
            SUM(CASE WHEN p.status IS NOT NULL AND p.status != 'unseen' THEN 1 ELSE 0 END) AS covered,
            SUM(CASE WHEN p.status = 'mastered' THEN 1 ELSE 0 END) AS mastered
        FROM subjects s
        LEFT JOIN topics t ON t.subject_id = s.id
        LEFT JOIN topic_progress p ON p.topic_id = t.id
        GROUP BY s.id
        ORDER BY s.display_order"""
    ).fetchall()
    conn.close()
    results = []
    for r in rows:
        covered_pct = (r["covered"] / r["total"] * 100) if r["total"] else 0.0
        results.append({
            "subject_id": r["id"],
            "name": r["name"],
            "short_code": r["short_code"],
            "inicet_weight": r["inicet_weight"],
            "total": r["total"],
            "covered": r["covered"] or 0,
            "mastered": r["mastered"] or 0,
            "coverage": round(covered_pct, 1),
            "label": get_coverage_label(covered_pct),
        })
    return results


def calc_overall_coverage(db_path: str) -> float:
    """Topic coverage weighted by each subject's exam weight."""
    subjects = [s for s in get_subject_coverage(db_path) if s["total"]]
    weight = sum(s["inicet_weight"] for s in subjects)
    if not weight:
        return 0.0
    return round(sum(s["coverage"] * s["inicet_weight"] for s in subjects) / weight, 1)


def get_study_stats(db_path: str) -> dict:
    conn = get_connection(db_path)
    sessions = conn.execute("SELECT COUNT(*) FROM sessions WHERE ended_at IS NOT NULL").fetchone()[0]
    minutes = conn.execute("SELECT COALESCE(SUM(total_minutes), 0) FROM daily_log").fetchone()[0]
    studied = conn.execute("SELECT COUNT(*) FROM topic_progress WHERE status != 'unseen'").fetchone()[0]
    nemesis = conn.execute("SELECT COUNT(*) FROM topic_progress WHERE is_nemesis = 1").fetchone()[0]
    avg_row = conn.execute(
        "SELECT AVG(confidence) AS avg FROM topic_progress WHERE status != 'unseen'"
    ).fetchone()
    avg_confidence = round(avg_row["avg"], 1) if avg_row["avg"] else 0.0
    conn.close()
    return {
        "sessions_completed": sessions,
        "minutes_studied": minutes,
        "topics_studied": studied,
        "nemesis_topics": nemesis,
        "avg_confidence": avg_confidence,
    }


def get_memory_overview(db_path: str, now: datetime | None = None, limit: int = 10) -> list[dict]:
    """Reviewed topics by FSRS recall probability, weakest first."""
    now = now or datetime.now()
    rows = []
    for t in get_all_topics_with_progress(db_path):
        card = t.progress.card
        if card is None:
            continue
        rows.append({
            "topic_id": t.id,
            "name": t.name,
            "short_code": t.subject_code,
            "retrievability": round(retrievability(card, now), 3),
            "fsrs_due": card.due,
            "fsrs_due_now": is_card_due(card, now),
        })
    rows.sort(key=lambda r: r["retrievability"])
    return rows[:limit]
