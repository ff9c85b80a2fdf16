"""Seed the database with the INICET syllabus: subjects and their topics."""
import json
from pathlib import Path

from loguru import logger

from study_guru.db import get_connection

CONTENT_DIR = Path(__file__).parent / "content"


def is_seeded(db_path: str) -> bool:
    """Check whether the database already has subjects."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM subjects").fetchone()[0]
    conn.close()
    return count > 0


def load_syllabus() -> list[dict]:
    return json.loads((CONTENT_DIR / "syllabus.json").read_text())["subjects"]


def seed_syllabus(db_path: str, subjects: list[dict] | None = None) -> int:
    """Insert subjects and topics, skipping ones already present. Returns topics added."""
    subjects = subjects if subjects is not None else load_syllabus()
    conn = get_connection(db_path)
    added = 0
    for order, subject in enumerate(subjects):
        conn.execute(
            """INSERT OR IGNORE INTO subjects
            (id, name, short_code, color_hex, inicet_weight, neet_weight, display_order)
            VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                subject["id"], subject["name"], subject["short_code"], subject.get("color_hex", "#555555"),
                subject["inicet_weight"], subject.get("neet_weight", 5), order,
            ),
        )
        for topic in subject["topics"]:
            cur = conn.execute(
                """INSERT OR IGNORE INTO topics (subject_id, name, estimated_minutes, inicet_priority)
                VALUES (?, ?, ?, ?)""",
                (subject["id"], topic["name"], topic.get("minutes", 35), topic.get("priority", 5)),
            )
            added += cur.rowcount
    conn.commit()
    conn.close()
    return added


def seed_all(db_path: str) -> None:
    """Seed once; a database that already has subjects is left alone."""
    if is_seeded(db_path):
        return
    added = seed_syllabus(db_path)
    logger.info("Seeded {} topics", added)
