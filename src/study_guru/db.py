"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

from loguru import logger

DEFAULT_DB_PATH = str(Path.home() / ".study_guru" / "guru.db")

SCHEMA = """
CREATE TABLE IF NOT EXISTS subjects (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    short_code TEXT NOT NULL,
    color_hex TEXT NOT NULL DEFAULT '#555555',
    inicet_weight INTEGER NOT NULL DEFAULT 5,
    neet_weight INTEGER NOT NULL DEFAULT 5,
    display_order INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS topics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    subject_id INTEGER NOT NULL REFERENCES subjects(id),
    parent_topic_id INTEGER REFERENCES topics(id),
    name TEXT NOT NULL,
    estimated_minutes INTEGER DEFAULT 35,
    inicet_priority INTEGER DEFAULT 5,
    UNIQUE(subject_id, name)
);

CREATE TABLE IF NOT EXISTS topic_progress (
    topic_id INTEGER PRIMARY KEY REFERENCES topics(id),
    status TEXT NOT NULL DEFAULT 'unseen'
        CHECK(status IN ('unseen', 'seen', 'reviewed', 'mastered')),
    confidence INTEGER NOT NULL DEFAULT 0,
    last_studied_at TEXT,
    times_studied INTEGER NOT NULL DEFAULT 0,
    xp_earned INTEGER NOT NULL DEFAULT 0,
    next_review_date TEXT,
    user_notes TEXT NOT NULL DEFAULT '',
    fsrs_due TEXT,
    fsrs_stability REAL,
    fsrs_difficulty REAL,
    fsrs_elapsed_days INTEGER,
    fsrs_scheduled_days INTEGER,
    fsrs_reps INTEGER,
    fsrs_lapses INTEGER,
    fsrs_state INTEGER,
    fsrs_last_review TEXT,
    wrong_count INTEGER NOT NULL DEFAULT 0,
    is_nemesis INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    started_at TEXT NOT NULL,
    ended_at TEXT,
    planned_topics TEXT NOT NULL DEFAULT '[]',
    completed_topics TEXT NOT NULL DEFAULT '[]',
    total_xp_earned INTEGER NOT NULL DEFAULT 0,
    duration_minutes INTEGER,
    mood TEXT,
    mode TEXT NOT NULL DEFAULT 'normal',
    notes TEXT
);

CREATE TABLE IF NOT EXISTS daily_log (
    date TEXT PRIMARY KEY,
    checked_in INTEGER NOT NULL DEFAULT 0,
    mood TEXT,
    total_minutes INTEGER NOT NULL DEFAULT 0,
    xp_earned INTEGER NOT NULL DEFAULT 0,
    session_count INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS ai_cache (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    topic_id INTEGER NOT NULL REFERENCES topics(id),
    content_type TEXT NOT NULL,
    content_json TEXT NOT NULL,
    model_used TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE(topic_id, content_type)
);

CREATE TABLE IF NOT EXISTS user_profile (
    id INTEGER PRIMARY KEY DEFAULT 1,
    display_name TEXT NOT NULL DEFAULT 'Doctor',
    total_xp INTEGER NOT NULL DEFAULT 0,
    current_level INTEGER NOT NULL DEFAULT 1,
    streak_current INTEGER NOT NULL DEFAULT 0,
    streak_best INTEGER NOT NULL DEFAULT 0,
    daily_goal_minutes INTEGER NOT NULL DEFAULT 120,
    inicet_date TEXT NOT NULL DEFAULT '2027-05-01',
    neet_date TEXT NOT NULL DEFAULT '2027-08-01',
    preferred_session_length INTEGER NOT NULL DEFAULT 45,
    last_active_date TEXT,
    quiz_correct_count INTEGER NOT NULL DEFAULT 0
);

INSERT OR IGNORE INTO user_profile (id) VALUES (1);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
    logger.debug("Database ready at {}", db_path)
