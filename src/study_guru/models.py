"""Data classes for the study domain model."""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

TOPIC_STATUSES = ("unseen", "seen", "reviewed", "mastered")
MOODS = ("energetic", "good", "okay", "tired", "stressed", "distracted")
SESSION_MODES = ("normal", "sprint", "gentle", "deep", "external")
CONTENT_TYPES = (
    "keypoints", "quiz", "story", "mnemonic", "teach_back", "error_hunt", "detective", "manual",
)
PLAN_ACTION_TYPES = ("study", "review", "deep_dive")


@dataclass
class Subject:
    id: int
    name: str
    short_code: str
    color_hex: str = "#555555"
    inicet_weight: int = 5
    neet_weight: int = 5
    display_order: int = 0


@dataclass
class FsrsCard:
    """Adaptive-scheduler memory state for one topic. Datetimes are UTC-aware."""
    due: datetime
    stability: Optional[float] = None
    difficulty: Optional[float] = None
    elapsed_days: int = 0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    state: int = 1
    last_review: Optional[datetime] = None


@dataclass
class TopicProgress:
    topic_id: int
    status: str = "unseen"
    confidence: int = 0
    last_studied_at: Optional[datetime] = None
    times_studied: int = 0
    xp_earned: int = 0
    next_review_date: Optional[date] = None
    user_notes: str = ""
    card: Optional[FsrsCard] = None
    wrong_count: int = 0
    is_nemesis: bool = False


@dataclass
class Topic:
    id: int
    subject_id: int
    name: str
    estimated_minutes: int = 35
    inicet_priority: int = 5
    parent_topic_id: Optional[int] = None
    subject_name: str = "Unknown"
    subject_code: str = "???"
    progress: Optional[TopicProgress] = None

    def __post_init__(self):
        if self.progress is None:
            self.progress = TopicProgress(topic_id=self.id)


@dataclass
class StudySession:
    id: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    planned_topics: list[int] = field(default_factory=list)
    completed_topics: list[int] = field(default_factory=list)
    total_xp_earned: int = 0
    duration_minutes: Optional[int] = None
    mood: Optional[str] = None
    mode: str = "normal"


@dataclass
class AgendaItem:
    topic: Topic
    content_types: list[str]
    estimated_minutes: int


@dataclass
class Agenda:
    items: list[AgendaItem]
    total_minutes: int
    focus_note: str
    mode: str
    guru_message: str


@dataclass
class PlanItem:
    id: str
    topic: Topic
    type: str
    duration: int


@dataclass
class DailyPlan:
    date: str
    day_label: str
    items: list[PlanItem] = field(default_factory=list)
    total_minutes: int = 0
    is_rest_day: bool = False


@dataclass
class StudyPlanSummary:
    total_topics_left: int
    total_hours_left: int
    days_remaining: int
    required_hours_per_day: float
    feasible: bool
    message: str


@dataclass
class TodayTask:
    time_label: str
    topic: Topic
    type: str
    duration: int


@dataclass
class UserProfile:
    display_name: str = "Doctor"
    total_xp: int = 0
    current_level: int = 1
    streak_current: int = 0
    streak_best: int = 0
    daily_goal_minutes: int = 120
    inicet_date: str = "2027-05-01"
    neet_date: str = "2027-08-01"
    preferred_session_length: int = 45
    last_active_date: Optional[str] = None
    quiz_correct_count: int = 0


@dataclass
class DailyLog:
    date: str
    checked_in: bool = False
    mood: Optional[str] = None
    total_minutes: int = 0
    xp_earned: int = 0
    session_count: int = 0
