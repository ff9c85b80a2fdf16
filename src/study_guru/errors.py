"""Exceptions raised by the scheduling core."""


class StudyGuruError(Exception):
    """Base class for errors surfaced to callers."""


class NothingToScheduleError(StudyGuruError):
    """No topics exist, so no agenda or plan can be produced."""

    def __init__(self, message: str = "No topics available to schedule. Seed the syllabus first."):
        super().__init__(message)


class TopicNotFoundError(StudyGuruError):
    def __init__(self, topic_id: int):
        self.topic_id = topic_id
        super().__init__(f"Topic {topic_id} does not exist")


class GuruError(StudyGuruError):
    """The AI collaborator could not produce a result (network, quota, no provider)."""


class GuruResponseError(GuruError):
    """The AI collaborator answered, but the payload was unusable."""
