"""Language-model collaborators: session planning and study content.

Providers are tried in order (Gemini, then OpenRouter). Rate limits, server
errors and network failures move on to the next provider. A reply that is not
the JSON we asked for gets one more full attempt before giving up.
"""
import json
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Protocol

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from study_guru.config import Settings, get_settings
from study_guru.db import get_connection
from study_guru.errors import GuruError, GuruResponseError
from study_guru.models import Topic

GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
STRUCTURED_ATTEMPTS = 2
RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}

SYSTEM_PROMPT = (
    "You are Guru, a study coach for Indian medical PG entrance exams (INICET, NEET-PG). "
    "Be concise and warm. Always reply with a single JSON object and nothing else."
)

_FENCE = re.compile(r"```(?:json)?")


class AgendaResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    selected_topic_ids: list[int] = Field(alias="selectedTopicIds")
    focus_note: str = Field(default="", alias="focusNote")
    guru_message: str = Field(default="", alias="guruMessage")


class SessionPlanner(Protocol):
    def plan_session(
        self,
        candidates: list[tuple[Topic, float]],
        duration_minutes: int,
        mood: str,
        recent_topic_names: list[str],
    ) -> AgendaResponse:
        ...


@dataclass
class Provider:
    name: str
    model: str
    send: Callable[[httpx.Client, str, str], str]


def _gemini(api_key: str, model: str) -> Provider:
    def send(client: httpx.Client, system: str, user: str) -> str:
        response = client.post(
            f"{GEMINI_BASE}/{model}:generateContent",
            params={"key": api_key},
            json={
                "contents": [{"role": "user", "parts": [{"text": user}]}],
                "systemInstruction": {"parts": [{"text": system}]},
                "generationConfig": {
                    "temperature": 0.7,
                    "maxOutputTokens": 2000,
                    "responseMimeType": "application/json",
                },
            },
        )
        response.raise_for_status()
        try:
            return response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            raise GuruResponseError("Empty response from Gemini") from e

    return Provider(name="gemini", model=model, send=send)


def _openrouter(api_key: str, model: str) -> Provider:
    def send(client: httpx.Client, system: str, user: str) -> str:
        response = client.post(
            OPENROUTER_URL,
            headers={"Authorization": f"Bearer {api_key}"},
            json={
                "model": model,
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                "response_format": {"type": "json_object"},
            },
        )
        response.raise_for_status()
        try:
            return response.json()["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise GuruResponseError("Empty response from OpenRouter") from e

    return Provider(name="openrouter", model=model, send=send)


def parse_json_reply(raw: str) -> dict:
    """Decode a model reply, tolerating markdown code fences around the JSON."""
    try:
        data = json.loads(_FENCE.sub("", raw).strip())
    except json.JSONDecodeError as e:
        raise GuruResponseError(f"Reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise GuruResponseError("Reply is not a JSON object")
    return data


def build_agenda_prompt(
    candidates: list[tuple[Topic, float]],
    duration_minutes: int,
    mood: str,
    recent_topic_names: list[str],
) -> str:
    rows = [
        {
            "id": t.id,
            "name": t.name,
            "subject": t.subject_name,
            "priority": t.inicet_priority,
            "status": t.progress.status,
            "minutes": t.estimated_minutes,
            "score": round(score, 1),
        }
        for t, score in candidates
    ]
    recent = ", ".join(recent_topic_names) or "none"
    return (
        f"Student mood: {mood}. Session length: {duration_minutes} minutes.\n"
        f"Recently studied (avoid repeating): {recent}.\n"
        f"Candidate topics (higher score = more urgent):\n{json.dumps(rows)}\n"
        'Pick topics that fit the time. Reply as {"selectedTopicIds": [ids], '
        '"focusNote": "one line", "guruMessage": "one motivating sentence"}.'
    )


def build_content_prompt(topic: Topic, content_type: str) -> str:
    return (
        f"Create '{content_type}' study content for the topic '{topic.name}' "
        f"({topic.subject_name}). Include a \"type\": \"{content_type}\" field."
    )


def get_cached_content(db_path: str, topic_id: int, content_type: str) -> dict | None:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT content_json FROM ai_cache WHERE topic_id = ? AND content_type = ?",
        (topic_id, content_type),
    ).fetchone()
    conn.close()
    return json.loads(row["content_json"]) if row else None


def set_cached_content(db_path: str, topic_id: int, content_type: str, content: dict, model_used: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        """INSERT INTO ai_cache (topic_id, content_type, content_json, model_used, created_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(topic_id, content_type) DO UPDATE SET
            content_json = excluded.content_json,
            model_used = excluded.model_used,
            created_at = excluded.created_at""",
        (topic_id, content_type, json.dumps(content), model_used, datetime.now().isoformat()),
    )
    conn.commit()
    conn.close()


class GuruClient:
    """Talks to the configured providers. Implements ``SessionPlanner``."""

    def __init__(self, settings: Settings | None = None, http_client: httpx.Client | None = None):
        self.settings = settings or get_settings()
        self.client = http_client or httpx.Client(
            timeout=httpx.Timeout(self.settings.request_timeout_seconds),
        )
        self.providers = []
        if self.settings.gemini_api_key:
            self.providers.append(_gemini(self.settings.gemini_api_key, self.settings.gemini_model))
        if self.settings.openrouter_api_key:
            self.providers.append(
                _openrouter(self.settings.openrouter_api_key, self.settings.openrouter_model)
            )
        self.last_model = ""

    def close(self) -> None:
        self.client.close()

    def complete(self, system: str, user: str) -> str:
        """Raw reply from the first provider that answers."""
        if not self.providers:
            raise GuruError("No AI provider configured")
        last_error: Exception | None = None
        for provider in self.providers:
            try:
                text = provider.send(self.client, system, user)
                self.last_model = provider.model
                return text
            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code not in RETRYABLE_STATUS:
                    logger.error("{} rejected the request: {}", provider.name, e.response.status_code)
                else:
                    logger.warning("{} unavailable ({}), trying next provider", provider.name, e.response.status_code)
            except httpx.RequestError as e:
                last_error = e
                logger.warning("{} request failed: {}, trying next provider", provider.name, e)
            except GuruResponseError as e:
                last_error = e
                logger.warning("{}: {}", provider.name, e)
        raise GuruError(f"All AI providers failed: {last_error}") from last_error

    def complete_json(self, system: str, user: str, model: type[BaseModel] | None = None):
        """Structured reply, validated against ``model`` when given; two attempts."""
        last_error: Exception | None = None
        for attempt in range(1, STRUCTURED_ATTEMPTS + 1):
            raw = self.complete(system, user)
            try:
                data = parse_json_reply(raw)
                return model.model_validate(data) if model else data
            except (GuruResponseError, ValidationError) as e:
                last_error = e
                logger.warning("Unusable reply (attempt {}/{}): {}", attempt, STRUCTURED_ATTEMPTS, e)
        raise GuruResponseError(f"No valid reply after {STRUCTURED_ATTEMPTS} attempts") from last_error

    def plan_session(
        self,
        candidates: list[tuple[Topic, float]],
        duration_minutes: int,
        mood: str,
        recent_topic_names: list[str],
    ) -> AgendaResponse:
        prompt = build_agenda_prompt(candidates, duration_minutes, mood, recent_topic_names)
        return self.complete_json(SYSTEM_PROMPT, prompt, AgendaResponse)

    def generate_content(self, db_path: str, topic: Topic, content_type: str) -> dict:
        """Study content for one topic and content type, served from cache when present."""
        cached = get_cached_content(db_path, topic.id, content_type)
        if cached is not None:
            return cached
        content = self.complete_json(SYSTEM_PROMPT, build_content_prompt(topic, content_type))
        set_cached_content(db_path, topic.id, content_type, content, self.last_model)
        return content
