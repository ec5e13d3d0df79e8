from __future__ import annotations

import asyncio
import json
import logging
import random
from datetime import datetime
from typing import Any

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI, RateLimitError

from remindly.core.errors import AppError, ErrorKind
from remindly.core.settings import Settings
from remindly.services.lemonsqueezy import parse_iso8601

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {408, 409, 425, 429, 500, 502, 503, 504}


def _build_extract_prompt(text: str, now: datetime) -> str:
    return (
        "Extract the todo items and events described in the user's note.\n"
        f"The current time is {now.isoformat()}.\n"
        "Return a JSON object of the form "
        '{"events": [{"title": str, "description": str | null, '
        '"scheduled_time": ISO-8601 | null, "remind_time": ISO-8601 | null}]}.\n'
        "Resolve relative dates against the current time and include a UTC offset in every timestamp. "
        "Return an empty list when the note describes nothing actionable.\n\n"
        f"Note:\n{text}"
    )


def _extract_json(text: str) -> Any | None:
    raw = (text or "").strip()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        start = raw.find("{")
        end = raw.rfind("}")
        if start != -1 and end != -1 and end > start:
            try:
                return json.loads(raw[start : end + 1])
            except ValueError:
                return None
    return None


def _safe_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str):
        return None
    try:
        return parse_iso8601(raw)
    except ValueError:
        return None


def coerce_events(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, dict) and isinstance(payload.get("events"), list):
        items = payload["events"]
    elif isinstance(payload, list):
        items = payload
    else:
        return []
    out: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        if not title:
            continue
        description = item.get("description")
        out.append(
            {
                "title": title,
                "description": description.strip() if isinstance(description, str) and description.strip() else None,
                "scheduled_time": _safe_timestamp(item.get("scheduled_time")),
                "remind_time": _safe_timestamp(item.get("remind_time")),
            }
        )
    return out


class EventExtractor:
    """Turns a free-text note into event dicts with one chat completion."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None,
        model: str,
        temperature: float = 0.2,
        max_retries: int = 3,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model
        self._temperature = temperature
        self._max_retries = max(1, max_retries)
        self._client = client
        if self._client is None and api_key:
            kwargs: dict[str, Any] = {"api_key": api_key}
            if base_url:
                kwargs["base_url"] = base_url
            kwargs["http_client"] = httpx.AsyncClient(timeout=httpx.Timeout(60.0))
            self._client = AsyncOpenAI(**kwargs)

    @classmethod
    def from_settings(cls, settings: Settings) -> "EventExtractor":
        return cls(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
        )

    async def _complete(self, prompt: str) -> str:
        if self._client is None:
            raise AppError(ErrorKind.UPSTREAM, "failed_to_get_completion", detail="LLM is not configured")
        last_err: Exception | None = None
        for attempt in range(1, self._max_retries + 1):
            try:
                response = await self._client.chat.completions.create(
                    model=self._model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self._temperature,
                    response_format={"type": "json_object"},
                )
                usage = getattr(response, "usage", None)
                logger.info(
                    "llm.request_done model=%s prompt_tokens=%s completion_tokens=%s",
                    self._model,
                    getattr(usage, "prompt_tokens", None),
                    getattr(usage, "completion_tokens", None),
                )
                choices = getattr(response, "choices", None) or []
                content = choices[0].message.content if choices else None
                if not isinstance(content, str):
                    raise AppError(ErrorKind.UPSTREAM, "invalid_completion_response")
                return content
            except APIStatusError as e:
                status = getattr(e, "status_code", None)
                if status in _RETRYABLE_STATUS and attempt < self._max_retries:
                    last_err = e
                    await asyncio.sleep(min(10.0, 0.7 * (2 ** (attempt - 1)) + random.random() * 0.25))
                    continue
                raise AppError(ErrorKind.UPSTREAM, "failed_to_get_completion", detail=str(e))
            except (APIConnectionError, APITimeoutError, RateLimitError) as e:
                if attempt < self._max_retries:
                    last_err = e
                    await asyncio.sleep(min(10.0, 0.7 * (2 ** (attempt - 1)) + random.random() * 0.25))
                    continue
                raise AppError(ErrorKind.UPSTREAM, "failed_to_get_completion", detail=str(e))
        raise AppError(ErrorKind.UPSTREAM, "failed_to_get_completion", detail=str(last_err))

    async def extract(self, text: str, now: datetime) -> list[dict[str, Any]]:
        content = await self._complete(_build_extract_prompt(text, now))
        parsed = _extract_json(content)
        if parsed is None:
            raise AppError(ErrorKind.UPSTREAM, "invalid_completion_response", detail="completion is not JSON")
        return coerce_events(parsed)
