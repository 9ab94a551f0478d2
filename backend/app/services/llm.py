from __future__ import annotations

from functools import lru_cache
from contextlib import contextmanager
from threading import BoundedSemaphore
from typing import Any
import json
import re

from openai import OpenAI

from ..core.config import get_settings

_llm_semaphore: BoundedSemaphore | None = None

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class LLMResponseError(ValueError):
    """The model answered, but not with a usable JSON object."""


def _get_semaphore() -> BoundedSemaphore:
    global _llm_semaphore
    if _llm_semaphore is None:
        _llm_semaphore = BoundedSemaphore(get_settings().LLM_MAX_CONCURRENCY)
    return _llm_semaphore


@contextmanager
def limit_llm_concurrency():
    """
    Bound concurrent calls to the LLM provider across the process
    (API workers and Celery tasks share one limit per process).
    """
    sem = _get_semaphore()
    sem.acquire()
    try:
        yield
    finally:
        sem.release()


@lru_cache(maxsize=1)
def get_llm_client() -> OpenAI:
    """
    Shared OpenAI-compatible client.

    OPENROUTER_API_KEY routes through OpenRouter; otherwise OPENAI_API_KEY is
    used against the OpenAI API directly.
    """
    settings = get_settings()

    if settings.OPENROUTER_API_KEY:
        return OpenAI(
            base_url="https://openrouter.ai/api/v1",
            api_key=settings.OPENROUTER_API_KEY.strip(),
            default_headers={
                "HTTP-Referer": settings.FRONTEND_ORIGIN or "http://localhost:3000",
                "X-Title": "Sourcing Engagements",
            },
        )

    if settings.OPENAI_API_KEY:
        return OpenAI(api_key=settings.OPENAI_API_KEY.strip())

    raise RuntimeError(
        "No LLM API key configured. Set either OPENAI_API_KEY or OPENROUTER_API_KEY."
    )


def complete_chat(
    client: Any,
    system: str,
    user: str,
    *,
    temperature: float = 0.7,
    max_tokens: int = 2000,
) -> str:
    """Single system+user round trip under the concurrency limit."""
    with limit_llm_concurrency():
        response = client.chat.completions.create(
            model=get_settings().LLM_MODEL,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
        )
    return response.choices[0].message.content or ""


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Pull the outermost ``{...}`` out of a model reply (models like to wrap
    JSON in prose or code fences) and decode it.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise LLMResponseError("No JSON object in LLM response")
    try:
        return json.loads(match.group())
    except json.JSONDecodeError as e:
        raise LLMResponseError(f"Malformed JSON in LLM response: {e}") from e
