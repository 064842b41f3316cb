# src/studyflow/llm/client.py

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..config import Settings
from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

# A model that answered 404 is not offered again for this long.
UNAVAILABLE_MODEL_COOLDOWN_SECONDS = 3600.0

_RETRYABLE = (
    openai.NotFoundError,
    openai.RateLimitError,
    openai.APIConnectionError,
    httpx.TimeoutException,
)


class FirstTokenTimeout(TimeoutError):
    pass


def _require(value: str | None, what: str, env_suffix: str) -> str:
    v = (value or "").strip()
    if not v:
        raise RuntimeError(f"LLM {what} is not set. Set STUDYFLOW_{env_suffix} in your .env.")
    return v


class OpenAIChatClient:
    """
    Streaming chat client for OpenAI-compatible APIs (OpenRouter by default).

    The planner prompt goes to the configured models in order until one streams
    content. A model is skipped when it is missing (404, then cooled down for an
    hour), rate-limited, unreachable, or silent past the first-token timeout.
    Authentication errors stop the whole attempt.

    SDK retries are off: falling through to the next model is faster than retrying one.
    """

    def __init__(self, settings: Settings) -> None:
        api_key = _require(settings.llm_api_key, "API key", "LLM_API_KEY")
        base_url = _require(settings.llm_base_url, "base URL", "LLM_BASE_URL")

        self._models = [m.strip() for m in settings.llm_models if m and m.strip()]
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set STUDYFLOW_LLM_MODELS in your .env.")

        self._headers = dict(settings.extra_headers or {})
        self._first_token_timeout = float(settings.llm_first_token_timeout)
        self._timeout = httpx.Timeout(
            connect=settings.llm_connect_timeout,
            read=settings.llm_read_timeout,
            write=10.0,
            pool=settings.llm_connect_timeout,
        )
        self._client = OpenAI(base_url=base_url, api_key=api_key, timeout=self._timeout, max_retries=0)
        self._cooldown_until: dict[str, float] = {}

    def _candidates(self) -> list[str]:
        now = time.monotonic()
        return [m for m in self._models if self._cooldown_until.get(m, 0.0) <= now]

    def _stream_model(self, model: str, messages: list[ChatMessage], system_prompt: str) -> Iterator[str]:
        """Yield content pieces from one model; raises FirstTokenTimeout if it stays silent."""
        started = time.monotonic()
        stream: Any = self._client.chat.completions.create(
            model=model,
            stream=True,
            extra_headers=self._headers or None,
            messages=[{"role": "system", "content": system_prompt}, *messages],
            timeout=self._timeout,
        )
        got_content = False
        try:
            for chunk in stream:
                piece = chunk.choices[0].delta.content if chunk.choices else None
                if piece:
                    if not got_content:
                        logger.debug("LLM: model=%s first token after %.2fs", model, time.monotonic() - started)
                    got_content = True
                    yield piece
                elif not got_content and time.monotonic() - started > self._first_token_timeout:
                    raise FirstTokenTimeout(model)
        finally:
            close = getattr(stream, "close", None)
            if callable(close):
                try:
                    close()
                except Exception:
                    logger.debug("LLM: closing stream failed model=%s", model, exc_info=True)

        if not got_content:
            raise RuntimeError(f"Model returned no content: {model}")

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        candidates = self._candidates()
        if not candidates:
            raise RuntimeError("No LLM model is currently available. Try again later.")

        last_error: Exception | None = None
        for model in candidates:
            logger.info("LLM: requesting plan from model=%s", model)
            yielded = False
            try:
                for piece in self._stream_model(model, messages, system_prompt):
                    yielded = True
                    yield piece
                return
            except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
                raise RuntimeError("LLM authentication failed. Check STUDYFLOW_LLM_API_KEY.") from e
            except Exception as e:
                # One reply never mixes pieces from two models.
                if yielded:
                    raise
                last_error = e
                if isinstance(e, openai.NotFoundError):
                    self._cooldown_until[model] = time.monotonic() + UNAVAILABLE_MODEL_COOLDOWN_SECONDS
                level = logging.INFO if isinstance(e, (*_RETRYABLE, FirstTokenTimeout)) else logging.WARNING
                logger.log(level, "LLM: model=%s failed (%s), trying next", model, e.__class__.__name__)

        if isinstance(last_error, openai.RateLimitError):
            raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
        if isinstance(last_error, (openai.APIConnectionError, httpx.TimeoutException, FirstTokenTimeout)):
            raise RuntimeError("LLM network/timeout error. Try again later or change models.") from last_error
        raise RuntimeError("All LLM models failed.") from last_error
