"""
AI client for the resume optimizer.
Sends a system + user prompt pair to the generative model over HTTP with a
bounded retry loop and returns the raw generated text.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx

from .config import Settings, get_settings
from .errors import AIServiceError
from .rate_limiter import TokenBucket

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class RetryState:
    """Where the retry loop is: attempts made so far and the last failure seen."""

    max_attempts: int
    attempt: int = 0
    last_error: Optional[str] = None

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts

    def next_attempt(self) -> int:
        self.attempt += 1
        return self.attempt

    def rate_limit_delay(self) -> float:
        # exponential: 2s, 4s, 8s ...
        return float(2 ** self.attempt)

    def error_delay(self) -> float:
        # linear: 1s, 2s, 3s ...
        return float(self.attempt)


class AIClient:
    """Client for a Gemini generateContent or an OpenAI-compatible chat endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        provider: str = "gemini",
        model: str = "gemini-2.0-flash-exp",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        temperature: float = 0.7,
        max_output_tokens: int = 8192,
        timeout: float = 60.0,
        max_attempts: int = 3,
        limiter: Optional[TokenBucket] = None,
        sleep: Sleep = asyncio.sleep,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.api_key = api_key
        self.provider = provider
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.limiter = limiter
        self._sleep = sleep
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "AIClient":
        s = settings or get_settings()
        return cls(
            s.ai_api_key,
            provider=s.ai_provider,
            model=s.ai_model,
            base_url=s.ai_base_url,
            temperature=s.ai_temperature,
            max_output_tokens=s.ai_max_output_tokens,
            timeout=s.ai_timeout_seconds,
            max_attempts=s.ai_max_attempts,
            **kwargs,
        )

    @property
    def is_local(self) -> bool:
        return self.base_url.startswith("http://localhost") or \
            self.base_url.startswith("https://localhost") or \
            "host.docker.internal" in self.base_url

    def _build_request(self, system_prompt: str, user_prompt: str) -> Tuple[str, Dict[str, str], Dict[str, str], Dict[str, Any]]:
        headers = {"Content-Type": "application/json"}
        params: Dict[str, str] = {}
        if self.provider == "openai":
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            payload = {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "temperature": self.temperature,
                "max_tokens": self.max_output_tokens,
            }
            return f"{self.base_url}/chat/completions", headers, params, payload

        if self.api_key:
            params["key"] = self.api_key
        payload = {
            "contents": [{"parts": [{"text": f"{system_prompt}\n\n{user_prompt}"}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }
        return f"{self.base_url}/models/{self.model}:generateContent", headers, params, payload

    def _extract_text(self, response: httpx.Response) -> str:
        """Pull the generated text out of a 200 reply; a malformed envelope is terminal."""
        try:
            data = response.json()
            if self.provider == "openai":
                text = data["choices"][0]["message"]["content"]
            else:
                text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AIServiceError(
                "Invalid response structure from AI service",
                transient=False,
                details=f"{type(e).__name__}: {e}",
            ) from e
        if not isinstance(text, str) or not text:
            raise AIServiceError("Invalid response structure from AI service", transient=False)
        return text

    async def _wait_or_fail(self, state: RetryState, delay: float, reason: str) -> None:
        if state.exhausted:
            raise AIServiceError(
                f"AI service call failed after {state.attempt} attempts: {state.last_error}",
                transient=True,
                attempts=state.attempt,
            )
        logger.warning(
            f"AI call attempt {state.attempt}/{state.max_attempts} failed ({reason}), "
            f"retrying in {delay:.0f}s"
        )
        await self._sleep(delay)

    async def invoke(self, system_prompt: str, user_prompt: str) -> str:
        """Return the model's text for the prompt pair, retrying transient failures."""
        if not self.api_key and not self.is_local:
            raise AIServiceError("No AI API key configured", transient=False)

        url, headers, params, payload = self._build_request(system_prompt, user_prompt)
        state = RetryState(max_attempts=self.max_attempts)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            while not state.exhausted:
                state.next_attempt()
                if self.limiter is not None:
                    await self.limiter.acquire()
                try:
                    response = await client.post(url, headers=headers, params=params, json=payload)
                except httpx.HTTPError as e:
                    state.last_error = f"{type(e).__name__}: {e}"
                    await self._wait_or_fail(state, state.error_delay(), state.last_error)
                    continue

                if response.status_code == 429:
                    state.last_error = "rate limited by AI service (429)"
                    await self._wait_or_fail(state, state.rate_limit_delay(), "rate limited")
                    continue
                if response.status_code != 200:
                    state.last_error = f"HTTP {response.status_code}: {response.text[:200]}"
                    await self._wait_or_fail(state, state.error_delay(), state.last_error)
                    continue

                return self._extract_text(response)

        raise AIServiceError(
            f"AI service call failed after {state.attempt} attempts: {state.last_error}",
            attempts=state.attempt,
        )
