from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Protocol, Sequence

import httpx

from .serializer import QUESTION_LABEL

logger = logging.getLogger(__name__)

Role = Literal["user", "assistant"]


def _normalize_api_key(raw: str | None) -> str | None:
    if raw is None:
        return None

    value = raw.strip()
    if not value:
        return None

    if value.lower() in {
        "your_gemini_api_key_here",
        "replace_with_gemini_key",
        "__replace_me__",
        "changeme",
    }:
        return None

    return value


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class AnalysisTurn:
    role: Role
    content: str
    created_at: str = field(default_factory=now_iso)


SYSTEM_PROMPT = (
    "You are a poker expert. Analyse the hand history the user provides in detail and advise on the best strategy.\n"
    "Take the following into account:\n"
    "1. GTO (game theory optimal) strategy\n"
    "2. ICM (independent chip model), scored with this payout table: "
    "1st 30pt, 2nd 20pt, 3rd 10pt, 4th -10pt, 5th -20pt, 6th -30pt\n"
    "3. The hero's position, stack and hand strength\n"
    "4. Plausible opponent ranges\n"
    "5. Board texture and how it changes\n"
    "6. Pot odds and equity\n"
    "7. The pros and cons of each action (check, bet, raise, fold)\n"
    "Explain in detail why the recommended action is best. Where possible compare different bet and raise sizes. "
    "Stay technical but use plain language."
)


def build_analysis_prompt(hand_history: str) -> str:
    return (
        "Analyse the following poker hand history and recommend the best action for the situation.\n\n"
        f"{hand_history}\n"
        f'The final line marked "{QUESTION_LABEL}" (or "?") is the decision the hero has to make now. '
        "Explain the best action with your reasoning.\n\n"
        "Considering the current pot size and the stacks of the players involved, include:\n"
        "1. The best action (bet, check, call, raise, fold, ...)\n"
        "2. If you recommend a bet or raise, the best size and why\n"
        "3. Some alternatives and why they are worse\n"
        "4. Considerations from an ICM point of view\n"
        "5. Analysis based on relative position and ranges"
    )


class AnalysisClient(Protocol):
    async def analyze(self, turns: Sequence[AnalysisTurn]) -> str:
        ...


class OfflineAnalyst:
    """Deterministic stand-in used when no model is configured or every request failed."""

    async def analyze(self, turns: Sequence[AnalysisTurn]) -> str:
        if not turns:
            raise ValueError("Nothing to analyse.")
        first = turns[0].content
        decision = next(
            (line.strip().lstrip("- ") for line in reversed(first.splitlines()) if QUESTION_LABEL in line),
            None,
        )
        follow_ups = sum(1 for turn in turns[1:] if turn.role == "user")
        lines = ["The analysis service is not available right now, so no recommendation was generated."]
        if decision:
            lines.append(f"Decision point received: {decision}.")
        if follow_ups:
            lines.append(f"Follow-up questions received: {follow_ups}.")
        return "\n".join(lines)


class GeminiAnalyst:
    """Gemini-backed hand analysis with multi-turn follow-ups and offline fallback."""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        timeout_ms: int,
        retries: int = 0,
        cache_size: int = 128,
        max_output_tokens: int = 2048,
        fallback: AnalysisClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = max(0.5, timeout_ms / 1000.0)
        self.retries = max(0, retries)
        self.cache_size = max(0, cache_size)
        self.max_output_tokens = max(1, max_output_tokens)
        self.fallback = fallback or OfflineAnalyst()
        self._response_cache: OrderedDict[str, str] = OrderedDict()
        self._cache_lock = threading.Lock()
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            limits=httpx.Limits(max_connections=16, max_keepalive_connections=8),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @classmethod
    def from_env(cls) -> "GeminiAnalyst":
        api_key = _normalize_api_key(os.getenv("GEMINI_API_KEY"))
        model = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        timeout_ms = int(os.getenv("LLM_TIMEOUT_MS", "30000"))
        retries = int(os.getenv("LLM_RETRIES", "1"))
        cache_size = int(os.getenv("LLM_CACHE_SIZE", "128"))
        max_output_tokens = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "2048"))
        return cls(
            api_key=api_key,
            model=model,
            timeout_ms=timeout_ms,
            retries=retries,
            cache_size=cache_size,
            max_output_tokens=max_output_tokens,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def analyze(self, turns: Sequence[AnalysisTurn]) -> str:
        if not turns:
            raise ValueError("Nothing to analyse.")

        if not self.api_key:
            return await self.fallback.analyze(turns)

        cache_key = self._cache_key(turns)
        cached = self._cache_get(cache_key)
        if cached is not None:
            return cached

        for attempt in range(self.retries + 1):
            try:
                text = await self._request_analysis(turns)
                self._cache_put(cache_key, text)
                return text
            except (httpx.HTTPError, ValueError, KeyError, IndexError) as exc:
                logger.warning("Gemini analysis attempt %s failed: %s", attempt + 1, exc)

        return await self.fallback.analyze(turns)

    def build_payload(self, turns: Sequence[AnalysisTurn]) -> dict[str, Any]:
        contents = []
        for index, turn in enumerate(turns):
            text = build_analysis_prompt(turn.content) if index == 0 else turn.content
            contents.append({"role": "user" if turn.role == "user" else "model", "parts": [{"text": text}]})

        return {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": contents,
            "generationConfig": {
                "temperature": 0.4,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    async def _request_analysis(self, turns: Sequence[AnalysisTurn]) -> str:
        if not self.api_key:
            raise RuntimeError("Gemini API key missing.")

        model = self.model.replace("/", "%2F")
        url = f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
        response = await self._http.post(
            url,
            json=self.build_payload(turns),
            headers={"x-goog-api-key": self.api_key},
        )
        response.raise_for_status()

        parsed = response.json()
        # Safety-blocked candidates come back with "content": null.
        candidate = parsed["candidates"][0] or {}
        parts = (candidate.get("content") or {}).get("parts") or []
        text = "".join(part.get("text") or "" for part in parts if isinstance(part, dict)).strip()
        if not text:
            raise ValueError("Gemini response did not include text content.")
        return text

    def _cache_key(self, turns: Sequence[AnalysisTurn]) -> str:
        raw = json.dumps(
            [[turn.role, turn.content] for turn in turns],
            separators=(",", ":"),
        ).encode("utf-8")
        return hashlib.blake2b(raw, digest_size=16).hexdigest()

    def _cache_get(self, key: str) -> str | None:
        if self.cache_size <= 0:
            return None
        with self._cache_lock:
            text = self._response_cache.get(key)
            if text is None:
                return None
            self._response_cache.move_to_end(key)
            return text

    def _cache_put(self, key: str, text: str) -> None:
        if self.cache_size <= 0:
            return
        with self._cache_lock:
            self._response_cache[key] = text
            self._response_cache.move_to_end(key)
            while len(self._response_cache) > self.cache_size:
                self._response_cache.popitem(last=False)
