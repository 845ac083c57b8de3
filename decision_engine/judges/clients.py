# FILE: decision_engine/judges/clients.py
"""
LLM clients for the external judges.

- OpenAIJudgeClient: AsyncOpenAI chat completions, JSON-only responses
- NullJudgeClient: no LLM configured; every judge is "no signal"
- ScriptedJudgeClient: STUB FOR TESTING, canned responses per judge name

A client returns the raw response text or None. Parsing, validation and
timeouts belong to JudgeRunner.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from config.engine_config import JudgeConfig, get_engine_config

logger = logging.getLogger(__name__)


class JudgeLLMClient:
    """Base class: one prompt in, raw text (or None) out."""

    async def complete(
        self,
        judge: str,
        system: str,
        user: str,
        max_tokens: int = 400,
    ) -> Optional[str]:
        raise NotImplementedError


# =============================================================================
# OPENAI
# =============================================================================

def _openai_token_param_name(model_id: str) -> str:
    """
    OpenAI token-limit parameter name differs for some newer models.
    - Legacy: max_tokens
    - Newer chat models (gpt-5.*, o-series): max_completion_tokens
    """
    m = (model_id or "").strip().lower()
    if m.startswith("gpt-5") or m.startswith("o1") or m.startswith("o3") or m.startswith("o4"):
        return "max_completion_tokens"
    return "max_tokens"


def _supports_temperature(model_id: str) -> bool:
    m = (model_id or "").strip().lower()
    return not (m.startswith("gpt-5") or m.startswith("o1") or m.startswith("o3") or m.startswith("o4"))


class OpenAIJudgeClient(JudgeLLMClient):
    """
    Judge client backed by openai.AsyncOpenAI.

    Usage:
        client = OpenAIJudgeClient()  # reads OPENAI_API_KEY
        raw = await client.complete("safety", system, user)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        config: Optional[JudgeConfig] = None,
    ):
        self._config = config or get_engine_config().judges
        self._api_key = api_key or os.getenv("OPENAI_API_KEY")
        self.model = model or self._config.model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            # Per-call deadline is enforced by JudgeRunner; this only bounds the transport
            self._client = AsyncOpenAI(api_key=self._api_key, timeout=self._config.timeout_s + 1.0)
        return self._client

    async def complete(
        self,
        judge: str,
        system: str,
        user: str,
        max_tokens: int = 400,
    ) -> Optional[str]:
        if not self._api_key:
            logger.warning(f"[judge:{judge}] OPENAI_API_KEY not set, no signal")
            return None

        kwargs: Dict[str, Any] = dict(
            model=self.model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            response_format={"type": "json_object"},
        )
        kwargs[_openai_token_param_name(self.model)] = int(max_tokens)
        if _supports_temperature(self.model):
            kwargs["temperature"] = self._config.temperature

        response = await self._get_client().chat.completions.create(**kwargs)
        if not response.choices:
            return None
        return response.choices[0].message.content


# =============================================================================
# NULL / SCRIPTED
# =============================================================================

class NullJudgeClient(JudgeLLMClient):
    """No LLM configured: every judge call is inconclusive."""

    async def complete(self, judge: str, system: str, user: str, max_tokens: int = 400) -> Optional[str]:
        return None


class ScriptedJudgeClient(JudgeLLMClient):
    """
    STUB FOR TESTING.

    responses maps judge name -> one of:
      - dict: serialized to JSON
      - str: returned verbatim (use for malformed output)
      - Exception instance: raised
      - list: consumed in order, one item per call
    Unknown judges return None. `delay` sleeps before answering (timeouts).
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None, delay: float = 0.0):
        self.responses: Dict[str, Any] = dict(responses or {})
        self.delay = delay
        self.calls: List[Tuple[str, str, str]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def called(self, judge: str) -> int:
        return sum(1 for name, _, _ in self.calls if name == judge)

    async def complete(self, judge: str, system: str, user: str, max_tokens: int = 400) -> Optional[str]:
        self.calls.append((judge, system, user))
        if self.delay:
            await asyncio.sleep(self.delay)

        response = self.responses.get(judge)
        if isinstance(response, list):
            response = response.pop(0) if response else None
        if isinstance(response, BaseException):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


def get_judge_client() -> JudgeLLMClient:
    """OpenAI client when OPENAI_API_KEY is set, otherwise the null client."""
    if os.getenv("OPENAI_API_KEY"):
        return OpenAIJudgeClient()
    logger.info("[judges] OPENAI_API_KEY not set, judges disabled")
    return NullJudgeClient()
