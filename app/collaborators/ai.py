"""OpenAI-compatible chat completion client used by the scoring jobs.

`complete_json` returns a parsed dict or None. None means "no usable answer"
(not configured, transport error, timeout, unparseable output) and callers
fall back to generated defaults.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from app.config import Settings

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def sanitize_text(text: Optional[str], max_chars: int) -> str:
    """Strip control characters and truncate to max_chars."""
    if not text:
        return ""
    cleaned = _CONTROL_CHARS.sub("", str(text))
    if len(cleaned) > max_chars:
        logger.warning("AI input truncated from %d to %d characters", len(cleaned), max_chars)
        cleaned = cleaned[:max_chars]
    return cleaned


class AIClient:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: float = 10.0,
        max_input_chars: int = 15000,
        temperature: float = 0.7,
    ):
        self._model = model
        self._temperature = temperature
        self._max_input_chars = max_input_chars
        self._client: Optional[AsyncOpenAI] = None
        if api_key and base_url:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout_s,
                max_retries=0,
            )

    @property
    def configured(self) -> bool:
        return self._client is not None

    async def complete_json(self, system_prompt: str, user_prompt: str) -> Optional[Dict[str, Any]]:
        if self._client is None:
            return None

        messages = [
            {"role": "system", "content": sanitize_text(system_prompt, self._max_input_chars)},
            {"role": "user", "content": sanitize_text(user_prompt, self._max_input_chars)},
        ]
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self._temperature,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content or ""
        except Exception as exc:
            logger.error("AI call failed: %s", exc)
            return None

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            logger.error("AI returned non-JSON content (%d chars)", len(content))
            return None
        if not isinstance(parsed, dict):
            logger.error("AI returned JSON %s, expected an object", type(parsed).__name__)
            return None
        return parsed


def from_settings(settings: Settings) -> AIClient:
    return AIClient(
        model=settings.ai_model,
        api_key=settings.ai_api_key,
        base_url=settings.ai_api_base_url,
        timeout_s=settings.ai_timeout_seconds,
        max_input_chars=settings.ai_max_input_chars,
    )
