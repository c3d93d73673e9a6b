from __future__ import annotations

import logging
from typing import Protocol

from groq import Groq

from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

_EMPTY_MATCHES = '{"matches": []}'


class RankingBackend(Protocol):
    def generate(self, system_prompt: str, prompt: str) -> str:
        """Return the raw text of a JSON-object completion."""
        ...


class GroqBackend:
    """Single-shot JSON completions against the Groq chat API."""

    def __init__(self, config: LLMConfig = DEFAULT_LLM_CONFIG, client: Groq | None = None):
        self.config = config
        self._client = client or Groq(
            api_key=config.api_key,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

    def generate(self, system_prompt: str, prompt: str) -> str:
        response = self._client.chat.completions.create(
            model=self.config.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            response_format={"type": "json_object"},
        )
        content = response.choices[0].message.content or _EMPTY_MATCHES
        logger.debug("Groq returned %d characters", len(content))
        return content


def build_backend(config: LLMConfig = DEFAULT_LLM_CONFIG) -> GroqBackend | None:
    """
    Construct the Groq backend, or return None when LLM matching is
    switched off or no API key is configured.
    """
    if not config.enabled or not config.api_key:
        logger.info("LLM matching disabled; rule-based scoring only")
        return None
    return GroqBackend(config)
