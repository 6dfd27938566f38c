"""Text generation client – OpenAI-compatible chat completions."""

from __future__ import annotations

import logging
import re
from typing import Any

import openai

from .config import LLMConfig
from .errors import ConfigurationError

logger = logging.getLogger("threadwatch.llm")

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def strip_fence(text: str) -> str:
    """Return the body of the first fenced block, or the text itself."""
    match = _FENCE_RE.search(text)
    return (match.group(1) if match else text).strip()


class TextGenerator:
    """Send a system + user prompt, get text back.

    Any API failure (timeout, connection, bad status) is logged and turned
    into an empty string; callers treat empty output as "no result".
    """

    def __init__(self, cfg: LLMConfig | None = None, *, client: Any = None) -> None:
        self.cfg = cfg or LLMConfig.from_env()
        if client is None:
            if not self.cfg.api_key:
                raise ConfigurationError("DEEPSEEK_API_KEY environment variable is not set")
            client = openai.OpenAI(
                api_key=self.cfg.api_key,
                base_url=self.cfg.base_url,
                timeout=self.cfg.timeout,
            )
        self.client = client

    def generate(self, system: str, user: str, **sampling: Any) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.cfg.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                **sampling,
            )
        except openai.OpenAIError as exc:
            logger.error("Text generation failed: %s: %s", type(exc).__name__, exc)
            return ""
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
