"""
Generation capability backed by Claude through the Anthropic SDK.

Each session owns its own ``AsyncAnthropic`` client, so releasing a session
closes exactly the connections that run opened.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass

import anthropic

from ..capability import Availability, GenerationSession, SessionOptions

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:\w+)?\s*|\s*```$", re.MULTILINE)


@dataclass
class ClaudeConfig:
    """Settings for the Claude backend.

    Attributes:
        model: Model identifier sent with every request
        max_tokens: Upper bound on generated tokens per call
        api_key_env: Environment variable holding the API key
        timeout: Request timeout in seconds
    """

    model: str = "claude-haiku-4-5-20251001"
    max_tokens: int = 256
    api_key_env: str = "ANTHROPIC_API_KEY"
    timeout: float = 60.0


class ClaudeSession:
    """A session sending one Messages API request per ``run`` call."""

    def __init__(
        self, client: anthropic.AsyncAnthropic, config: ClaudeConfig, system: str | None
    ) -> None:
        self._client = client
        self._config = config
        self._system = system
        self._released = False

    async def run(self, text: str) -> str:
        if self._released:
            raise RuntimeError("Session has been released")

        kwargs = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": [{"role": "user", "content": text}],
        }
        if self._system:
            kwargs["system"] = self._system

        response = await self._client.messages.create(**kwargs)
        raw = "".join(block.text for block in response.content if block.type == "text")
        return _FENCE_RE.sub("", raw).strip()

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._client.close()
        logger.debug("Released Claude session")


class ClaudeCapability:
    """Capability creating Claude sessions.

    Example:
        >>> capability = ClaudeCapability(ClaudeConfig(model="claude-haiku-4-5-20251001"))
        >>> await capability.availability()
        <Availability.AVAILABLE: 'available'>
    """

    def __init__(self, config: ClaudeConfig | None = None, name: str = "claude") -> None:
        self.config = config or ClaudeConfig()
        self.name = name

    @property
    def api_key(self) -> str | None:
        return os.environ.get(self.config.api_key_env) or None

    async def availability(self) -> Availability:
        if not self.api_key:
            logger.warning("%s is not set", self.config.api_key_env)
            return Availability.UNAVAILABLE
        return Availability.AVAILABLE

    async def create(self, options: SessionOptions) -> GenerationSession:
        client = anthropic.AsyncAnthropic(api_key=self.api_key, timeout=self.config.timeout)
        logger.debug("Created Claude session for model %s", self.config.model)
        return ClaudeSession(client, self.config, options.task_prompt)
