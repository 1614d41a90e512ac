"""
Runtime settings.

Values come from the environment (a local ``.env`` is honoured) and can be
overridden per call:

    settings = Settings.from_env(model="claude-sonnet-4-20250514", ready_threshold=5)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any

from dotenv import load_dotenv

DEFAULT_MODEL = "claude-sonnet-4-20250514"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_READY_THRESHOLD = 8
DEFAULT_TIMEOUT = 600.0
ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
RELAY_PATH = "/api/claude"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    ready_threshold: int = DEFAULT_READY_THRESHOLD
    relay_url: str | None = None
    api_key: str | None = None
    upstream_url: str = ANTHROPIC_URL
    anthropic_version: str = ANTHROPIC_VERSION
    timeout: float = DEFAULT_TIMEOUT
    port: int = 3000

    @classmethod
    def from_env(cls, **overrides: Any) -> "Settings":
        """Build settings from ``os.environ``; ``None`` overrides are ignored."""
        load_dotenv()
        settings = cls(
            model=os.getenv("FIRSTDRAFT_MODEL") or DEFAULT_MODEL,
            max_tokens=_env_int("FIRSTDRAFT_MAX_TOKENS", DEFAULT_MAX_TOKENS),
            ready_threshold=_env_int("FIRSTDRAFT_READY_AFTER", DEFAULT_READY_THRESHOLD),
            relay_url=os.getenv("FIRSTDRAFT_RELAY_URL") or None,
            api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            upstream_url=os.getenv("ANTHROPIC_URL") or ANTHROPIC_URL,
            anthropic_version=os.getenv("ANTHROPIC_VERSION") or ANTHROPIC_VERSION,
            timeout=float(os.getenv("FIRSTDRAFT_TIMEOUT") or DEFAULT_TIMEOUT),
            port=_env_int("PORT", 3000),
        )
        return settings.with_overrides(**overrides)

    def with_overrides(self, **overrides: Any) -> "Settings":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    @property
    def endpoint(self) -> str:
        """URL the orchestrator posts to: the relay if configured, else the provider."""
        if self.relay_url:
            return self.relay_url.rstrip("/") + RELAY_PATH
        return self.upstream_url
