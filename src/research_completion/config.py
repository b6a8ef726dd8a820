"""Configuration schema and loading using Pydantic.

Settings validate and coerce values from the environment, an optional ``.env``
file, and programmatic overrides. Completion settings use the
``RESEARCH_COMPLETION_`` prefix; Ollama connection settings use
``RESEARCH_COMPLETION_OLLAMA_``.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CONTINUATION_PROMPT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_OLLAMA_BASE_URL,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_OLLAMA_TIMEOUT_SECONDS,
    DEFAULT_REJECTED_RETRY_DELAY_MS,
    DEFAULT_RESPONSE_TIMEOUT_MS,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_SHORT_PROMPT_CHARS,
)

log = logging.getLogger(__name__)


class CompletionSettings(BaseSettings):
    """Options for the completion controller.

    Retry budget, per-round timeout and continuation instruction, plus the
    inter-retry delays and the prompt length kept after a timeout.
    """

    model_config = SettingsConfigDict(
        env_prefix="RESEARCH_COMPLETION_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    max_retries: int = Field(
        default=DEFAULT_MAX_RETRIES,
        description="Maximum generation rounds, including the first attempt",
        ge=1,
    )

    timeout_ms: int = Field(
        default=DEFAULT_RESPONSE_TIMEOUT_MS,
        description="Per-round generation timeout in milliseconds",
        ge=1,
    )

    continuation_prompt: str = Field(
        default=CONTINUATION_PROMPT,
        description="Instruction appended when asking the model to resume",
        min_length=1,
    )

    retry_delay_ms: int = Field(
        default=DEFAULT_RETRY_DELAY_MS,
        description="Pause before retrying after a timeout or not-done signal",
        ge=0,
    )

    rejected_retry_delay_ms: int = Field(
        default=DEFAULT_REJECTED_RETRY_DELAY_MS,
        description="Pause before retrying after an upstream rejection",
        ge=0,
    )

    short_prompt_chars: int = Field(
        default=DEFAULT_SHORT_PROMPT_CHARS,
        description="Prompt length kept when retrying after a timeout",
        ge=1,
    )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class OllamaSettings(BaseSettings):
    """Connection settings for a local Ollama server."""

    model_config = SettingsConfigDict(
        env_prefix="RESEARCH_COMPLETION_OLLAMA_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    base_url: str = Field(
        default=DEFAULT_OLLAMA_BASE_URL,
        description="Base URL of the Ollama HTTP API",
        min_length=1,
    )

    model: str = Field(
        default=DEFAULT_OLLAMA_MODEL,
        description="Model tag to generate with",
        min_length=1,
    )

    request_timeout_seconds: float = Field(
        default=DEFAULT_OLLAMA_TIMEOUT_SECONDS,
        description="HTTP timeout for a single generation request",
        gt=0,
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize ``http://host:11434/`` to ``http://host:11434``."""
        return v.rstrip("/")


def load_settings(
    env_file: str | Path | None = None, **overrides: Any
) -> CompletionSettings:
    """Build completion settings from environment, ``.env`` file and overrides.

    Args:
        env_file: Optional path to a ``.env`` file read before the process
            environment is consulted.
        **overrides: Programmatic values; these take precedence over both.

    Returns:
        Validated, frozen settings.

    Raises:
        FileNotFoundError: If ``env_file`` is given but does not exist.
        pydantic.ValidationError: If any value is out of range.
    """
    if env_file is not None:
        env_path = Path(env_file)
        if not env_path.exists():
            raise FileNotFoundError(f"Environment file not found: {env_path}")
        log.debug("Loading completion settings from %s", env_path)
        return CompletionSettings(_env_file=env_path, **overrides)
    return CompletionSettings(**overrides)


def resolve_settings(
    options: CompletionSettings | Mapping[str, Any] | None = None,
) -> CompletionSettings:
    """Coerce the controller's ``options`` argument into settings.

    Accepts an existing settings object (returned as-is), a mapping of field
    overrides, or ``None`` for defaults plus environment.
    """
    if isinstance(options, CompletionSettings):
        return options
    if options is None:
        return CompletionSettings()
    return CompletionSettings(**dict(options))
