"""
Global test configuration with support for different test types.
"""

from collections.abc import Awaitable, Callable
from contextlib import suppress
import os

import pytest

from research_completion.completion.types import GenerationResult
from research_completion.config import CompletionSettings


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-in escape hatch: mark a test with @pytest.mark.allow_dotenv
    to permit .env loading for that specific test.
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_research_completion_env(request, monkeypatch):
    """Ensure a clean RESEARCH_COMPLETION_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("RESEARCH_COMPLETION_"):
            monkeypatch.delenv(key, raising=False)
    # Avoid DEBUG toggles affecting telemetry paths
    monkeypatch.delenv("DEBUG", raising=False)


def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with mocked generation",
        "characterization: Golden master tests to detect behavior changes.",
        "slow: Tests that take >1 second",
        "allow_dotenv: Permit .env loading for this test",
        "allow_env_pollution: Keep RESEARCH_COMPLETION_* variables for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


@pytest.fixture
def fast_settings() -> CompletionSettings:
    """Settings with no inter-retry delays and a short timeout."""
    return CompletionSettings(
        max_retries=3,
        timeout_ms=1_000,
        retry_delay_ms=0,
        rejected_retry_delay_ms=0,
    )


@pytest.fixture
def scripted_generate() -> Callable[
    [list[object]], tuple[Callable[[str], Awaitable[GenerationResult]], list[str]]
]:
    """Build a generation callable that replays a script.

    Each script entry is either a response text or an exception to raise.
    Returns the callable and the list of prompts it received.
    """

    def _build(script: list[object]):
        prompts: list[str] = []
        remaining = list(script)

        async def generate(prompt: str) -> GenerationResult:
            prompts.append(prompt)
            step = remaining.pop(0) if len(remaining) > 1 else remaining[0]
            if isinstance(step, BaseException):
                raise step
            return GenerationResult(text=str(step))

        return generate, prompts

    return _build

