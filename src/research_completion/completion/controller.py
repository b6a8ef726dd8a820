"""Completion controller for small local models.

Wraps a caller-supplied generation capability with:

- A timeout race (the losing generation is left running and ignored)
- Continuation prompting when a response looks truncated or loops
- Strategy-specific retries for upstream rejections, not-done signals and
  timeouts (simplified prompt, same prompt, shortened prompt)

Retries run as an explicit loop bounded by ``max_retries``; every round,
whether a continuation or an error recovery, consumes one attempt.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from enum import Enum
import logging
from typing import Any

from ..config import CompletionSettings, resolve_settings
from ..exceptions import (
    EmptyResponseError,
    ErrorKind,
    GenerationTimeoutError,
    classify_error,
)
from ..telemetry import TelemetryContext, TelemetryContextProtocol
from .issues import detect_response_issues
from .merge import combine_partial_responses
from .prompts import (
    create_continuation_prompt,
    create_shortened_prompt,
    create_simplified_prompt,
)
from .types import (
    CompletionOutcome,
    CompletionState,
    GenerateFn,
    IssueReason,
)

log = logging.getLogger(__name__)

# --- Telemetry scopes/keys ---
T_COMPLETION_GENERATE = "completion.generate"
T_COMPLETION_ISSUE = "completion.issue"
T_COMPLETION_RECOVERY = "completion.recovery"


class RecoveryStrategy(str, Enum):
    """How the prompt changes before retrying after an error."""

    SIMPLIFY = "simplify"
    REPEAT = "repeat"
    SHORTEN = "shorten"


_RECOVERIES = {
    ErrorKind.UPSTREAM_REJECTED: RecoveryStrategy.SIMPLIFY,
    ErrorKind.INCOMPLETE_SIGNAL: RecoveryStrategy.REPEAT,
    ErrorKind.TIMEOUT: RecoveryStrategy.SHORTEN,
}


def recovery_for(error: BaseException) -> RecoveryStrategy | None:
    """Recovery strategy for an error, or ``None`` when it must propagate."""
    return _RECOVERIES.get(classify_error(error))


def _extract_text(result: Any) -> str:
    if isinstance(result, str):
        return result
    if isinstance(result, Mapping):
        text = result.get("text")
    else:
        text = getattr(result, "text", None)
    return text if isinstance(text, str) else ""


def _discard_late_result(task: asyncio.Future) -> None:
    """Retrieve the outcome of a generation that lost the timeout race."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        log.debug("Generation finished with an error after timeout: %s", error)
    else:
        log.debug("Generation finished after timeout; result discarded")


class CompletionController:
    """Obtains complete responses from an unreliable generation capability.

    The controller holds only its settings and telemetry context, so one
    instance can serve any number of concurrent completions.
    """

    def __init__(
        self,
        settings: CompletionSettings | Mapping[str, Any] | None = None,
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.settings = resolve_settings(settings)
        self._telemetry = telemetry if telemetry is not None else TelemetryContext()

    async def complete(self, generate: GenerateFn, prompt: str, attempt: int = 1) -> str:
        """Generate a complete response for ``prompt``.

        Args:
            generate: Async callable taking a prompt and returning an object
                with a ``text`` attribute, a mapping with a ``"text"`` key, or
                a plain string.
            prompt: The original prompt.
            attempt: Starting attempt number (1-based).

        Returns:
            The response text, merged across continuation rounds.

        Raises:
            GenerationTimeoutError: The last round timed out.
            EmptyResponseError: The model returned blank text.
            Exception: Any other error from ``generate``, re-raised unchanged
                once its recovery is exhausted or when none applies.
        """
        outcome = await self.complete_with_outcome(generate, prompt, attempt=attempt)
        return outcome.text

    async def complete_with_outcome(
        self, generate: GenerateFn, prompt: str, attempt: int = 1
    ) -> CompletionOutcome:
        """Same as :meth:`complete` but reports attempts and detected issues."""
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")

        settings = self.settings
        current_prompt = prompt
        partials: list[str] = []
        issues: list[IssueReason] = []
        rounds = 0
        state = CompletionState.GENERATING

        while True:
            rounds += 1
            log.info(
                "Generation attempt %d (%s) for prompt length: %d",
                attempt,
                state.value,
                len(current_prompt),
            )
            try:
                with self._telemetry(T_COMPLETION_GENERATE, attempt=attempt):
                    text = await self._generate_once(generate, current_prompt)
            except Exception as error:
                strategy = recovery_for(error)
                if strategy is None or attempt >= settings.max_retries:
                    log.error(
                        "Completion %s at attempt %d: %s",
                        CompletionState.FAILED.value,
                        attempt,
                        error,
                    )
                    raise
                log.warning(
                    "Generation attempt %d failed: %s; retrying with %s strategy",
                    attempt,
                    error,
                    strategy.value,
                )
                self._telemetry.count(T_COMPLETION_RECOVERY, strategy=strategy.value)
                current_prompt = self._recovered_prompt(strategy, current_prompt)
                await asyncio.sleep(self._recovery_delay(strategy) / 1000)
                attempt += 1
                state = CompletionState.RETRYING
                continue

            issue = detect_response_issues(text)
            if issue.has_issue and issue.reason is not None:
                issues.append(issue.reason)
                self._telemetry.count(T_COMPLETION_ISSUE, reason=issue.reason.value)
                if attempt < settings.max_retries:
                    log.warning(
                        "Response issue detected: %s. Attempting continuation...",
                        issue.reason.description,
                    )
                    partials.append(text)
                    current_prompt = create_continuation_prompt(
                        current_prompt, text, settings.continuation_prompt
                    )
                    attempt += 1
                    state = CompletionState.RETRYING
                    continue
                log.info(
                    "Response issue %s left unresolved after %d attempt(s)",
                    issue.reason.value,
                    attempt,
                )
            break

        # Fold right: combine(t1, combine(t2, t3)) like nested continuations.
        for partial in reversed(partials):
            text = combine_partial_responses(partial, text)

        state = CompletionState.SUCCEEDED
        log.debug("Completion %s after %d round(s)", state.value, rounds)
        return CompletionOutcome(
            text=text,
            attempts=rounds,
            state=state,
            issues=tuple(issues),
            continuations=len(partials),
        )

    async def _generate_once(self, generate: GenerateFn, prompt: str) -> str:
        """Race one generation against the timeout and validate its text."""
        task = asyncio.ensure_future(generate(prompt))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.settings.timeout_seconds)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task not in done:
            task.add_done_callback(_discard_late_result)
            raise GenerationTimeoutError("Response timeout")

        text = _extract_text(task.result())
        if not text.strip():
            raise EmptyResponseError("Model returned empty response")
        return text

    def _recovered_prompt(self, strategy: RecoveryStrategy, prompt: str) -> str:
        if strategy is RecoveryStrategy.SIMPLIFY:
            return create_simplified_prompt(prompt)
        if strategy is RecoveryStrategy.SHORTEN:
            return create_shortened_prompt(prompt, self.settings.short_prompt_chars)
        return prompt

    def _recovery_delay(self, strategy: RecoveryStrategy) -> int:
        if strategy is RecoveryStrategy.SIMPLIFY:
            return self.settings.rejected_retry_delay_ms
        return self.settings.retry_delay_ms


async def complete_generation(
    generate: GenerateFn,
    prompt: str,
    options: CompletionSettings | Mapping[str, Any] | None = None,
    attempt: int = 1,
) -> str:
    """One-shot helper around :class:`CompletionController`."""
    controller = CompletionController(options)
    return await controller.complete(generate, prompt, attempt=attempt)
