"""Behavior of the completion controller's retry and continuation loop."""

import asyncio
from unittest.mock import AsyncMock, call, patch

import pytest

from research_completion.completion import (
    CompletionController,
    RecoveryStrategy,
    combine_partial_responses,
    complete_generation,
    recovery_for,
)
from research_completion.completion.types import (
    CompletionState,
    GenerationResult,
    IssueReason,
)
from research_completion.config import CompletionSettings
from research_completion.exceptions import (
    EmptyResponseError,
    GenerationTimeoutError,
    UpstreamRejectedError,
)
from research_completion.telemetry import InMemoryReporter, TelemetryContext

pytestmark = pytest.mark.unit

TRUNCATED = (
    "Photosynthesis converts light energy into chemical energy stored in glucose, "
    "and it takes place in the chloroplasts of the"
)
CONTINUED = "the chloroplasts of the plant cell."


@pytest.mark.asyncio
async def test_complete_response_is_returned_as_is(scripted_generate, fast_settings):
    generate, prompts = scripted_generate(["Water boils at 100 degrees Celsius."])

    text = await complete_generation(generate, "Boiling point?", fast_settings)

    assert text == "Water boils at 100 degrees Celsius."
    assert prompts == ["Boiling point?"]


@pytest.mark.asyncio
async def test_truncated_response_is_continued_and_merged(
    scripted_generate, fast_settings
):
    generate, prompts = scripted_generate([TRUNCATED, CONTINUED])
    controller = CompletionController(fast_settings)

    outcome = await controller.complete_with_outcome(generate, "Explain photosynthesis")

    assert outcome.text.endswith("in the chloroplasts of the plant cell.")
    assert outcome.text == combine_partial_responses(TRUNCATED, CONTINUED)
    assert outcome.attempts == 2
    assert outcome.continuations == 1
    assert outcome.was_continued
    assert outcome.issues == (IssueReason.ABRUPT_ENDING,)
    assert outcome.state is CompletionState.SUCCEEDED
    assert f"Previous partial response:\n{TRUNCATED}" in prompts[1]
    assert prompts[1].startswith("Explain photosynthesis\n\n")


@pytest.mark.asyncio
async def test_continuations_fold_from_the_right(scripted_generate, fast_settings):
    t1 = "First part " + "of a long answer that keeps going " * 4 + "and"
    t2 = "and a second long part " + "that also does not finish " * 4 + "so"
    t3 = "so it finally ends."
    generate, prompts = scripted_generate([t1, t2, t3])

    text = await CompletionController(fast_settings).complete(generate, "Q")

    assert text == combine_partial_responses(t1, combine_partial_responses(t2, t3))
    assert len(prompts) == 3


@pytest.mark.asyncio
async def test_unbalanced_brace_with_single_attempt_returns_raw(scripted_generate):
    generate, prompts = scripted_generate(['{"a": 1'])
    settings = CompletionSettings(max_retries=1, retry_delay_ms=0)

    text = await complete_generation(generate, "json please", settings)

    assert text == '{"a": 1'
    assert len(prompts) == 1


@pytest.mark.asyncio
async def test_issue_on_last_attempt_is_accepted(scripted_generate):
    generate, prompts = scripted_generate([TRUNCATED])
    settings = CompletionSettings(max_retries=2, retry_delay_ms=0)

    outcome = await CompletionController(settings).complete_with_outcome(generate, "Q")

    assert len(prompts) == 2
    assert outcome.issues == (IssueReason.ABRUPT_ENDING, IssueReason.ABRUPT_ENDING)
    assert outcome.continuations == 1


@pytest.mark.asyncio
async def test_timeout_errors_shorten_the_prompt_then_propagate(
    scripted_generate, fast_settings
):
    error = RuntimeError("request timeout")
    generate, prompts = scripted_generate([error])
    prompt = "p" * 1200

    with pytest.raises(RuntimeError) as exc_info:
        await complete_generation(generate, prompt, fast_settings)

    assert exc_info.value is error
    assert len(prompts) == fast_settings.max_retries
    assert prompts[0] == prompt
    assert prompts[1] == "p" * 500 + "\n\nPlease provide a direct answer."
    assert len(prompts[2]) <= len(prompts[1])


@pytest.mark.asyncio
async def test_rejected_response_retries_with_simplified_prompt(scripted_generate):
    generate, prompts = scripted_generate(
        [
            UpstreamRejectedError("Ollama API rejected response: HTTP 500"),
            "Paris is the capital of France.",
        ]
    )
    controller = CompletionController(CompletionSettings())

    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep_mock:
        text = await controller.complete(generate, "Query: capital of France?")

    assert text == "Paris is the capital of France."
    assert prompts[1].startswith("Extract information to answer: capital of France?")
    assert sleep_mock.await_args_list == [call(2.0)]


@pytest.mark.asyncio
async def test_not_done_signal_repeats_the_same_prompt(scripted_generate):
    generate, prompts = scripted_generate(
        [RuntimeError('partial {"done": false}'), "Done now."]
    )
    controller = CompletionController(CompletionSettings())

    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep_mock:
        text = await controller.complete(generate, "Say done")

    assert text == "Done now."
    assert prompts == ["Say done", "Say done"]
    assert sleep_mock.await_args_list == [call(1.0)]


@pytest.mark.asyncio
async def test_unrecognized_error_propagates_immediately(
    scripted_generate, fast_settings
):
    generate, prompts = scripted_generate([ValueError("boom")])

    with pytest.raises(ValueError, match="boom"):
        await complete_generation(generate, "Q", fast_settings)

    assert len(prompts) == 1


@pytest.mark.asyncio
async def test_failed_run_is_logged_and_yields_no_outcome(
    scripted_generate, fast_settings, caplog
):
    generate, _ = scripted_generate([ValueError("boom")])
    controller = CompletionController(fast_settings)

    with pytest.raises(ValueError, match="boom"):
        await controller.complete_with_outcome(generate, "Q")

    assert "Completion failed at attempt 1: boom" in caplog.text


@pytest.mark.asyncio
async def test_blank_text_raises_empty_response(scripted_generate, fast_settings):
    generate, prompts = scripted_generate(["   \n"])

    with pytest.raises(EmptyResponseError, match="Model returned empty response"):
        await complete_generation(generate, "Q", fast_settings)

    assert len(prompts) == 1


@pytest.mark.asyncio
async def test_generation_that_outlives_timeout_is_abandoned():
    finished = asyncio.Event()

    async def slow_generate(prompt: str) -> GenerationResult:
        await asyncio.sleep(0.2)
        finished.set()
        return GenerationResult(text="Too late.")

    settings = CompletionSettings(max_retries=1, timeout_ms=20)

    with pytest.raises(GenerationTimeoutError, match="Response timeout"):
        await complete_generation(slow_generate, "Q", settings)

    # The abandoned generation still runs to completion in the background
    await asyncio.wait_for(finished.wait(), timeout=1)


@pytest.mark.asyncio
async def test_generation_timeout_is_retried_with_shortened_prompt():
    calls: list[str] = []

    async def generate(prompt: str) -> GenerationResult:
        calls.append(prompt)
        if len(calls) == 1:
            await asyncio.sleep(0.2)
        return GenerationResult(text="Quick answer.")

    settings = CompletionSettings(max_retries=2, timeout_ms=20, retry_delay_ms=0)

    text = await complete_generation(generate, "q" * 800, settings)

    assert text == "Quick answer."
    assert calls[1] == "q" * 500 + "\n\nPlease provide a direct answer."
    await asyncio.sleep(0.25)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        "plain string.",
        {"text": "plain string."},
        GenerationResult(text="plain string."),
    ],
)
async def test_generation_result_shapes_are_accepted(payload, fast_settings):
    async def generate(prompt: str):
        return payload

    assert await complete_generation(generate, "Q", fast_settings) == "plain string."


@pytest.mark.asyncio
async def test_starting_attempt_counts_toward_the_limit(
    scripted_generate, fast_settings
):
    generate, prompts = scripted_generate([RuntimeError("timeout")])

    with pytest.raises(RuntimeError):
        await complete_generation(generate, "Q", fast_settings, attempt=3)

    assert len(prompts) == 1


@pytest.mark.asyncio
async def test_attempt_must_be_positive(scripted_generate, fast_settings):
    generate, _ = scripted_generate(["ok."])

    with pytest.raises(ValueError, match="attempt must be >= 1"):
        await complete_generation(generate, "Q", fast_settings, attempt=0)


@pytest.mark.asyncio
async def test_mapping_options_are_accepted(scripted_generate):
    generate, prompts = scripted_generate(['{"a": 1'])

    text = await complete_generation(
        generate, "Q", {"max_retries": 1, "retry_delay_ms": 0}
    )

    assert text == '{"a": 1'
    assert len(prompts) == 1


@pytest.mark.asyncio
async def test_telemetry_records_rounds_and_recoveries(
    monkeypatch, scripted_generate, fast_settings
):
    monkeypatch.setenv("RESEARCH_COMPLETION_TELEMETRY", "1")
    reporter = InMemoryReporter()
    controller = CompletionController(
        fast_settings, telemetry=TelemetryContext(reporter)
    )
    generate, _ = scripted_generate([RuntimeError("timeout"), "Recovered."])

    await controller.complete(generate, "Q")

    assert len(reporter.timings["completion.generate"]) == 2
    assert reporter.total("completion.recovery") == 1
    _, metadata = reporter.metrics["completion.recovery"][0]
    assert metadata["strategy"] == "shorten"


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (RuntimeError("Invalid JSON response from server"), RecoveryStrategy.SIMPLIFY),
        (RuntimeError("Ollama API rejected response"), RecoveryStrategy.SIMPLIFY),
        (RuntimeError('{"done": false}'), RecoveryStrategy.REPEAT),
        (RuntimeError("socket timeout"), RecoveryStrategy.SHORTEN),
        (GenerationTimeoutError("Response timeout"), RecoveryStrategy.SHORTEN),
        (EmptyResponseError("Model returned empty response"), None),
        (ValueError("boom"), None),
    ],
)
def test_recovery_for(error, expected):
    assert recovery_for(error) is expected
