"""Response completion and resilient JSON decoding for small local models."""

import importlib.metadata
import logging

from research_completion.completion import (
    CompletionController,
    CompletionIssue,
    CompletionOutcome,
    CompletionState,
    GenerationResult,
    IssueReason,
    combine_partial_responses,
    complete_generation,
    create_continuation_prompt,
    create_shortened_prompt,
    detect_response_issues,
    extract_partial_content,
    sanitize_response,
)
from research_completion.config import (
    CompletionSettings,
    OllamaSettings,
    load_settings,
)
from research_completion.decoding import (
    ParsingResult,
    decode_resilient_json,
    repair_array_elements,
    repair_escape_characters,
    try_decode,
)
from research_completion.exceptions import (
    EmptyResponseError,
    ErrorKind,
    GenerationError,
    GenerationTimeoutError,
    IncompleteResponseError,
    ResearchCompletionError,
    ResilientJSONDecodeError,
    UpstreamRejectedError,
    classify_error,
)
from research_completion.telemetry import (
    InMemoryReporter,
    TelemetryContext,
    TelemetryReporter,
)

# Version handling
try:
    __version__ = importlib.metadata.version("research-completion")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
# This prevents 'No handler found' errors if the consuming app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Completion
    "complete_generation",
    "CompletionController",
    "CompletionOutcome",
    "CompletionState",
    "GenerationResult",
    "detect_response_issues",
    "CompletionIssue",
    "IssueReason",
    "combine_partial_responses",
    "create_continuation_prompt",
    "create_shortened_prompt",
    "sanitize_response",
    "extract_partial_content",
    # Decoding
    "decode_resilient_json",
    "try_decode",
    "ParsingResult",
    "repair_array_elements",
    "repair_escape_characters",
    # Configuration
    "CompletionSettings",
    "OllamaSettings",
    "load_settings",
    # Telemetry (extension points)
    "TelemetryContext",
    "TelemetryReporter",
    "InMemoryReporter",
    # Exceptions
    "ResearchCompletionError",
    "GenerationError",
    "GenerationTimeoutError",
    "EmptyResponseError",
    "UpstreamRejectedError",
    "IncompleteResponseError",
    "ResilientJSONDecodeError",
    "ErrorKind",
    "classify_error",
]
