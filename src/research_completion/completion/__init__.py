"""
Response completion for small local models
"""

from .controller import (
    CompletionController,
    RecoveryStrategy,
    complete_generation,
    recovery_for,
)
from .issues import detect_response_issues
from .merge import combine_partial_responses
from .prompts import (
    create_continuation_prompt,
    create_shortened_prompt,
    create_simplified_prompt,
)
from .sanitize import extract_partial_content, sanitize_response
from .types import (
    CompletionIssue,
    CompletionOutcome,
    CompletionState,
    GenerateFn,
    GenerationResult,
    IssueReason,
)

__all__ = [  # noqa: RUF022
    "CompletionController",
    "RecoveryStrategy",
    "complete_generation",
    "recovery_for",
    "detect_response_issues",
    "combine_partial_responses",
    "create_continuation_prompt",
    "create_shortened_prompt",
    "create_simplified_prompt",
    "extract_partial_content",
    "sanitize_response",
    "CompletionIssue",
    "CompletionOutcome",
    "CompletionState",
    "GenerateFn",
    "GenerationResult",
    "IssueReason",
]
