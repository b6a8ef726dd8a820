"""
Detection of small-model response problems
"""

import re

from ..constants import (
    ABRUPT_ENDING_MIN_LENGTH,
    LOOP_REPEAT_THRESHOLD,
    SENTENCE_TERMINATORS,
    THINK_CLOSE,
    THINK_OPEN,
)
from .types import CompletionIssue, IssueReason

# One word followed by (threshold - 1) more copies of itself
_LOOP_PATTERN = re.compile(
    rf"\b(\w+)\b(?:\s+\1\b){{{LOOP_REPEAT_THRESHOLD - 1},}}",
    re.IGNORECASE,
)


def has_repetitive_loop(text: str) -> bool:
    return _LOOP_PATTERN.search(text) is not None


def has_abrupt_ending(text: str) -> bool:
    return len(text) > ABRUPT_ENDING_MIN_LENGTH and not text.strip().endswith(
        SENTENCE_TERMINATORS
    )


def has_incomplete_json(text: str) -> bool:
    return "{" in text and "}" not in text


def has_unclosed_thinking(text: str) -> bool:
    return THINK_OPEN in text and THINK_CLOSE not in text


# Order matters: the first matching check is the one reported.
_CHECKS = (
    (has_repetitive_loop, IssueReason.REPETITIVE_LOOP),
    (has_abrupt_ending, IssueReason.ABRUPT_ENDING),
    (has_incomplete_json, IssueReason.INCOMPLETE_JSON),
    (has_unclosed_thinking, IssueReason.UNCLOSED_THINKING),
)


def detect_response_issues(text: str) -> CompletionIssue:
    """Return the first completion issue found in ``text``.

    Checks run as loop, abrupt ending, unbalanced braces, unclosed thinking;
    a response with several problems reports only the earliest one.
    """
    for check, reason in _CHECKS:
        if check(text):
            return CompletionIssue(has_issue=True, reason=reason)
    return CompletionIssue.none()
