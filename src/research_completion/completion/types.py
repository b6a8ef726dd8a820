"""
Completion types and result containers

Data structures shared by the completion controller: what a generation
capability returns, what issue detection reports, and how a completion
resolved.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias


@dataclass(frozen=True)
class GenerationResult:
    """Text produced by one call to a generation capability"""

    text: str
    raw: Mapping[str, Any] = field(default_factory=dict)


GenerateFn: TypeAlias = Callable[[str], Awaitable[GenerationResult | Mapping[str, Any] | str]]


class IssueReason(str, Enum):
    """Diagnostics reported by issue detection, in check order."""

    REPETITIVE_LOOP = "RepetitiveLoop"
    ABRUPT_ENDING = "AbruptEnding"
    INCOMPLETE_JSON = "IncompleteJSON"
    UNCLOSED_THINKING = "UnclosedThinking"

    @property
    def description(self) -> str:
        return _ISSUE_DESCRIPTIONS[self]


_ISSUE_DESCRIPTIONS = {
    IssueReason.REPETITIVE_LOOP: "Repetitive loop detected",
    IssueReason.ABRUPT_ENDING: "Abrupt ending without punctuation",
    IssueReason.INCOMPLETE_JSON: "Incomplete JSON structure",
    IssueReason.UNCLOSED_THINKING: "Unclosed thinking tags",
}


@dataclass(frozen=True)
class CompletionIssue:
    """Result of issue detection on a single response"""

    has_issue: bool
    reason: IssueReason | None = None

    @classmethod
    def none(cls) -> CompletionIssue:
        return cls(has_issue=False)


class CompletionState(str, Enum):
    """Where the controller loop is, or how it ended.

    ``GENERATING`` and ``RETRYING`` label rounds in progress. A run ends either
    in ``SUCCEEDED``, carried by :class:`CompletionOutcome`, or in ``FAILED``,
    which is logged as the error propagates.
    """

    GENERATING = "generating"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class CompletionOutcome:
    """Completed text plus how it was obtained

    Only built for a run that returned text, so ``state`` is always
    ``SUCCEEDED``; a failed run raises instead.
    """

    text: str
    attempts: int
    state: CompletionState
    issues: tuple[IssueReason, ...] = ()
    continuations: int = 0

    @property
    def was_continued(self) -> bool:
        """True if at least one continuation round was merged into ``text``"""
        return self.continuations > 0
