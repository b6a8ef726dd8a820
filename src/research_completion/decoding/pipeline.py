"""
Cleanup pipeline for JSON-like candidates

The pipeline is an explicit, ordered tuple of named steps so each repair can
be tested on its own and reordered deliberately. A step that raises is
skipped: its input passes through unchanged.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import logging

from .array_repair import repair_array_elements
from .escapes import repair_escape_characters
from .repairs import (
    convert_single_quotes,
    escape_inner_quotes,
    normalize_smart_quotes,
    quote_bare_keys,
    quote_bare_values,
    quote_bare_words,
    remove_trailing_commas,
    strip_code_fences,
    strip_comments,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupStep:
    """A named text repair that never raises"""

    name: str
    transform: Callable[[str], str]

    def __call__(self, text: str) -> str:
        try:
            return self.transform(text)
        except Exception as e:
            log.warning("Cleanup step '%s' failed, keeping input: %s", self.name, e)
            return text


CLEANUP_PIPELINE: tuple[CleanupStep, ...] = (
    CleanupStep("normalize_smart_quotes", normalize_smart_quotes),
    CleanupStep("remove_trailing_commas", remove_trailing_commas),
    CleanupStep("escape_inner_quotes", escape_inner_quotes),
    CleanupStep("strip_comments", strip_comments),
    CleanupStep("strip_code_fences", strip_code_fences),
    CleanupStep("quote_bare_keys", quote_bare_keys),
    CleanupStep("quote_bare_words", quote_bare_words),
    CleanupStep("repair_array_elements", repair_array_elements),
    CleanupStep("repair_escape_characters", repair_escape_characters),
    CleanupStep("convert_single_quotes", convert_single_quotes),
    CleanupStep("quote_bare_values", quote_bare_values),
)


def run_cleanup_pipeline(
    text: str, steps: Iterable[CleanupStep] = CLEANUP_PIPELINE
) -> str:
    """Apply each cleanup step in order and trim the result."""
    cleaned = text
    for step in steps:
        cleaned = step(cleaned)
    return cleaned.strip()
