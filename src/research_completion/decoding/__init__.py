"""
Resilient JSON decoding for malformed model output
"""

from .array_repair import repair_array_elements
from .decoder import decode_resilient_json, strip_thinking, try_decode
from .escapes import repair_escape_characters
from .pipeline import CLEANUP_PIPELINE, CleanupStep, run_cleanup_pipeline
from .types import ParsingResult

__all__ = [  # noqa: RUF022
    "decode_resilient_json",
    "try_decode",
    "strip_thinking",
    "ParsingResult",
    "CLEANUP_PIPELINE",
    "CleanupStep",
    "run_cleanup_pipeline",
    "repair_array_elements",
    "repair_escape_characters",
]
