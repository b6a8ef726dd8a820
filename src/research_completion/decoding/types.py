"""
Decoding result container
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ParsingResult:
    """Result from resilient parsing with method and error information

    ``method`` names the strategy that produced ``parsed_data``: ``direct``,
    ``object_repair``, ``array_repair``, or ``exhausted`` on failure.
    """

    success: bool
    parsed_data: Any
    confidence: float
    method: str
    errors: list[str] = field(default_factory=list)
