"""
Prompt rewrites used when retrying a generation
"""

import logging
import re

from ..constants import (
    CONTINUATION_PROMPT,
    DEFAULT_SHORT_PROMPT_CHARS,
    DIRECT_ANSWER_INSTRUCTION,
    FALLBACK_QUERY,
    PARTIAL_RESPONSE_HEADER,
    SIMPLIFIED_PROMPT_TEMPLATE,
)

log = logging.getLogger(__name__)

_QUERY_PATTERN = re.compile(
    r"""(?:Query|Question|User asks?):\s*["']?([^"'\n]+)["']?""",
    re.IGNORECASE,
)


def create_continuation_prompt(
    prompt: str, partial: str, instruction: str = CONTINUATION_PROMPT
) -> str:
    """Ask the model to resume ``partial`` under the original ``prompt``."""
    return f"{prompt}\n\n{PARTIAL_RESPONSE_HEADER}\n{partial}\n\n{instruction}"


def create_simplified_prompt(prompt: str) -> str:
    """Reduce a prompt to a short fact-extraction request.

    Used after the model server rejected a response; small models tend to
    cope better with a direct question than with long instructions.
    """
    match = _QUERY_PATTERN.search(prompt)
    query = match.group(1) if match else FALLBACK_QUERY
    simplified = SIMPLIFIED_PROMPT_TEMPLATE.format(query=query)
    log.debug(
        "Simplified prompt from %d to %d characters", len(prompt), len(simplified)
    )
    return simplified


def create_shortened_prompt(
    prompt: str, limit: int = DEFAULT_SHORT_PROMPT_CHARS
) -> str:
    """Cut a long prompt to ``limit`` characters and ask for a direct answer."""
    if len(prompt) <= limit:
        return prompt
    return f"{prompt[:limit]}\n\n{DIRECT_ANSWER_INSTRUCTION}"
