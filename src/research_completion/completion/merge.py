"""
Merging of a truncated response with its continuation
"""

from ..constants import MAX_MERGE_OVERLAP_WORDS


def combine_partial_responses(first: str, second: str) -> str:
    """Join two response fragments, dropping words repeated at the seam.

    The largest run of up to ten words that ends ``first`` and starts
    ``second`` (compared case-insensitively) is kept once. Without any
    overlap the fragments are separated by a blank line.
    """
    first_trimmed = first.strip()
    second_trimmed = second.strip()

    words1 = first_trimmed.split()
    words2 = second_trimmed.split()

    overlap = 0
    max_overlap = min(MAX_MERGE_OVERLAP_WORDS, len(words1), len(words2))
    for size in range(1, max_overlap + 1):
        end1 = " ".join(words1[-size:])
        start2 = " ".join(words2[:size])
        if end1.lower() == start2.lower():
            overlap = size

    if overlap > 0:
        return " ".join([*words1, *words2[overlap:]])

    return f"{first_trimmed}\n\n{second_trimmed}"
