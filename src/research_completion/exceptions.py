"""Exceptions and error classification for research completion"""

from __future__ import annotations

from enum import Enum
import json

from .constants import (
    INVALID_JSON_SIGNATURE,
    NOT_DONE_SIGNATURE,
    REJECTED_RESPONSE_SIGNATURE,
    TIMEOUT_SIGNATURE,
)


class ResearchCompletionError(Exception):
    """Base exception for research completion errors"""


class GenerationError(ResearchCompletionError):
    """Raised when the generation capability fails for an unrecognized reason"""


class GenerationTimeoutError(GenerationError, TimeoutError):
    """Raised when generation does not settle within the configured window"""


class EmptyResponseError(GenerationError):
    """Raised when the model returns blank text"""


class UpstreamRejectedError(GenerationError):
    """Raised when the model server rejects a request or returns invalid JSON"""


class IncompleteResponseError(GenerationError):
    """Raised when the model server reports a response that is not done"""


class ResilientJSONDecodeError(ResearchCompletionError, json.JSONDecodeError):
    """Raised when every JSON recovery strategy has been exhausted"""


class ErrorKind(str, Enum):
    """Error taxonomy shared by the controller and its callers."""

    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    UPSTREAM_REJECTED = "upstream_rejected"
    INCOMPLETE_SIGNAL = "incomplete_signal"
    JSON_DECODE = "json_decode"
    UNKNOWN = "unknown"


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception onto the error taxonomy.

    Known exception types win; otherwise the message is inspected for the
    signatures that model servers embed in their error text. The substring
    order mirrors the order the controller applies its recoveries in.
    """
    if isinstance(error, json.JSONDecodeError):
        return ErrorKind.JSON_DECODE
    if isinstance(error, EmptyResponseError):
        return ErrorKind.EMPTY_RESPONSE
    if isinstance(error, UpstreamRejectedError):
        return ErrorKind.UPSTREAM_REJECTED
    if isinstance(error, IncompleteResponseError):
        return ErrorKind.INCOMPLETE_SIGNAL

    message = str(error)
    if INVALID_JSON_SIGNATURE in message or REJECTED_RESPONSE_SIGNATURE in message:
        return ErrorKind.UPSTREAM_REJECTED
    if NOT_DONE_SIGNATURE in message:
        return ErrorKind.INCOMPLETE_SIGNAL
    if TIMEOUT_SIGNATURE in message or isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.UNKNOWN
