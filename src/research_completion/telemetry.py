"""Telemetry for completion rounds and recoveries.

Disabled telemetry costs one shared no-op object. With
``RESEARCH_COMPLETION_TELEMETRY=1`` (or ``DEBUG=1``) and at least one
reporter, scopes are timed and counters are forwarded to every reporter.
Scope names nest through a context variable, so concurrent completions keep
separate paths.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os
import time
from types import TracebackType
from typing import Any, Protocol, Self, TypeAlias, runtime_checkable

log = logging.getLogger(__name__)

_active_scopes: ContextVar[tuple[str, ...]] = ContextVar("active_scopes", default=())

TELEMETRY_ENV_VAR = "RESEARCH_COMPLETION_TELEMETRY"


def telemetry_enabled() -> bool:
    """Read the enable flags at call time so tests and CLIs can toggle them."""
    return os.getenv(TELEMETRY_ENV_VAR) == "1" or os.getenv("DEBUG") == "1"


@runtime_checkable
class TelemetryReporter(Protocol):
    """Anything with these two methods can receive telemetry."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _DisabledTelemetry:
    """Accepts every telemetry call and does nothing."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        return None

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        pass

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        pass


def _path_and_context(
    stack: tuple[str, ...], name: str, metadata: dict[str, Any]
) -> tuple[str, dict[str, Any]]:
    context = {
        "depth": len(stack),
        "parent_scope": ".".join(stack) or None,
        **metadata,
    }
    return ".".join((*stack, name)), context


class _ReportingTelemetry:
    """Times scopes and forwards metrics to reporters."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    def __call__(
        self, name: str, **metadata: Any
    ) -> AbstractContextManager[_ReportingTelemetry]:
        if not name or not isinstance(name, str):
            raise ValueError("Scope name must be a non-empty string")
        return self._timed(name, metadata)

    @contextmanager
    def _timed(
        self, name: str, metadata: dict[str, Any]
    ) -> Iterator[_ReportingTelemetry]:
        stack = _active_scopes.get()
        token = _active_scopes.set((*stack, name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            _active_scopes.reset(token)
            path, context = _path_and_context(stack, name, metadata)
            self._emit("record_timing", path, elapsed, context)

    def _emit(
        self, method: str, path: str, value: Any, context: dict[str, Any]
    ) -> None:
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(path, value, **context)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed: %s",
                    type(reporter).__name__,
                    e,
                    exc_info=True,
                )

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        """Record ``value`` under ``name`` inside the active scope."""
        path, context = _path_and_context(_active_scopes.get(), name, metadata)
        self._emit("record_metric", path, value, context)

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        self.metric(name, increment, metric_type="counter", **metadata)

    def gauge(self, name: str, value: float, **metadata: Any) -> None:
        self.metric(name, value, metric_type="gauge", **metadata)


_DISABLED = _DisabledTelemetry()

TelemetryContextProtocol: TypeAlias = _ReportingTelemetry | _DisabledTelemetry


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return a reporting context, or the shared no-op one.

    The no-op context is returned when telemetry is switched off or when no
    reporter is given.
    """
    if reporters and telemetry_enabled():
        return _ReportingTelemetry(*reporters)
    return _DISABLED


class InMemoryReporter:
    """Keeps the latest timings and metrics per scope in bounded deques."""

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}

    def _bucket(self, store: dict[str, deque], scope: str) -> deque:
        return store.setdefault(scope, deque(maxlen=self.max_entries))

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self._bucket(self.timings, scope).append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self._bucket(self.metrics, scope).append((value, metadata))

    def total(self, scope: str) -> float:
        """Sum of the numeric metric values recorded under ``scope``."""
        return sum(
            value
            for value, _ in self.metrics.get(scope, ())
            if isinstance(value, int | float)
        )

    def get_report(self) -> str:
        lines = ["=== Telemetry Report ===", "", "--- Timings ---"]
        for scope, entries in sorted(self.timings.items()):
            durations = [duration for duration, _ in entries]
            lines.append(
                f"{scope:<40} | Calls: {len(durations):<4} | "
                f"Avg: {sum(durations) / len(durations):.4f}s | "
                f"Total: {sum(durations):.4f}s"
            )
        if self.metrics:
            lines += ["", "--- Metrics ---"]
            lines.extend(
                f"{scope:<40} | Count: {len(entries):<4} | "
                f"Total: {self.total(scope):,.0f}"
                for scope, entries in sorted(self.metrics.items())
            )
        return "\n".join(lines)
