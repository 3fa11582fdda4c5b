# hazard_fallback.py
# Ordered strategy execution with per-strategy statistics, plus a circuit
# breaker for flaky remote sources.

import asyncio
import inspect
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from hazard_errors import CircuitOpenError, ConfigurationError
from hazard_models import StrategyResult

logger = logging.getLogger(__name__)

RELIABILITY_MIN_CALLS = 10
RECENT_FAILURE_WINDOW = 5 * 60


@dataclass(frozen=True)
class Strategy:
    """One named way of producing a result; operation takes no arguments"""

    name: str
    confidence: float
    operation: Callable[[], Any]


@dataclass(frozen=True)
class FallbackResult:
    data: Any
    strategy_name: str
    confidence: float
    warning: Optional[str] = None


@dataclass
class StrategyStats:
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_duration_ms: float = 0.0
    last_failure: Optional[datetime] = None
    last_failure_ts: Optional[float] = None
    last_error: Optional[str] = None

    @property
    def success_rate(self):
        return self.successful_calls / self.total_calls if self.total_calls else 0.0

    @property
    def average_duration_ms(self):
        return self.total_duration_ms / self.total_calls if self.total_calls else 0.0

    def to_dict(self):
        return {
            "totalCalls": self.total_calls,
            "successfulCalls": self.successful_calls,
            "failedCalls": self.failed_calls,
            "successRate": round(self.success_rate, 4),
            "averageDurationMs": round(self.average_duration_ms, 3),
            "lastFailure": self.last_failure.isoformat() if self.last_failure else None,
            "lastError": self.last_error,
        }


async def _invoke(operation):
    result = operation()
    if inspect.isawaitable(result):
        result = await result
    return result


class FallbackOrchestrator:
    """
    Runs strategies strictly in the order given and returns the first success.
    The last strategy in a list must not fail; if it does, ConfigurationError
    escapes to the caller.
    """

    def __init__(self, default_timeout=None, clock=time.time):
        self.default_timeout = default_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._stats = {}

    async def _run(self, strategy, timeout):
        started = time.perf_counter()
        try:
            if timeout is not None:
                data = await asyncio.wait_for(_invoke(strategy.operation), timeout)
            else:
                data = await _invoke(strategy.operation)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            duration_ms = (time.perf_counter() - started) * 1000
            return StrategyResult(strategy.name, strategy.confidence, duration_ms, error=e)
        duration_ms = (time.perf_counter() - started) * 1000
        return StrategyResult(strategy.name, strategy.confidence, duration_ms, data=data)

    async def execute_with_fallback(self, strategies, label, timeout=None):
        """Try each strategy in turn; warning is set when the first one did not succeed"""
        strategies = list(strategies)
        if not strategies:
            raise ConfigurationError(f"{label}: no strategies supplied")

        if timeout is None:
            timeout = self.default_timeout

        for index, strategy in enumerate(strategies):
            outcome = await self._run(strategy, timeout)
            self.record_result(outcome)

            if outcome.succeeded:
                warning = None
                if index > 0:
                    warning = f"{label} used {strategy.name} (confidence {strategy.confidence})"
                    logger.warning(f"[Fallback] {warning}")
                return FallbackResult(
                    data=outcome.data,
                    strategy_name=strategy.name,
                    confidence=strategy.confidence,
                    warning=warning,
                )

            error = outcome.error
            if index == len(strategies) - 1:
                logger.error(f"[Fallback] {label}: final strategy {strategy.name} failed: {error!r}")
                raise ConfigurationError(
                    f"{label}: final strategy {strategy.name} must not fail"
                ) from error

            if isinstance(error, asyncio.TimeoutError):
                logger.warning(f"[Fallback] {label}: {strategy.name} timed out after {timeout}s")
            else:
                logger.warning(f"[Fallback] {label}: {strategy.name} failed: {error}")

    def record_result(self, outcome):
        with self._lock:
            stats = self._stats.setdefault(outcome.strategy_name, StrategyStats())
            stats.total_calls += 1
            stats.total_duration_ms += outcome.duration_ms
            if outcome.succeeded:
                stats.successful_calls += 1
            else:
                stats.failed_calls += 1
                stats.last_failure_ts = self._clock()
                stats.last_failure = datetime.fromtimestamp(stats.last_failure_ts, tz=timezone.utc)
                stats.last_error = f"{type(outcome.error).__name__}: {outcome.error}"

    def get_operation_stats(self):
        """Snapshot of per-strategy counters keyed by strategy name"""
        with self._lock:
            return {name: stats.to_dict() for name, stats in self._stats.items()}

    def is_operation_reliable(self, name, threshold=0.8):
        """
        Unknown or rarely used strategies count as reliable. A failure inside
        the last five minutes makes a strategy unreliable regardless of rate.
        """
        with self._lock:
            stats = self._stats.get(name)
            if stats is None or stats.total_calls < RELIABILITY_MIN_CALLS:
                return True
            if stats.last_failure_ts is not None and self._clock() - stats.last_failure_ts < RECENT_FAILURE_WINDOW:
                return False
            return stats.success_rate >= threshold


class CircuitBreaker:
    """Fails fast with CircuitOpenError after too many consecutive failures"""

    def __init__(self, name, failure_threshold=5, reset_seconds=60.0, clock=time.monotonic):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_seconds = reset_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._consecutive_failures = 0
        self._opened_at = None

    @property
    def is_open(self):
        with self._lock:
            return self._check_open()

    def _check_open(self):
        if self._opened_at is None:
            return False
        if self._clock() - self._opened_at > self.reset_seconds:
            logger.info(f"[Circuit] {self.name} reset after {self.reset_seconds}s")
            self._opened_at = None
            self._consecutive_failures = 0
            return False
        return True

    async def call(self, operation, *args, **kwargs):
        with self._lock:
            if self._check_open():
                raise CircuitOpenError(self.name, "circuit open, skipping call")
        try:
            result = await _invoke(lambda: operation(*args, **kwargs))
        except Exception:
            with self._lock:
                self._consecutive_failures += 1
                if self._consecutive_failures >= self.failure_threshold and self._opened_at is None:
                    self._opened_at = self._clock()
                    logger.error(
                        f"[Circuit] {self.name} opened after {self._consecutive_failures} consecutive failures"
                    )
            raise
        with self._lock:
            self._consecutive_failures = 0
        return result
