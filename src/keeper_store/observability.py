"""Observability utilities for the Keeper note store.

Logging setup for the ``keeper_store`` logger hierarchy, per-operation
metrics for the store, and ``timed_operation``, which every
``KeeperService`` method runs inside.

Besides timing and failures, the collector keeps what the service
reports about each call's outcome: how many rows a listing returned
and how often a lookup came back empty.
"""
import logging
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
LOG_FILE_NAME = "keeper.log"


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Optional[Path]:
    """Attach handlers to the ``keeper_store`` logger.

    Args:
        log_dir: Directory for a rotating ``keeper.log``; no file output if None
        level: Level for the logger and its handlers
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep
        console: Also log to stderr; added once however often this is called

    Returns:
        The log directory, or None for console-only logging
    """
    keeper_logger = logging.getLogger("keeper_store")
    keeper_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    log_path = Path(log_dir) if log_dir else None
    if log_path is not None:
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / LOG_FILE_NAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        keeper_logger.addHandler(file_handler)

    has_console = any(
        type(h) is logging.StreamHandler for h in keeper_logger.handlers
    )
    if console and not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        keeper_logger.addHandler(console_handler)

    if log_path is not None:
        keeper_logger.info(f"Logging to {log_path / LOG_FILE_NAME}")
    return log_path


@dataclass
class OperationStats:
    """Running totals for one service operation."""
    count: int = 0
    error_count: int = 0
    total_ms: float = 0.0
    min_ms: Optional[float] = None
    max_ms: float = 0.0
    rows_returned: int = 0
    misses: int = 0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None

    def add(
        self,
        duration_ms: float,
        error: Optional[str],
        result_count: Optional[int],
        found: Optional[bool],
    ) -> None:
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = duration_ms if self.min_ms is None else min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)
        if result_count is not None:
            self.rows_returned += result_count
        if found is False:
            self.misses += 1
        if error is not None:
            self.error_count += 1
            self.last_error = error
            self.last_error_time = datetime.now(timezone.utc)

    @property
    def success_count(self) -> int:
        return self.count - self.error_count

    def as_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "success_rate": self.success_count / self.count if self.count else 0,
            "avg_duration_ms": round(self.total_ms / self.count, 2) if self.count else 0,
            "min_duration_ms": round(self.min_ms or 0.0, 2),
            "max_duration_ms": round(self.max_ms, 2),
            "rows_returned": self.rows_returned,
            "misses": self.misses,
            "last_error": self.last_error,
            "last_error_time": (
                self.last_error_time.isoformat() if self.last_error_time else None
            ),
        }


class MetricsCollector:
    """Thread-safe in-memory metrics keyed by service operation name."""

    def __init__(self):
        self._stats: Dict[str, OperationStats] = defaultdict(OperationStats)
        self._lock = Lock()
        self._since = datetime.now(timezone.utc)

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
        result_count: Optional[int] = None,
        found: Optional[bool] = None,
    ) -> None:
        """Add one call of ``operation`` to its totals.

        ``result_count`` is the number of rows a listing returned and
        ``found`` is False when a single-item lookup came back empty.
        """
        if not success and error is None:
            error = "unknown error"
        with self._lock:
            self._stats[operation].add(
                duration_ms, None if success else error, result_count, found
            )

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every operation's totals."""
        with self._lock:
            return {name: stats.as_dict() for name, stats in self._stats.items()}

    def get_summary(self) -> Dict[str, Any]:
        """Totals across all operations."""
        with self._lock:
            stats = list(self._stats.values())
            total = sum(s.count for s in stats)
            errors = sum(s.error_count for s in stats)
            return {
                "uptime_seconds": (datetime.now(timezone.utc) - self._since).total_seconds(),
                "total_operations": total,
                "total_success": total - errors,
                "total_errors": errors,
                "overall_success_rate": (total - errors) / total if total else 1.0,
                "rows_returned": sum(s.rows_returned for s in stats),
                "operations_tracked": list(self._stats),
            }

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()
            self._since = datetime.now(timezone.utc)


metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Time one service call, log it at DEBUG and record it in ``metrics``.

    Yields a dict the caller fills with outcome details. ``result_count``
    and ``found`` are picked up by the collector; every key is logged.

    Example:
        with timed_operation("search", query=query) as op:
            results = repository.search(query)
            op["result_count"] = len(results)
    """
    correlation_id = uuid.uuid4().hex[:8]
    outcome: Dict[str, Any] = {"correlation_id": correlation_id}
    details = ", ".join(f"{k}={v}" for k, v in context.items())
    logger.debug(f"[{correlation_id}] START {operation} ({details})")

    error: Optional[str] = None
    started = time.perf_counter()
    try:
        yield outcome
    except Exception as e:
        error = str(e) or type(e).__name__
        raise
    finally:
        duration_ms = (time.perf_counter() - started) * 1000
        metrics.record_operation(
            operation,
            duration_ms,
            error is None,
            error,
            result_count=outcome.get("result_count"),
            found=outcome.get("found"),
        )
        status = "OK" if error is None else f"ERROR: {error}"
        reported = ", ".join(
            f"{k}={v}" for k, v in outcome.items() if k != "correlation_id"
        )
        logger.debug(
            f"[{correlation_id}] END {operation} "
            f"({duration_ms:.2f}ms) [{status}] {reported}"
        )
