"""Query timing and slow-query detection.

Every statement issued by the read layer goes through
``execute_with_monitoring`` so slow queries are logged with the name of the
function that issued them.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from folio.errors import QueryExecutionError
from folio.utils.logging import get_logger
from folio.utils.time import utc_now_z

logger = get_logger(__name__)

DEFAULT_SLOW_QUERY_MS = 1000.0
MAX_METRICS_STORE = 100

_slow_query_ms = DEFAULT_SLOW_QUERY_MS


@dataclass
class QueryMetric:
    caller: str
    query: str
    duration_ms: float
    timestamp: str


_metrics: Deque[QueryMetric] = deque(maxlen=MAX_METRICS_STORE)


def set_slow_query_threshold(threshold_ms: float) -> None:
    global _slow_query_ms
    _slow_query_ms = float(threshold_ms)


def execute_with_monitoring(
    session: Session,
    statement: Any,
    params: Optional[Mapping[str, Any]] = None,
    caller: str = "unknown",
    failure_level: int = logging.ERROR,
) -> Result:
    """
    Execute a statement on the session, recording its duration.

    Args:
        session: SQLAlchemy session
        statement: SQL string or TextClause
        params: Bound parameters
        caller: Name of the issuing function (for logs)
        failure_level: Log level for driver errors; callers that recover pass a lower one

    Returns:
        SQLAlchemy Result

    Raises:
        QueryExecutionError: If the driver raised
    """
    if isinstance(statement, str):
        statement = text(statement)
    started = time.perf_counter()
    try:
        result = session.execute(statement, dict(params or {}))
    except SQLAlchemyError as e:
        duration_ms = (time.perf_counter() - started) * 1000
        logger.log(failure_level, f"Query failed [{caller}] after {duration_ms:.2f}ms: {e}")
        raise QueryExecutionError(f"Query failed in {caller}", caller=caller) from e

    duration_ms = (time.perf_counter() - started) * 1000
    query_text = str(statement)
    _metrics.append(
        QueryMetric(
            caller=caller,
            query=query_text[:500],
            duration_ms=duration_ms,
            timestamp=utc_now_z(),
        )
    )
    if duration_ms > _slow_query_ms:
        logger.warning(
            f"Slow query [{caller}]: {duration_ms:.2f}ms query={query_text[:200]!r}"
        )
        logger.debug(f"Slow query [{caller}] params={dict(params or {})!r}")
    else:
        logger.debug(f"Query [{caller}]: {duration_ms:.2f}ms")
    return result


def get_query_stats() -> Dict[str, Any]:
    """Summary of the recorded queries (last MAX_METRICS_STORE only)."""
    if not _metrics:
        return {
            "total_queries": 0,
            "avg_duration_ms": 0.0,
            "slow_queries": 0,
            "fastest_ms": 0.0,
            "slowest_ms": 0.0,
            "recent": [],
        }
    durations = [m.duration_ms for m in _metrics]
    return {
        "total_queries": len(durations),
        "avg_duration_ms": sum(durations) / len(durations),
        "slow_queries": sum(1 for d in durations if d > _slow_query_ms),
        "fastest_ms": min(durations),
        "slowest_ms": max(durations),
        "recent": [
            {"caller": m.caller, "duration_ms": m.duration_ms, "timestamp": m.timestamp}
            for m in list(_metrics)[-10:]
        ],
    }


def get_slow_queries(limit: int = 10) -> List[QueryMetric]:
    slow = [m for m in _metrics if m.duration_ms > _slow_query_ms]
    slow.sort(key=lambda m: m.duration_ms, reverse=True)
    return slow[:limit]


def clear_query_metrics() -> None:
    _metrics.clear()
