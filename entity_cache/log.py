"""
Operation log for cache-assisted reads.

When logging is active every read records whether it was served from cache
or from the database, how long it took, the query that ran (with bindings
substituted for display) and which entities came back.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence

from .context import CacheContext
from .entity import EntityLike, attribute_snapshot, describe
from .keys import stringify
from .shared.logging import get_logger
from .shared.metrics import MetricsCollector
from .timer import Timer

PLACEHOLDER = "?"
UNKNOWN_VALUE = "?"


@dataclass(frozen=True)
class QueryDescriptor:
    """Parameterized query template and its ordered bound values."""
    template: str
    bindings: Sequence[Any] = ()


@dataclass
class LogEntry:
    """One cache hit or miss."""
    cache_hit: bool
    time: Optional[float]
    builder_sql: Optional[str] = None
    bindings: List[Any] = field(default_factory=list)
    sql: Optional[str] = None
    entity: Optional[str] = None
    models: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LogSummary:
    operations: int
    hits: int
    misses: int
    hit_ratio: float
    total_time: float
    query_time: float


def addslashes(value: str) -> str:
    """Backslash-escape quotes, backslashes and NUL."""
    return (
        value.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace('"', '\\"')
        .replace("\0", "\\0")
    )


def render_query(template: str, bindings: Sequence[Any]) -> str:
    """
    Substitute bindings into the query placeholders, for display only.

    Each binding replaces the next "?" as a quoted, escaped literal. Bindings
    without a matching placeholder are dropped. The result must never be
    executed.
    """
    parts: List[str] = []
    position = 0
    for binding in bindings:
        placeholder = template.find(PLACEHOLDER, position)
        if placeholder == -1:
            break
        parts.append(template[position:placeholder])
        parts.append("'" + addslashes(stringify(binding)) + "'")
        position = placeholder + 1

    parts.append(template[position:])
    return "".join(parts)


class OperationLog:
    """Thread-safe accumulator of LogEntry records."""

    def __init__(self, context: CacheContext, metrics: Optional[MetricsCollector] = None):
        self.context = context
        self.metrics = metrics
        self.logger = get_logger("entity_cache.log")
        self._entries: List[LogEntry] = []
        self._lock = threading.Lock()

    def log_hit(
        self,
        query: Optional[QueryDescriptor],
        timer: Timer,
        entities: Iterable[Any],
        entity: Optional[EntityLike] = None
    ) -> Optional[LogEntry]:
        """Record a read answered from cache."""
        return self._log(True, query, timer, entities, entity)

    def log_miss(
        self,
        query: Optional[QueryDescriptor],
        timer: Timer,
        entities: Iterable[Any],
        entity: Optional[EntityLike] = None
    ) -> Optional[LogEntry]:
        """Record a read that went to the database."""
        return self._log(False, query, timer, entities, entity)

    def _log(
        self,
        cache_hit: bool,
        query: Optional[QueryDescriptor],
        timer: Timer,
        entities: Iterable[Any],
        entity: Optional[EntityLike]
    ) -> Optional[LogEntry]:
        if not self.context.is_logging_active():
            return None

        log_entry = LogEntry(cache_hit=cache_hit, time=timer.elapsed())

        if query is not None:
            log_entry.builder_sql = query.template
            log_entry.bindings = list(query.bindings)
            log_entry.sql = render_query(query.template, query.bindings)

        descriptor = describe(entity) if entity is not None else None
        primary_key = descriptor.primary_key if descriptor else "id"
        log_entry.entity = descriptor.short_name if descriptor else None

        for model in entities:
            attributes = attribute_snapshot(model)
            value = stringify(attributes[primary_key]) if primary_key in attributes else UNKNOWN_VALUE
            name = log_entry.entity or type(model).__name__
            log_entry.models.append(f"{name} [{primary_key}={value}]")

        with self._lock:
            self._entries.append(log_entry)

        if self.metrics is not None:
            self.metrics.record_operation(log_entry.entity or "unknown", cache_hit, log_entry.time)

        self.logger.debug(
            "Cache hit" if cache_hit else "Cache miss",
            entity=log_entry.entity,
            elapsed=log_entry.time,
            sql=log_entry.sql,
            models=log_entry.models
        )
        return log_entry

    @property
    def entries(self) -> List[LogEntry]:
        """Snapshot of the accumulated entries."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def total_execution_time(self, queries_only: bool = False) -> float:
        """Sum of entry times; with queries_only, only the database round-trips."""
        return sum(
            entry.time or 0.0
            for entry in self.entries
            if not queries_only or not entry.cache_hit
        )

    def total_query_execution_time(self) -> float:
        return self.total_execution_time(queries_only=True)

    def summary(self) -> LogSummary:
        entries = self.entries
        hits = sum(1 for entry in entries if entry.cache_hit)
        operations = len(entries)
        return LogSummary(
            operations=operations,
            hits=hits,
            misses=operations - hits,
            hit_ratio=(hits / operations) if operations else 0.0,
            total_time=sum(entry.time or 0.0 for entry in entries),
            query_time=sum(entry.time or 0.0 for entry in entries if not entry.cache_hit),
        )
