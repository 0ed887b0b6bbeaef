"""Catalog event bus - explicit change notification for observers."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable

from .types import EventKind


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CatalogEvent:
    """A single state change of one node."""
    kind: EventKind
    node_id: str
    changes: dict[str, Any] = field(default_factory=dict)


EventConsumer = Callable[[CatalogEvent], None]


class CatalogEventBus:
    """
    Delivers every catalog change to every consumer exactly once, in the
    order the changes happened.

    Events emitted while a consumer is running (for example a consumer that
    mutates the tree in response) are queued and delivered after the current
    event has reached all consumers, never recursively.
    """

    def __init__(self) -> None:
        self._consumers: list[EventConsumer] = []
        self._queue: deque[CatalogEvent] = deque()
        self._dispatching = False

    def add_consumer(self, consumer: EventConsumer) -> None:
        self._consumers.append(consumer)

    def remove_consumer(self, consumer: EventConsumer) -> None:
        if consumer in self._consumers:
            self._consumers.remove(consumer)

    def emit(self, event: CatalogEvent) -> None:
        self._queue.append(event)
        if self._dispatching:
            return

        self._dispatching = True
        try:
            while self._queue:
                current = self._queue.popleft()
                for consumer in list(self._consumers):
                    try:
                        consumer(current)
                    except Exception as e:
                        logger.warning(f"Catalog event consumer failed on {current.kind.value}: {e}")
        finally:
            self._dispatching = False
