"""
Domain event emission.

Workflow services emit an event after each successful transition. Delivery to
subscribers (realtime fan-out, webhooks, ...) lives outside the core; a failing
subscriber is logged and never changes the outcome of the operation.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from app.utils import get_logger, utcnow

log = get_logger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    name: str  # e.g. "affiliation.approved"
    entity_id: str
    company_id: str | None = None
    occurred_at: datetime = field(default_factory=utcnow)


EventHandler = Callable[[DomainEvent], None]


class EventBus:
    """In-process observer registry."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, name: str, entity_id: str, company_id: str | None = None) -> DomainEvent:
        event = DomainEvent(name=name, entity_id=entity_id, company_id=company_id)
        log.debug("Emitting %s for %s", name, entity_id)
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                log.exception("Event handler failed for %s", name)
        return event


events = EventBus()
