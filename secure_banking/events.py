"""
Event System Module

Publish/subscribe dispatch of domain events. Events are published only after
the storage transaction that produced them has committed.
"""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import RLock
from typing import Any, Callable, Dict, List, Optional

from .logging_config import get_logger, log_action


class DomainEvent(Enum):
    """Domain events emitted by the banking service"""
    ACCOUNT_OPENED = "account.opened"
    FUNDS_DEPOSITED = "funds.deposited"
    FUNDS_WITHDRAWN = "funds.withdrawn"
    FUNDS_TRANSFERRED = "funds.transferred"


@dataclass
class EventPayload:
    """Payload for domain events"""
    event_type: DomainEvent
    entity_type: str
    entity_id: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "event_type": self.event_type.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
            "event_id": self.event_id,
        }


EventHandler = Callable[[EventPayload], None]


class EventPublisher(ABC):
    """Capability handed to components that emit events"""

    @abstractmethod
    def publish(self, event: EventPayload) -> None:
        """Deliver an event to interested subscribers"""


class EventDispatcher(EventPublisher):
    """In-process publish/subscribe dispatcher"""

    def __init__(self):
        self._handlers: Dict[DomainEvent, List[EventHandler]] = {}
        self._global_handlers: List[EventHandler] = []
        self._lock = RLock()
        self.logger = get_logger("secure_banking.events")

    def subscribe(self, event_type: DomainEvent, handler: EventHandler) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, event_type: DomainEvent, handler: EventHandler) -> None:
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
            except ValueError:
                self.logger.warning(
                    f"Handler {_handler_name(handler)} was not subscribed to {event_type.value}"
                )

    def unsubscribe_all(self, handler: EventHandler) -> None:
        with self._lock:
            try:
                self._global_handlers.remove(handler)
            except ValueError:
                self.logger.warning(f"Global handler {_handler_name(handler)} was not subscribed")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers; a failing handler does not stop the others"""
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

        log_action(
            self.logger, "debug", f"Publishing {event.event_type.value}",
            action="publish", resource=f"{event.entity_type}:{event.entity_id}",
            extra=event.to_dict(),
        )
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                self.logger.exception(
                    f"Error in event handler {_handler_name(handler)} for {event.event_type.value}"
                )

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()

    def get_handler_count(self, event_type: Optional[DomainEvent] = None) -> int:
        """Count handlers for one event type, or all handlers"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


def create_funds_transferred_event(
    transfer_id: str, source, target, amount
) -> EventPayload:
    """Event for a committed transfer between two accounts"""
    return EventPayload(
        event_type=DomainEvent.FUNDS_TRANSFERRED,
        entity_type="transfer",
        entity_id=transfer_id,
        data={
            "source_account_id": source.id,
            "target_account_id": target.id,
            "source_user_id": source.user_id,
            "target_user_id": target.user_id,
            "amount": str(amount.amount),
            "currency": amount.currency.code,
        },
    )


def create_balance_event(
    event_type: DomainEvent, transaction_id: str, account, amount
) -> EventPayload:
    """Event for a committed deposit or withdrawal"""
    return EventPayload(
        event_type=event_type,
        entity_type="account",
        entity_id=account.id,
        data={
            "transaction_id": transaction_id,
            "account_id": account.id,
            "user_id": account.user_id,
            "amount": str(amount.amount),
            "currency": amount.currency.code,
            "balance": str(account.balance.amount),
        },
    )


def create_account_opened_event(account) -> EventPayload:
    return EventPayload(
        event_type=DomainEvent.ACCOUNT_OPENED,
        entity_type="account",
        entity_id=account.id,
        data={
            "account_number": account.account_number,
            "user_id": account.user_id,
            "currency": account.currency.code,
        },
    )
