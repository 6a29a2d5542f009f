"""
Tests for the Event System (publish/subscribe)
"""

import logging
from datetime import datetime
from decimal import Decimal
from unittest.mock import Mock

from secure_banking.accounts import AccountManager
from secure_banking.currency import Currency, Money
from secure_banking.events import (
    DomainEvent, EventDispatcher, EventPayload, EventPublisher,
    create_balance_event, create_funds_transferred_event,
)
from secure_banking.storage import InMemoryStorage


def make_event(event_type=DomainEvent.FUNDS_TRANSFERRED) -> EventPayload:
    return EventPayload(
        event_type=event_type,
        entity_type="transfer",
        entity_id="t-1",
        data={"amount": "300.00"},
    )


class TestEventPayload:

    def test_defaults(self):
        event = make_event()
        assert isinstance(event.timestamp, datetime)
        assert event.timestamp.tzinfo is not None
        assert len(event.event_id) > 0

    def test_to_dict(self):
        event = make_event()
        data = event.to_dict()
        assert data["event_type"] == "funds.transferred"
        assert data["event_id"] == event.event_id
        assert data["timestamp"] == event.timestamp.isoformat()


class TestEventDispatcher:

    def test_dispatcher_is_a_publisher(self):
        assert isinstance(EventDispatcher(), EventPublisher)

    def test_subscribe_and_publish(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        other = Mock()
        dispatcher.subscribe(DomainEvent.FUNDS_TRANSFERRED, handler)
        dispatcher.subscribe(DomainEvent.FUNDS_DEPOSITED, other)

        event = make_event()
        dispatcher.publish(event)

        handler.assert_called_once_with(event)
        other.assert_not_called()

    def test_global_handlers_receive_everything(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe_all(handler)

        dispatcher.publish(make_event(DomainEvent.FUNDS_DEPOSITED))
        dispatcher.publish(make_event(DomainEvent.FUNDS_WITHDRAWN))

        assert handler.call_count == 2

    def test_failing_handler_does_not_stop_others(self):
        dispatcher = EventDispatcher()
        failing = Mock(side_effect=RuntimeError("handler down"))
        healthy = Mock()
        dispatcher.subscribe(DomainEvent.FUNDS_TRANSFERRED, failing)
        dispatcher.subscribe(DomainEvent.FUNDS_TRANSFERRED, healthy)

        dispatcher.publish(make_event())

        failing.assert_called_once()
        healthy.assert_called_once()

    def test_publish_logs_serialized_event(self):
        dispatcher = EventDispatcher()
        records = []
        handler = logging.Handler()
        handler.emit = records.append
        dispatcher.logger.addHandler(handler)
        previous_level = dispatcher.logger.level
        dispatcher.logger.setLevel(logging.DEBUG)
        try:
            event = make_event()
            dispatcher.publish(event)
        finally:
            dispatcher.logger.removeHandler(handler)
            dispatcher.logger.setLevel(previous_level)

        assert len(records) == 1
        assert records[0].action == "publish"
        assert records[0].resource == "transfer:t-1"
        assert records[0].extra == event.to_dict()

    def test_unsubscribe(self):
        dispatcher = EventDispatcher()
        handler = Mock()
        dispatcher.subscribe(DomainEvent.FUNDS_TRANSFERRED, handler)
        dispatcher.subscribe_all(handler)
        assert dispatcher.get_handler_count() == 2

        dispatcher.unsubscribe(DomainEvent.FUNDS_TRANSFERRED, handler)
        dispatcher.unsubscribe_all(handler)
        # Unknown handlers are ignored
        dispatcher.unsubscribe(DomainEvent.FUNDS_TRANSFERRED, handler)
        dispatcher.unsubscribe_all(handler)

        dispatcher.publish(make_event())
        handler.assert_not_called()
        assert dispatcher.get_handler_count(DomainEvent.FUNDS_TRANSFERRED) == 0

    def test_clear(self):
        dispatcher = EventDispatcher()
        dispatcher.subscribe(DomainEvent.FUNDS_TRANSFERRED, Mock())
        dispatcher.subscribe_all(Mock())
        dispatcher.clear()
        assert dispatcher.get_handler_count() == 0


class TestEventFactories:

    def setup_method(self):
        manager = AccountManager(InMemoryStorage())
        self.source = manager.open_account("alice", Currency.USD)
        self.target = manager.open_account("bob", Currency.USD)

    def test_funds_transferred_event(self):
        amount = Money(Decimal('300'), Currency.USD)
        event = create_funds_transferred_event("t-1", self.source, self.target, amount)

        assert event.event_type == DomainEvent.FUNDS_TRANSFERRED
        assert event.entity_id == "t-1"
        assert event.data == {
            "source_account_id": self.source.id,
            "target_account_id": self.target.id,
            "source_user_id": "alice",
            "target_user_id": "bob",
            "amount": "300.00",
            "currency": "USD",
        }

    def test_balance_event(self):
        amount = Money(Decimal('20'), Currency.USD)
        self.source.deposit(amount)
        event = create_balance_event(DomainEvent.FUNDS_DEPOSITED, "tx-9", self.source, amount)

        assert event.entity_id == self.source.id
        assert event.data["transaction_id"] == "tx-9"
        assert event.data["balance"] == "20.00"
