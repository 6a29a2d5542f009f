"""
Tests for the notification subscriber
"""

from decimal import Decimal

from secure_banking.accounts import AccountManager
from secure_banking.currency import Currency
from secure_banking.events import DomainEvent, EventDispatcher
from secure_banking.notifications import NotificationService
from secure_banking.storage import InMemoryStorage
from secure_banking.transfers import TransferEngine


class TestNotificationService:

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.dispatcher = EventDispatcher()
        self.accounts = AccountManager(self.storage, self.dispatcher)
        self.engine = TransferEngine(self.storage, self.accounts, self.dispatcher)
        self.service = NotificationService(self.storage, self.dispatcher)

        self.alice = self.accounts.open_account("alice", Currency.USD)
        self.bob = self.accounts.open_account("bob", Currency.USD)

    def test_subscribes_to_funds_events(self):
        for event_type in (
            DomainEvent.FUNDS_TRANSFERRED,
            DomainEvent.FUNDS_DEPOSITED,
            DomainEvent.FUNDS_WITHDRAWN,
        ):
            assert self.dispatcher.get_handler_count(event_type) == 1

    def test_account_opening_is_silent(self):
        assert self.service.get_notifications("alice") == []

    def test_deposit_notifies_owner(self):
        self.engine.deposit(self.alice.id, "40.00")

        notifications = self.service.get_notifications("alice")
        assert len(notifications) == 1
        assert notifications[0].event_type == DomainEvent.FUNDS_DEPOSITED
        assert notifications[0].account_id == self.alice.id
        assert "USD 40.00 deposited" in notifications[0].message

    def test_transfer_notifies_both_owners(self):
        self.engine.deposit(self.alice.id, "100")
        result = self.engine.transfer(self.alice.id, self.bob.id, Decimal('30'))
        assert result.success

        sent = [
            n for n in self.service.get_notifications("alice")
            if n.event_type == DomainEvent.FUNDS_TRANSFERRED
        ]
        received = self.service.get_notifications("bob")
        assert len(sent) == 1
        assert "sent" in sent[0].message
        assert len(received) == 1
        assert "received" in received[0].message

    def test_failed_transfer_creates_nothing(self):
        self.engine.transfer(self.alice.id, self.bob.id, Decimal('30'))
        assert self.service.get_notifications("alice") == []
        assert self.service.get_notifications("bob") == []

    def test_mark_as_read(self):
        self.engine.deposit(self.alice.id, "10")
        self.engine.withdraw(self.alice.id, "5")
        assert self.service.get_unread_count("alice") == 2

        first = self.service.get_notifications("alice")[0]
        assert self.service.mark_as_read(first.id)
        assert self.service.mark_as_read(first.id)

        assert self.service.get_unread_count("alice") == 1
        unread = self.service.get_notifications("alice", unread_only=True)
        assert [n.id for n in unread] != [first.id]
        assert not self.service.mark_as_read("missing")
