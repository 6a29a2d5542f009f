"""
Notification Module

In-app notifications for account owners. NotificationService subscribes to
the funds events and stores one notification per affected owner; it runs
after the originating transaction has committed.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .events import DomainEvent, EventDispatcher, EventPayload
from .logging_config import get_logger
from .storage import StorageInterface


@dataclass
class Notification:
    """Message shown to a user about one of their accounts"""
    id: str
    recipient_id: str
    account_id: str
    event_type: DomainEvent
    message: str
    created_at: datetime
    read_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "account_id": self.account_id,
            "event_type": self.event_type.value,
            "message": self.message,
            "created_at": self.created_at.isoformat(),
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "read": self.is_read,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        return cls(
            id=data["id"],
            recipient_id=data["recipient_id"],
            account_id=data["account_id"],
            event_type=DomainEvent(data["event_type"]),
            message=data["message"],
            created_at=datetime.fromisoformat(data["created_at"]),
            read_at=datetime.fromisoformat(data["read_at"]) if data.get("read_at") else None,
            metadata=data.get("metadata") or {},
        )


class NotificationService:
    """Turns funds events into stored notifications"""

    def __init__(self, storage: StorageInterface, dispatcher: EventDispatcher):
        self.storage = storage
        self.table_name = "notifications"
        self.logger = get_logger("secure_banking.notifications")

        dispatcher.subscribe(DomainEvent.FUNDS_TRANSFERRED, self.on_funds_transferred)
        dispatcher.subscribe(DomainEvent.FUNDS_DEPOSITED, self.on_balance_changed)
        dispatcher.subscribe(DomainEvent.FUNDS_WITHDRAWN, self.on_balance_changed)

    def on_funds_transferred(self, event: EventPayload) -> None:
        data = event.data
        amount = f"{data['currency']} {data['amount']}"
        self._notify(
            data["source_user_id"], data["source_account_id"], event,
            f"{amount} sent to account {data['target_account_id']}",
        )
        self._notify(
            data["target_user_id"], data["target_account_id"], event,
            f"{amount} received from account {data['source_account_id']}",
        )

    def on_balance_changed(self, event: EventPayload) -> None:
        data = event.data
        verb = "deposited to" if event.event_type == DomainEvent.FUNDS_DEPOSITED else "withdrawn from"
        self._notify(
            data["user_id"], data["account_id"], event,
            f"{data['currency']} {data['amount']} {verb} your account; "
            f"balance is now {data['currency']} {data['balance']}",
        )

    def _notify(self, recipient_id: str, account_id: str, event: EventPayload, message: str) -> None:
        notification = Notification(
            id=str(uuid.uuid4()),
            recipient_id=recipient_id,
            account_id=account_id,
            event_type=event.event_type,
            message=message,
            created_at=datetime.now(timezone.utc),
            metadata={"event_id": event.event_id},
        )
        self.storage.save(self.table_name, notification.id, notification.to_dict())
        self.logger.debug(f"Stored notification {notification.id} for user {recipient_id}")

    def get_notifications(self, recipient_id: str, unread_only: bool = False) -> List[Notification]:
        """Notifications for a user, newest first"""
        filters: Dict[str, Any] = {"recipient_id": recipient_id}
        if unread_only:
            filters["read"] = False
        notifications = [
            Notification.from_dict(data)
            for data in self.storage.find(self.table_name, filters)
        ]
        notifications.sort(key=lambda n: n.created_at, reverse=True)
        return notifications

    def mark_as_read(self, notification_id: str) -> bool:
        data = self.storage.load(self.table_name, notification_id)
        if not data:
            return False
        notification = Notification.from_dict(data)
        if not notification.is_read:
            notification.read_at = datetime.now(timezone.utc)
            self.storage.save(self.table_name, notification.id, notification.to_dict())
        return True

    def get_unread_count(self, recipient_id: str) -> int:
        return len(self.get_notifications(recipient_id, unread_only=True))
