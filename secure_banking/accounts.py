"""
Account Management Module

Accounts hold a single-currency balance that can never go negative. Balances
change only through deposit()/withdraw(), which the transfer engine calls
inside a storage transaction; the account itself does no locking.
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .currency import Currency, Money
from .errors import (
    AccountNotFoundError, CurrencyMismatchError, DuplicateAccountNumberError,
    InsufficientFundsError, InvalidAmountError,
)
from .events import EventPublisher, create_account_opened_event
from .logging_config import get_logger, log_action
from .storage import StorageInterface


@dataclass
class Account:
    """Ledger account owned by a single user"""
    id: str
    user_id: str
    account_number: str
    currency: Currency
    balance: Money
    created_at: datetime
    updated_at: datetime

    def __post_init__(self):
        if self.balance.currency != self.currency:
            raise ValueError("Balance currency must match account currency")
        if self.balance.is_negative():
            raise ValueError("Account balance cannot be negative")

    def _check_amount(self, amount: Money) -> None:
        if amount.currency != self.currency:
            raise CurrencyMismatchError(
                f"Account {self.account_number} holds {self.currency.code}, "
                f"got {amount.currency.code}"
            )
        if not amount.is_positive():
            raise InvalidAmountError(f"Amount must be positive, got {amount.amount}")

    def deposit(self, amount: Money) -> None:
        """Increase the balance by a positive amount"""
        self._check_amount(amount)
        try:
            self.balance = self.balance + amount
        except ValueError as e:
            raise InvalidAmountError(
                f"Deposit of {amount.amount} would exceed the largest supported "
                f"balance of account {self.account_number}"
            ) from e
        self.updated_at = datetime.now(timezone.utc)

    def withdraw(self, amount: Money) -> None:
        """Decrease the balance by a positive amount no larger than the balance"""
        self._check_amount(amount)
        if amount > self.balance:
            raise InsufficientFundsError(
                f"Insufficient funds in account {self.account_number}: "
                f"balance {self.balance.to_string()}, requested {amount.to_string()}"
            )
        self.balance = self.balance - amount
        self.updated_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "account_number": self.account_number,
            "currency": self.currency.code,
            "balance": str(self.balance.amount),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        currency = Currency.from_code(data["currency"])
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            account_number=data["account_number"],
            currency=currency,
            balance=Money(data["balance"], currency),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


class AccountManager:
    """
    Repository for accounts on top of a storage backend
    """

    def __init__(
        self,
        storage: StorageInterface,
        event_publisher: Optional[EventPublisher] = None,
        account_number_prefix: str = "SB",
    ):
        self.storage = storage
        self.event_publisher = event_publisher
        self.table_name = "accounts"
        self.account_number_prefix = account_number_prefix
        self.logger = get_logger("secure_banking.accounts")

    def open_account(
        self,
        user_id: str,
        currency: Currency,
        account_number: Optional[str] = None,
    ) -> Account:
        """
        Open a zero-balance account for a user

        Args:
            user_id: ID of the owning user
            currency: Account currency
            account_number: External account number (generated if not provided)

        Returns:
            The stored Account

        Raises:
            DuplicateAccountNumberError: If the account number is taken
        """
        with self.storage.atomic():
            if account_number is None:
                account_number = self._generate_account_number()
            elif self.get_account_by_number(account_number) is not None:
                raise DuplicateAccountNumberError(
                    f"Account number {account_number} already exists"
                )

            now = datetime.now(timezone.utc)
            account = Account(
                id=str(uuid.uuid4()),
                user_id=user_id,
                account_number=account_number,
                currency=currency,
                balance=Money.zero(currency),
                created_at=now,
                updated_at=now,
            )
            self.save_account(account)

        log_action(
            self.logger, "info", "Account opened",
            user_id=user_id, action="open_account", resource=f"account:{account.id}",
            extra={"account_number": account_number, "currency": currency.code},
        )
        if self.event_publisher:
            self.event_publisher.publish(create_account_opened_event(account))
        return account

    def save_account(self, account: Account) -> None:
        self.storage.save(self.table_name, account.id, account.to_dict())

    def get_account(self, account_id: str) -> Optional[Account]:
        data = self.storage.load(self.table_name, account_id)
        return Account.from_dict(data) if data else None

    def require_account(self, account_id: str) -> Account:
        """Like get_account() but raises AccountNotFoundError"""
        account = self.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def get_account_by_number(self, account_number: str) -> Optional[Account]:
        found = self.storage.find(self.table_name, {"account_number": account_number})
        return Account.from_dict(found[0]) if found else None

    def get_user_accounts(self, user_id: str) -> List[Account]:
        found = self.storage.find(self.table_name, {"user_id": user_id})
        accounts = [Account.from_dict(data) for data in found]
        accounts.sort(key=lambda a: a.created_at)
        return accounts

    def get_balance(self, account_id: str) -> Money:
        """Current balance; reading never mutates the account"""
        return self.require_account(account_id).balance

    def _generate_account_number(self) -> str:
        while True:
            candidate = f"{self.account_number_prefix}{secrets.randbelow(10 ** 10):010d}"
            if self.get_account_by_number(candidate) is None:
                return candidate
