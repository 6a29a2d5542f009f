"""
Transfer Engine

Executes balance-changing operations as single units of work. A transfer
withdraws from the source and deposits to the target inside one storage
transaction: either both sides are persisted or neither is.

Business-rule violations come back as failure results. Storage failures are
raised to the caller after the transaction has been rolled back.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional, Union

from .accounts import Account, AccountManager
from .currency import Currency, Money, to_decimal
from .errors import BankingError, ErrorKind, InvalidAmountError, SameAccountError
from .events import (
    DomainEvent, EventPublisher, create_balance_event, create_funds_transferred_event,
)
from .logging_config import get_logger, log_action
from .storage import StorageInterface

AmountLike = Union[Decimal, str, int]


@dataclass(frozen=True)
class TransferRequest:
    source_account_id: str
    target_account_id: str
    amount: AmountLike


@dataclass(frozen=True)
class TransferResult:
    """Outcome of a deposit, withdrawal or transfer"""
    success: bool
    message: str
    error: Optional[ErrorKind] = None
    transfer_id: Optional[str] = None
    balances: Dict[str, Money] = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, transfer_id: str, *accounts: Account) -> "TransferResult":
        return cls(
            success=True,
            message=message,
            transfer_id=transfer_id,
            balances={account.id: account.balance for account in accounts},
        )

    @classmethod
    def failed(cls, error: BankingError) -> "TransferResult":
        return cls(success=False, message=error.message, error=error.kind)


class TransferEngine:
    """
    Applies deposits, withdrawals and transfers to accounts under a scoped
    storage transaction and publishes one event per committed operation.
    """

    def __init__(
        self,
        storage: StorageInterface,
        account_manager: AccountManager,
        event_publisher: EventPublisher,
    ):
        self.storage = storage
        self.account_manager = account_manager
        self.event_publisher = event_publisher
        self.logger = get_logger("secure_banking.transfers")

    def transfer(
        self,
        source_account_id: str,
        target_account_id: str,
        amount: AmountLike,
    ) -> TransferResult:
        """
        Move funds from one account to another

        Args:
            source_account_id: Account to debit
            target_account_id: Account to credit
            amount: Positive amount in the accounts' currency

        Returns:
            TransferResult; on failure no balance has changed and no event
            has been published

        Raises:
            StorageError: If the store fails; the transaction is rolled back
        """
        request = TransferRequest(source_account_id, target_account_id, amount)
        transfer_id = str(uuid.uuid4())
        try:
            value = self._validate(request)
            with self.storage.atomic():
                source = self.account_manager.require_account(source_account_id)
                target = self.account_manager.require_account(target_account_id)
                money = self._to_money(value, source.currency)
                source.withdraw(money)
                target.deposit(money)
                self.account_manager.save_account(source)
                self.account_manager.save_account(target)
        except BankingError as e:
            return self._rejected(request, e)

        log_action(
            self.logger, "info", "Transfer completed",
            action="transfer", resource=f"transfer:{transfer_id}",
            extra={
                "source_account_id": source.id,
                "target_account_id": target.id,
                "amount": money.to_string(),
            },
        )
        self.event_publisher.publish(
            create_funds_transferred_event(transfer_id, source, target, money)
        )
        return TransferResult.ok(
            f"Transferred {money.to_string()} from {source.account_number} "
            f"to {target.account_number}",
            transfer_id, source, target,
        )

    def deposit(self, account_id: str, amount: AmountLike) -> TransferResult:
        """Credit an account with funds from outside the service"""
        return self._apply(account_id, amount, DomainEvent.FUNDS_DEPOSITED)

    def withdraw(self, account_id: str, amount: AmountLike) -> TransferResult:
        """Debit an account with funds leaving the service"""
        return self._apply(account_id, amount, DomainEvent.FUNDS_WITHDRAWN)

    def _apply(self, account_id: str, amount: AmountLike, event_type: DomainEvent) -> TransferResult:
        action = "deposit" if event_type == DomainEvent.FUNDS_DEPOSITED else "withdraw"
        transaction_id = str(uuid.uuid4())
        try:
            value = self._parse_amount(amount)
            with self.storage.atomic():
                account = self.account_manager.require_account(account_id)
                money = self._to_money(value, account.currency)
                if action == "deposit":
                    account.deposit(money)
                else:
                    account.withdraw(money)
                self.account_manager.save_account(account)
        except BankingError as e:
            log_action(
                self.logger, "warning", f"{action.capitalize()} rejected: {e.message}",
                action=action, resource=f"account:{account_id}",
                extra={"amount": str(amount), "error": e.kind.value},
            )
            return TransferResult.failed(e)

        log_action(
            self.logger, "info", f"{action.capitalize()} completed",
            action=action, resource=f"account:{account.id}",
            extra={"transaction_id": transaction_id, "amount": money.to_string()},
        )
        self.event_publisher.publish(
            create_balance_event(event_type, transaction_id, account, money)
        )
        past = "Deposited" if action == "deposit" else "Withdrew"
        return TransferResult.ok(
            f"{past} {money.to_string()} on {account.account_number}",
            transaction_id, account,
        )

    def _validate(self, request: TransferRequest) -> Decimal:
        """Checks that need no account data; run before the transaction opens"""
        value = self._parse_amount(request.amount)
        if request.source_account_id == request.target_account_id:
            raise SameAccountError("Source and target accounts must differ")
        return value

    @staticmethod
    def _parse_amount(amount: AmountLike) -> Decimal:
        try:
            value = to_decimal(amount)
        except ValueError as e:
            raise InvalidAmountError(str(e)) from e
        if value <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {value}")
        return value

    @staticmethod
    def _to_money(value: Decimal, currency: Currency) -> Money:
        try:
            return Money(value, currency)
        except ValueError as e:
            raise InvalidAmountError(str(e)) from e

    def _rejected(self, request: TransferRequest, error: BankingError) -> TransferResult:
        log_action(
            self.logger, "warning", f"Transfer rejected: {error.message}",
            action="transfer",
            extra={
                "source_account_id": request.source_account_id,
                "target_account_id": request.target_account_id,
                "amount": str(request.amount),
                "error": error.kind.value,
            },
        )
        return TransferResult.failed(error)
