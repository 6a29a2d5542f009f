"""
Test suite for accounts module

Account deposit/withdraw rules and the AccountManager repository.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone
from unittest.mock import Mock

from secure_banking.currency import Money, Currency
from secure_banking.storage import InMemoryStorage
from secure_banking.events import DomainEvent
from secure_banking.accounts import Account, AccountManager
from secure_banking.errors import (
    AccountNotFoundError, CurrencyMismatchError, DuplicateAccountNumberError,
    ErrorKind, InsufficientFundsError, InvalidAmountError,
)


def make_account(balance: str = "1000.00", currency: Currency = Currency.USD) -> Account:
    now = datetime.now(timezone.utc)
    return Account(
        id="ACC001",
        user_id="user-1",
        account_number="SB0000000001",
        currency=currency,
        balance=Money(Decimal(balance), currency),
        created_at=now,
        updated_at=now,
    )


class TestAccount:
    """Test Account balance rules"""

    def test_deposit_increases_balance(self):
        account = make_account("1000.00")
        account.deposit(Money(Decimal('250.50'), Currency.USD))
        assert account.balance == Money(Decimal('1250.50'), Currency.USD)

    def test_withdraw_decreases_balance(self):
        account = make_account("1000.00")
        account.withdraw(Money(Decimal('300'), Currency.USD))
        assert account.balance.amount == Decimal('700.00')

    def test_withdraw_entire_balance(self):
        account = make_account("100.00")
        account.withdraw(Money(Decimal('100'), Currency.USD))
        assert account.balance.is_zero()

    @pytest.mark.parametrize("amount", ["0", "-5", "0.001"])
    def test_non_positive_amounts_rejected(self, amount):
        account = make_account("1000.00")
        with pytest.raises(InvalidAmountError) as exc:
            account.deposit(Money(Decimal(amount), Currency.USD))
        assert exc.value.kind == ErrorKind.INVALID_AMOUNT
        with pytest.raises(InvalidAmountError):
            account.withdraw(Money(Decimal(amount), Currency.USD))
        assert account.balance.amount == Decimal('1000.00')

    def test_overdraw_rejected(self):
        account = make_account("100.00")
        with pytest.raises(InsufficientFundsError) as exc:
            account.withdraw(Money(Decimal('300'), Currency.USD))
        assert exc.value.kind == ErrorKind.INSUFFICIENT_FUNDS
        assert account.balance.amount == Decimal('100.00')

    def test_deposit_past_largest_balance_rejected(self):
        account = make_account("9" * 26)
        with pytest.raises(InvalidAmountError) as exc:
            account.deposit(Money(Decimal("9" * 26), Currency.USD))
        assert exc.value.kind == ErrorKind.INVALID_AMOUNT
        assert account.balance.amount == Decimal("9" * 26)

    def test_currency_mismatch_rejected(self):
        account = make_account("100.00")
        with pytest.raises(CurrencyMismatchError):
            account.deposit(Money(Decimal('10'), Currency.EUR))

    def test_negative_opening_balance_rejected(self):
        with pytest.raises(ValueError):
            make_account("-1.00")

    def test_dict_round_trip_keeps_decimal_balance(self):
        account = make_account("42.10")
        restored = Account.from_dict(account.to_dict())
        assert restored.balance == Money(Decimal('42.10'), Currency.USD)
        assert restored.account_number == account.account_number


class TestAccountManager:
    """Test account repository operations"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.publisher = Mock()
        self.manager = AccountManager(self.storage, self.publisher)

    def test_open_account(self):
        account = self.manager.open_account("user-1", Currency.USD)

        assert account.user_id == "user-1"
        assert account.balance.is_zero()
        assert account.account_number.startswith("SB")
        assert len(account.account_number) == 12
        assert self.manager.get_account(account.id) is not None

        event = self.publisher.publish.call_args[0][0]
        assert event.event_type == DomainEvent.ACCOUNT_OPENED
        assert event.entity_id == account.id

    def test_generated_account_numbers_unique(self):
        numbers = {self.manager.open_account("user-1", Currency.USD).account_number for _ in range(20)}
        assert len(numbers) == 20

    def test_explicit_account_number(self):
        account = self.manager.open_account("user-1", Currency.EUR, account_number="SB-CUSTOM-1")
        found = self.manager.get_account_by_number("SB-CUSTOM-1")
        assert found.id == account.id
        assert found.currency == Currency.EUR

    def test_duplicate_account_number_rejected(self):
        self.manager.open_account("user-1", Currency.USD, account_number="SB1")
        with pytest.raises(DuplicateAccountNumberError):
            self.manager.open_account("user-2", Currency.USD, account_number="SB1")
        assert self.storage.count("accounts") == 1

    def test_get_user_accounts(self):
        first = self.manager.open_account("user-1", Currency.USD)
        second = self.manager.open_account("user-1", Currency.EUR)
        self.manager.open_account("user-2", Currency.USD)

        accounts = self.manager.get_user_accounts("user-1")
        assert [a.id for a in accounts] == [first.id, second.id]
        assert self.manager.get_user_accounts("nobody") == []

    def test_get_balance_is_idempotent(self):
        account = self.manager.open_account("user-1", Currency.USD)
        account.deposit(Money(Decimal('75.25'), Currency.USD))
        self.manager.save_account(account)

        first = self.manager.get_balance(account.id)
        second = self.manager.get_balance(account.id)
        assert first == second == Money(Decimal('75.25'), Currency.USD)

    def test_missing_account(self):
        assert self.manager.get_account("missing") is None
        with pytest.raises(AccountNotFoundError) as exc:
            self.manager.get_balance("missing")
        assert exc.value.account_id == "missing"

    def test_custom_account_number_prefix(self):
        manager = AccountManager(self.storage, account_number_prefix="XY")
        assert manager.open_account("user-1", Currency.USD).account_number.startswith("XY")
