"""
Pydantic schemas for API requests and responses
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..accounts import Account
from ..notifications import Notification
from ..transfers import TransferResult


class OpenAccountRequest(BaseModel):
    user_id: str
    currency: Optional[str] = Field(None, description="Currency code, defaults to the service currency")
    account_number: Optional[str] = None


class TokenRequest(BaseModel):
    user_id: str
    issuer_key: str = Field(..., description="Shared key configured as SECUREBANK_TOKEN_ISSUER_KEY")


class DepositRequest(BaseModel):
    account_id: str
    amount: str = Field(..., description="Decimal amount as string")


class WithdrawRequest(BaseModel):
    account_id: str
    amount: str = Field(..., description="Decimal amount as string")


class TransferRequest(BaseModel):
    source_account_id: str
    target_account_id: str
    amount: str = Field(..., description="Decimal amount as string")


def account_to_dict(account: Account) -> Dict[str, Any]:
    return {
        "account_id": account.id,
        "user_id": account.user_id,
        "account_number": account.account_number,
        "currency": account.currency.code,
        "balance": str(account.balance.amount),
        "created_at": account.created_at.isoformat(),
    }


def result_to_dict(result: TransferResult) -> Dict[str, Any]:
    return {
        "success": result.success,
        "message": result.message,
        "error": result.error.value if result.error else None,
        "transfer_id": result.transfer_id,
        "balances": {
            account_id: str(balance.amount)
            for account_id, balance in result.balances.items()
        },
    }


def notification_to_dict(notification: Notification) -> Dict[str, Any]:
    return {
        "notification_id": notification.id,
        "account_id": notification.account_id,
        "event_type": notification.event_type.value,
        "message": notification.message,
        "read": notification.is_read,
        "created_at": notification.created_at.isoformat(),
    }
