"""
Account endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..currency import Currency
from ..errors import DuplicateAccountNumberError
from .auth import (
    BankingSystem, ensure_owner, ensure_user, get_banking_system, get_current_user,
)
from .schemas import OpenAccountRequest, account_to_dict


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_account(
    request: OpenAccountRequest,
    system: BankingSystem = Depends(get_banking_system),
    current_user: Optional[str] = Depends(get_current_user),
):
    """Open an account for a user"""
    ensure_user(current_user, request.user_id)
    try:
        currency = Currency.from_code(request.currency or system.settings.default_currency)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        account = system.account_manager.open_account(
            user_id=request.user_id,
            currency=currency,
            account_number=request.account_number,
        )
    except DuplicateAccountNumberError as e:
        raise HTTPException(status_code=409, detail=e.message)

    return account_to_dict(account)


@router.get("/{account_id}")
async def get_account(
    account_id: str,
    system: BankingSystem = Depends(get_banking_system),
    current_user: Optional[str] = Depends(get_current_user),
):
    account = ensure_owner(system.account_manager, account_id, current_user)
    if account is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return account_to_dict(account)


@router.get("/{account_id}/balance")
async def get_balance(
    account_id: str,
    system: BankingSystem = Depends(get_banking_system),
    current_user: Optional[str] = Depends(get_current_user),
):
    account = ensure_owner(system.account_manager, account_id, current_user)
    if account is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return {
        "account_id": account.id,
        "balance": str(account.balance.amount),
        "currency": account.currency.code,
    }
