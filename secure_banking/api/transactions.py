"""
Deposit, withdrawal and transfer endpoints

Business failures return the result body with a 4xx status; storage
failures are handled by the application-wide StorageError handler.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..errors import ErrorKind
from ..transfers import TransferResult
from .auth import BankingSystem, ensure_owner, get_banking_system, get_current_user
from .schemas import DepositRequest, TransferRequest, WithdrawRequest, result_to_dict


router = APIRouter()

_STATUS_BY_ERROR = {
    ErrorKind.ACCOUNT_NOT_FOUND: 404,
}


def _respond(result: TransferResult) -> JSONResponse:
    if result.success:
        status_code = 200
    else:
        status_code = _STATUS_BY_ERROR.get(result.error, 422)
    return JSONResponse(status_code=status_code, content=result_to_dict(result))


@router.post("/deposit")
async def deposit(
    request: DepositRequest,
    system: BankingSystem = Depends(get_banking_system),
    current_user: Optional[str] = Depends(get_current_user),
):
    """Credit an account"""
    return _respond(system.transfer_engine.deposit(request.account_id, request.amount))


@router.post("/withdraw")
async def withdraw(
    request: WithdrawRequest,
    system: BankingSystem = Depends(get_banking_system),
    current_user: Optional[str] = Depends(get_current_user),
):
    """Debit an account owned by the caller"""
    ensure_owner(system.account_manager, request.account_id, current_user)
    return _respond(system.transfer_engine.withdraw(request.account_id, request.amount))


@router.post("/transfer")
async def transfer(
    request: TransferRequest,
    system: BankingSystem = Depends(get_banking_system),
    current_user: Optional[str] = Depends(get_current_user),
):
    """Move funds from an account owned by the caller to any other account"""
    ensure_owner(system.account_manager, request.source_account_id, current_user)
    return _respond(system.transfer_engine.transfer(
        request.source_account_id,
        request.target_account_id,
        request.amount,
    ))
