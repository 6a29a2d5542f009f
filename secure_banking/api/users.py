"""
Per-user endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from .auth import BankingSystem, ensure_user, get_banking_system, get_current_user
from .schemas import account_to_dict, notification_to_dict


router = APIRouter()


@router.get("/{user_id}/accounts")
async def get_user_accounts(
    user_id: str,
    system: BankingSystem = Depends(get_banking_system),
    current_user: Optional[str] = Depends(get_current_user),
):
    ensure_user(current_user, user_id)
    accounts = system.account_manager.get_user_accounts(user_id)
    return {
        "user_id": user_id,
        "accounts": [account_to_dict(account) for account in accounts],
    }


@router.get("/{user_id}/notifications")
async def get_notifications(
    user_id: str,
    unread_only: bool = False,
    system: BankingSystem = Depends(get_banking_system),
    current_user: Optional[str] = Depends(get_current_user),
):
    ensure_user(current_user, user_id)
    notifications = system.notification_service.get_notifications(user_id, unread_only=unread_only)
    return {
        "user_id": user_id,
        "unread_count": system.notification_service.get_unread_count(user_id),
        "notifications": [notification_to_dict(n) for n in notifications],
    }


@router.post("/{user_id}/notifications/{notification_id}/read")
async def mark_notification_read(
    user_id: str,
    notification_id: str,
    system: BankingSystem = Depends(get_banking_system),
    current_user: Optional[str] = Depends(get_current_user),
):
    ensure_user(current_user, user_id)
    service = system.notification_service
    owned = {n.id for n in service.get_notifications(user_id)}
    if notification_id not in owned or not service.mark_as_read(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"notification_id": notification_id, "read": True}
