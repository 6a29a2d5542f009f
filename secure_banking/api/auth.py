"""
Authentication and system dependencies
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..accounts import Account, AccountManager
from ..config import SecureBankConfig, get_config
from ..events import EventDispatcher
from ..notifications import NotificationService
from ..storage import StorageInterface, create_storage
from ..transfers import TransferEngine


class BankingSystem:
    """Banking service with all components wired to one storage backend"""

    def __init__(
        self,
        settings: Optional[SecureBankConfig] = None,
        storage: Optional[StorageInterface] = None,
    ):
        self.settings = settings or get_config()
        self.storage = storage or create_storage(self.settings.database_url)
        self.event_dispatcher = EventDispatcher()
        self.account_manager = AccountManager(
            self.storage, self.event_dispatcher, self.settings.account_number_prefix
        )
        self.transfer_engine = TransferEngine(
            self.storage, self.account_manager, self.event_dispatcher
        )
        self.notification_service = NotificationService(self.storage, self.event_dispatcher)

    def close(self) -> None:
        self.storage.close()


security = HTTPBearer(auto_error=False)


def get_banking_system(request: Request) -> BankingSystem:
    return request.app.state.system


def get_settings(request: Request) -> SecureBankConfig:
    return request.app.state.settings


def create_access_token(
    user_id: str,
    settings: SecureBankConfig,
    expires_in: Optional[timedelta] = None,
) -> str:
    """Issue a signed bearer token for a user"""
    now = datetime.now(timezone.utc)
    expiry = now + (expires_in or timedelta(minutes=settings.jwt_expiry_minutes))
    payload = {"sub": user_id, "iat": now, "exp": expiry}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: SecureBankConfig = Depends(get_settings),
) -> Optional[str]:
    """Validate the bearer token and return the user id (None when auth is disabled)"""
    if not settings.auth_enabled:
        return None

    if not credentials:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = jwt.decode(
            credentials.credentials, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")
    return user_id


def ensure_user(current_user: Optional[str], user_id: str) -> None:
    if current_user is not None and current_user != user_id:
        raise HTTPException(status_code=403, detail="Not permitted for this user")


def ensure_owner(
    account_manager: AccountManager, account_id: str, current_user: Optional[str]
) -> Optional[Account]:
    """
    Reject the request when the authenticated user does not own the account.
    Unknown accounts pass through so the caller can report them.
    """
    account = account_manager.get_account(account_id)
    if account is not None:
        ensure_user(current_user, account.user_id)
    return account
