"""
Bearer token issuance
"""

import hmac

from fastapi import APIRouter, Depends, HTTPException

from ..config import SecureBankConfig
from ..logging_config import get_logger, log_action
from .auth import create_access_token, get_settings
from .schemas import TokenRequest


router = APIRouter()
logger = get_logger("secure_banking.api.tokens")


@router.post("/token")
async def issue_token(
    request: TokenRequest,
    settings: SecureBankConfig = Depends(get_settings),
):
    """Exchange the issuer key for a JWT bearing the given user id"""
    if not settings.token_issuer_key:
        raise HTTPException(status_code=404, detail="Token issuance is not enabled")

    if not hmac.compare_digest(
        request.issuer_key.encode(), settings.token_issuer_key.encode()
    ):
        log_action(
            logger, "warning", "Token request rejected",
            action="issue_token_failed", resource="auth",
            extra={"user_id": request.user_id},
        )
        raise HTTPException(status_code=401, detail="Invalid issuer key")

    log_action(
        logger, "info", "Token issued",
        user_id=request.user_id, action="issue_token", resource="auth",
    )
    return {
        "access_token": create_access_token(request.user_id, settings),
        "token_type": "bearer",
        "expires_in": settings.jwt_expiry_minutes * 60,
    }
