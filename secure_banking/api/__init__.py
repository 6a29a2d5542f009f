"""
SecureOnline Banking API Application Factory
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import SecureBankConfig, get_config
from ..errors import StorageError
from ..logging_config import get_logger, setup_logging
from .accounts import router as accounts_router
from .auth import BankingSystem
from .tokens import router as tokens_router
from .transactions import router as transactions_router
from .users import router as users_router


def create_app(
    system: Optional[BankingSystem] = None,
    settings: Optional[SecureBankConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application"""
    if settings is None:
        settings = system.settings if system is not None else get_config()
    if system is None:
        system = BankingSystem(settings)

    setup_logging(settings.log_level, settings.log_format, settings.log_file)
    logger = get_logger("secure_banking.api")

    app = FastAPI(
        title="SecureOnline Banking API",
        description="Accounts, balances and atomic funds transfers",
        version=__version__,
    )
    app.state.system = system
    app.state.settings = settings

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})

    app.include_router(tokens_router, prefix="/auth", tags=["Auth"])
    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])
    app.include_router(users_router, prefix="/users", tags=["Users"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "secure_banking",
            "version": __version__,
        }

    return app
