"""
Authentication dependencies and the banking system container
"""

import math
from typing import Optional
from fastapi import Depends, Header, Request

from .errors import ApiError
from ..accounts import AccountManager
from ..auth import ApiKeyService, AuthenticationError, RateLimiter, RateLimitExceeded
from ..config import BankConfig, get_config
from ..logging_config import get_logger
from ..seed import seed_store
from ..storage import LedgerStore, create_store
from ..transactions import TransactionProcessor


logger = get_logger("galactic_bank.api")


class BankingSystem:
    """Bank components wired around one ledger store"""

    def __init__(self, store: LedgerStore, config: Optional[BankConfig] = None):
        self.config = config or get_config()
        self.store = store

        self.api_keys = ApiKeyService(self.store, self.config.admin_api_key)
        self.account_manager = AccountManager(self.store, admin_key=self.config.admin_api_key)
        self.transaction_processor = TransactionProcessor(self.store)

        self.rate_limiter = None
        if self.config.enable_rate_limiting:
            self.rate_limiter = RateLimiter(
                max_requests=self.config.rate_limit_requests,
                window_seconds=self.config.rate_limit_window_seconds
            )

    @classmethod
    def from_config(cls, config: Optional[BankConfig] = None) -> 'BankingSystem':
        """Open the configured store, seeding it when enabled"""
        config = config or get_config()
        store = create_store(config.database_url, config.database_pool_min, config.database_pool_max)
        if config.seed_on_startup:
            seed_store(store)
        logger.info(f"Banking system ready on {store.__class__.__name__}")
        return cls(store, config)

    def close(self) -> None:
        self.store.close()


# Dependency to get banking system
def get_banking_system(request: Request) -> BankingSystem:
    return request.app.state.banking_system


def require_api_key(
    x_api_key: Optional[str] = Header(None, alias="x-api-key"),
    api_key: Optional[str] = Header(None, alias="api-key"),
    system: BankingSystem = Depends(get_banking_system)
) -> str:
    """Resolve the caller's API key and charge it one request"""
    try:
        key = system.api_keys.authenticate(x_api_key if x_api_key is not None else api_key)
    except AuthenticationError as e:
        raise ApiError(401, "authenticationError", str(e))

    if system.rate_limiter is not None:
        try:
            system.rate_limiter.hit(key)
        except RateLimitExceeded as e:
            retry_after = max(1, math.ceil(e.retry_after))
            raise ApiError(
                429, "rateLimitError",
                f"Too many requests. Retry after {retry_after} seconds.",
                headers={"Retry-After": str(retry_after)}
            )
    return key
