"""
API Key Authentication and Rate Limiting

Keys are opaque strings. A key the bank has never seen is registered on
first use, so workshop participants can pick their own. Each key gets its
own sliding-window request budget.
"""

from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Optional
import threading
import time
import uuid

from .logging_config import get_logger, log_action
from .storage import LedgerStore


class AuthenticationError(Exception):
    """No usable API key was presented"""


class RateLimitExceeded(Exception):
    """Too many requests for one key inside the window"""

    def __init__(self, retry_after: float, message: str = "Rate limit exceeded"):
        self.retry_after = retry_after
        self.message = message
        super().__init__(f"{message}. Retry after {retry_after:.0f} seconds.")


class ApiKeyService:
    """Issues, validates and classifies API keys"""

    def __init__(self, store: LedgerStore, admin_key: str):
        self.store = store
        self.admin_key = admin_key
        self.logger = get_logger("galactic_bank.auth")

    def generate_key(self) -> str:
        """Create and register a fresh 16-character key"""
        key = uuid.uuid4().hex[:16]
        self.store.register_api_key(key)
        log_action(self.logger, "info", "API key generated", api_key=key, action="generate_key")
        return key

    def authenticate(self, key: Optional[str]) -> str:
        """
        Validate a presented key, registering it if unknown

        Raises:
            AuthenticationError: If no key was presented
        """
        if key is None or not key.strip():
            raise AuthenticationError(
                "API key is required. Provide it in the x-api-key header."
            )
        key = key.strip()
        if not self.store.api_key_exists(key):
            self.store.register_api_key(key)
            log_action(self.logger, "info", "API key registered on first use", api_key=key,
                       action="register_key")
        return key

    def is_admin(self, key: str) -> bool:
        return key == self.admin_key


class RateLimiter:
    """
    Sliding-window limiter keyed by API key

    Allows max_requests hits per key within any window_seconds span.
    """

    def __init__(self, max_requests: int = 100, window_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def hit(self, key: str) -> int:
        """
        Record one request

        Returns:
            Requests remaining in the current window

        Raises:
            RateLimitExceeded: If the key is over its budget
        """
        now = self._clock()
        with self._lock:
            hits = self._hits[key]
            # Clean old entries
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()
            if len(hits) >= self.max_requests:
                retry_after = self.window_seconds - (now - hits[0])
                raise RateLimitExceeded(retry_after)
            hits.append(now)
            return self.max_requests - len(hits)

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)
