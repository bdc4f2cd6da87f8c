"""Per-user bound on concurrent storage requests.

Tree mutations of one user are not serialized; the DB constraints and the
name allocator keep them correct. This bound only stops a single user from
occupying the whole worker threadpool.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from fastapi import Depends

from .auth import AuthContext, require_auth
from .config import settings
from ..exceptions import TooManyRequestsError

logger = logging.getLogger(__name__)


class UserConcurrencyLimiter:
    """Counts in-flight requests per user. ``limit <= 0`` disables the bound."""

    def __init__(self, limit: int):
        self.limit = limit
        self._lock = threading.Lock()
        self._inflight: Dict[int, int] = {}

    def acquire(self, user_id: int) -> None:
        with self._lock:
            current = self._inflight.get(user_id, 0)
            if self.limit > 0 and current >= self.limit:
                logger.warning(
                    "Concurrent request limit reached",
                    extra={"user_id": user_id, "limit": self.limit},
                )
                raise TooManyRequestsError(user_id, self.limit)
            self._inflight[user_id] = current + 1

    def release(self, user_id: int) -> None:
        with self._lock:
            remaining = self._inflight.get(user_id, 0) - 1
            if remaining > 0:
                self._inflight[user_id] = remaining
            else:
                self._inflight.pop(user_id, None)

    def inflight(self, user_id: int) -> int:
        with self._lock:
            return self._inflight.get(user_id, 0)

    @contextmanager
    def slot(self, user_id: int) -> Iterator[None]:
        self.acquire(user_id)
        try:
            yield
        finally:
            self.release(user_id)


limiter = UserConcurrencyLimiter(settings.max_inflight_per_user)


def user_slot(auth: AuthContext = Depends(require_auth)) -> Iterator[AuthContext]:
    """FastAPI dependency: authenticated caller holding one in-flight slot."""
    with limiter.slot(auth.user_id):
        yield auth
