"""
In-process brute-force protection for the login endpoint.

Two maps are kept per process, both keyed by the normalized login identifier:

- attempts: failed attempt count and the time of the last failure
- violations: timestamps of attempts made while already rate limited

Reaching the attempt threshold inside the window rate limits the identifier.
Collecting enough violations inside the violation window suspends it until the
violations age out. A periodic sweep drops expired entries.
"""

import asyncio
import logging
import math
import threading
import time
from typing import Callable, Dict, Iterable, List, Optional

from app.core.config import settings
from app.infrastructure.auth.models import LockState, LockStatus, LoginAttemptRecord

logger = logging.getLogger(__name__)


class LoginRateLimiter:
    """Sliding-window attempt counter with escalation to suspension."""

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float,
        violation_window_seconds: float,
        max_violations: int,
        test_accounts: Iterable[str] = (),
        clock: Callable[[], float] = time.time,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.violation_window_seconds = violation_window_seconds
        self.max_violations = max_violations
        self.test_accounts = {a.strip().lower() for a in test_accounts}
        self._clock = clock

        self._attempts: Dict[str, LoginAttemptRecord] = {}
        self._violations: Dict[str, List[float]] = {}
        self._attempts_lock = threading.Lock()
        self._violations_lock = threading.Lock()

    @classmethod
    def from_settings(cls) -> "LoginRateLimiter":
        return cls(
            max_attempts=settings.max_login_attempts,
            window_seconds=settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS,
            violation_window_seconds=settings.LOGIN_VIOLATION_WINDOW_SECONDS,
            max_violations=settings.max_rate_limit_violations,
            test_accounts=settings.LOGIN_TEST_ACCOUNTS,
        )

    @staticmethod
    def normalize_key(identifier: str) -> str:
        return (identifier or "").strip().lower()

    def is_test_account(self, identifier: str) -> bool:
        return self.normalize_key(identifier) in self.test_accounts

    # Queries
    def get_attempts(self, identifier: str) -> Optional[LoginAttemptRecord]:
        with self._attempts_lock:
            record = self._attempts.get(self.normalize_key(identifier))
            return LoginAttemptRecord(record.count, record.last_attempt) if record else None

    def violation_count(self, identifier: str) -> int:
        now = self._clock()
        with self._violations_lock:
            timestamps = self._violations.get(self.normalize_key(identifier), [])
            return sum(1 for ts in timestamps if now - ts < self.violation_window_seconds)

    def check(self, identifier: str) -> LockStatus:
        """Return the lock state of an identifier. Suspension wins over rate limiting."""
        if self.is_test_account(identifier):
            return LockStatus(LockState.OK)

        if self.violation_count(identifier) >= self.max_violations:
            return LockStatus(LockState.SUSPENDED)

        now = self._clock()
        record = self.get_attempts(identifier)
        if record is not None:
            elapsed = now - record.last_attempt
            if elapsed < self.window_seconds and record.count >= self.max_attempts:
                remaining = max(1, math.ceil((self.window_seconds - elapsed) / 60))
                return LockStatus(LockState.RATE_LIMITED, remaining_minutes=remaining)
        return LockStatus(LockState.OK)

    # Mutations
    def record_failure(self, identifier: str) -> LoginAttemptRecord:
        """
        Count a failed attempt.

        A failure recorded while the identifier already sits at the threshold
        inside the window also counts as a violation.
        """
        key = self.normalize_key(identifier)
        now = self._clock()
        if key in self.test_accounts:
            return LoginAttemptRecord(0, now)

        with self._attempts_lock:
            current = self._attempts.get(key)
            in_window = current is not None and now - current.last_attempt < self.window_seconds
            escalate = in_window and current.count >= self.max_attempts
            # An expired record starts a fresh window.
            count = current.count + 1 if in_window else 1
            record = LoginAttemptRecord(count, now)
            self._attempts[key] = record

        if escalate:
            self.add_violation(key)
        return LoginAttemptRecord(record.count, record.last_attempt)

    def add_violation(self, identifier: str) -> int:
        """Append a violation and return the number of recent violations."""
        key = self.normalize_key(identifier)
        now = self._clock()
        with self._violations_lock:
            recent = [ts for ts in self._violations.get(key, []) if now - ts < self.violation_window_seconds]
            recent.append(now)
            self._violations[key] = recent
            count = len(recent)
        logger.warning(f"Login rate limit violation {count}/{self.max_violations} for '{key}'")
        return count

    def clear(self, identifier: str) -> None:
        key = self.normalize_key(identifier)
        with self._attempts_lock:
            self._attempts.pop(key, None)
        with self._violations_lock:
            self._violations.pop(key, None)

    def sweep(self) -> Dict[str, int]:
        """Drop expired attempt records and violation timestamps."""
        now = self._clock()
        attempts_removed = 0
        violations_removed = 0

        with self._attempts_lock:
            for key in [k for k, r in self._attempts.items() if now - r.last_attempt >= self.window_seconds]:
                del self._attempts[key]
                attempts_removed += 1

        with self._violations_lock:
            for key in list(self._violations):
                recent = [ts for ts in self._violations[key] if now - ts < self.violation_window_seconds]
                if recent:
                    self._violations[key] = recent
                else:
                    del self._violations[key]
                    violations_removed += 1

        if attempts_removed or violations_removed:
            logger.debug(
                f"Login limiter sweep removed {attempts_removed} attempt records "
                f"and {violations_removed} violation records"
            )
        return {"attempts_removed": attempts_removed, "violations_removed": violations_removed}

    def reset(self) -> None:
        with self._attempts_lock:
            self._attempts.clear()
        with self._violations_lock:
            self._violations.clear()

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep forever on a fixed interval; cancelled by the application lifespan."""
        logger.info(f"Login limiter sweeper started (every {interval_seconds}s)")
        try:
            while True:
                await asyncio.sleep(interval_seconds)
                try:
                    self.sweep()
                except Exception as e:
                    logger.error(f"Error in login limiter sweep: {e}", exc_info=True)
        except asyncio.CancelledError:
            logger.info("Login limiter sweeper stopped")
            raise


login_rate_limiter = LoginRateLimiter.from_settings()
