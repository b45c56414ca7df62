"""
Client-side session tracking with idle and reload logout.

The tracker works over two key/value stores supplied by the client: a durable
store that survives reloads (user, token, last activity) and a transient store
that only lives for the current page (the reload flag). A page reload always
ends the session; so does five minutes without tracked activity.
"""

import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, MutableMapping, Optional

logger = logging.getLogger(__name__)

USER_KEY = "auth-user"
TOKEN_KEY = "token"
ACTIVITY_KEY = "last-activity"
RELOAD_KEY = "is-reload"

IDLE_TIMEOUT_SECONDS = 5 * 60
CHECK_INTERVAL_SECONDS = 60

ACTIVITY_EVENTS = ("mousemove", "keydown", "click", "scroll")


class SessionActivityTracker:
    """Keeps the last-activity mark and decides when a session must end."""

    def __init__(
        self,
        durable_store: MutableMapping[str, str],
        transient_store: MutableMapping[str, str],
        clock: Callable[[], float] = time.time,
        idle_timeout_seconds: float = IDLE_TIMEOUT_SECONDS,
        on_logout: Optional[Callable[[str], None]] = None,
    ):
        self.durable = durable_store
        self.transient = transient_store
        self._clock = clock
        self.idle_timeout_seconds = idle_timeout_seconds
        self.on_logout = on_logout
        self.user: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def token(self) -> Optional[str]:
        return self.durable.get(TOKEN_KEY)

    def _mark(self) -> None:
        self.durable[ACTIVITY_KEY] = str(self._clock())

    def _idle_for(self) -> Optional[float]:
        raw = self.durable.get(ACTIVITY_KEY)
        if raw is None:
            return None
        try:
            return self._clock() - float(raw)
        except ValueError:
            logger.warning(f"Unreadable activity mark {raw!r}; treating session as idle")
            return float("inf")

    def login(self, user: Dict[str, Any], token: str) -> None:
        self.durable[USER_KEY] = json.dumps(user)
        self.durable[TOKEN_KEY] = token
        self._mark()
        self.transient.pop(RELOAD_KEY, None)
        self.user = user

    def update_user(self, changes: Dict[str, Any]) -> None:
        if self.user is None:
            return
        self.user = {**self.user, **changes}
        self.durable[USER_KEY] = json.dumps(self.user)

    def record_activity(self, event: str = "click") -> None:
        """Refresh the activity mark for a tracked input event."""
        if event in ACTIVITY_EVENTS and self.is_authenticated:
            self._mark()

    def mark_unload(self) -> None:
        """Called just before the page unloads."""
        self.transient[RELOAD_KEY] = "true"

    def restore(self) -> bool:
        """Restore the stored session on page load; returns whether it survived."""
        raw_user = self.durable.get(USER_KEY)
        if self.transient.get(RELOAD_KEY) == "true":
            if raw_user is None:
                self._clear_session()
            else:
                self.logout(reason="reload")
            return False
        if raw_user is None:
            return False

        idle = self._idle_for()
        if idle is not None and idle >= self.idle_timeout_seconds:
            self.logout(reason="idle")
            return False

        try:
            self.user = json.loads(raw_user)
        except json.JSONDecodeError:
            logger.warning("Stored user could not be parsed; clearing session")
            self.logout(reason="corrupt")
            return False
        self._mark()
        return True

    def check_idle(self) -> bool:
        """Periodic check; returns True when the session was ended."""
        if not self.is_authenticated:
            return False
        idle = self._idle_for()
        if idle is not None and idle >= self.idle_timeout_seconds:
            self.logout(reason="idle")
            return True
        return False

    def _clear_session(self) -> None:
        for key in (USER_KEY, TOKEN_KEY, ACTIVITY_KEY):
            self.durable.pop(key, None)
        self.transient.pop(RELOAD_KEY, None)
        self.user = None

    def logout(self, reason: str = "manual") -> None:
        self._clear_session()
        logger.info(f"Session ended ({reason})")
        if self.on_logout is not None:
            self.on_logout(reason)

    async def run_idle_checks(self, interval_seconds: float = CHECK_INTERVAL_SECONDS) -> None:
        """Run ``check_idle`` on a fixed interval until cancelled."""
        logger.info(f"Idle checker started (every {interval_seconds}s)")
        try:
            while True:
                await asyncio.sleep(interval_seconds)
                try:
                    self.check_idle()
                except Exception as e:
                    logger.error(f"Error in idle check: {e}", exc_info=True)
        except asyncio.CancelledError:
            logger.info("Idle checker stopped")
            raise
