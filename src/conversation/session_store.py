"""
In-memory conversation bookkeeping keyed by session id.

Entries expire after a fixed TTL. Every lookup checks ``expires_at`` itself,
so the background sweep only reclaims memory and is never needed for
correctness.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from src.config import settings
from src.conversation.state_machine import DialogTrigger
from src.schemas.intent_schema import IntentTask
from src.schemas.session_schema import BookingSession, Conversation, PendingAction
from src.utils import generate_id, utc_now

logger = logging.getLogger(__name__)


def new_booking_session(
    provider_type: str, now: datetime, ttl: timedelta, **fields
) -> BookingSession:
    return BookingSession(
        id=generate_id("session"),
        created_at=now,
        expires_at=now + ttl,
        provider_type=provider_type,
        **fields,
    )


def new_pending_action(task: IntentTask, now: datetime, ttl: timedelta) -> PendingAction:
    return PendingAction(
        id=generate_id("pending"),
        created_at=now,
        expires_at=now + ttl,
        task=task,
    )


class SessionStore:
    """Maps session ids to their current conversation."""

    def __init__(
        self,
        ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.ttl = ttl or timedelta(minutes=settings.session.ttl_minutes)
        self._clock = clock
        self._entries: dict[str, Conversation] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def get(self, session_id: str, now: Optional[datetime] = None) -> Optional[Conversation]:
        """Current conversation for ``session_id``, or None if absent or expired."""
        entry = self._entries.get(session_id)
        if entry is None:
            return None
        if entry.is_expired(now or self._clock()):
            self._expire(session_id, entry)
            return None
        return entry

    def put(self, session_id: str, conversation: Conversation) -> None:
        self._entries[session_id] = conversation

    def remove(self, session_id: str) -> Optional[Conversation]:
        return self._entries.pop(session_id, None)

    def _expire(self, session_id: str, entry: Conversation) -> None:
        self._entries.pop(session_id, None)
        if entry.machine.can_transition(DialogTrigger.EXPIRED):
            entry.machine.transition(DialogTrigger.EXPIRED)
        logger.info("Conversation expired: %s (%s)", entry.id, entry.kind)

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Evict every expired entry. Returns how many were removed."""
        now = now or self._clock()
        expired = [(sid, e) for sid, e in self._entries.items() if e.is_expired(now)]
        for session_id, entry in expired:
            self._expire(session_id, entry)
        if expired:
            logger.debug("Swept %d expired conversation(s)", len(expired))
        return len(expired)

    # ------------------------------------------------------------------ #
    # Background sweep
    # ------------------------------------------------------------------ #

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    def start_sweeper(self, interval: Optional[float] = None) -> asyncio.Task:
        """Start the periodic sweep on the running loop (idempotent)."""
        if self._sweeper is not None and not self._sweeper.done():
            return self._sweeper
        interval = interval or settings.session.sweep_interval_sec
        self._sweeper = asyncio.create_task(self._sweep_forever(interval))
        logger.info("Session sweeper started (every %ss)", interval)
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("Session sweeper stopped")
