"""
Reset Scheduler

Zeroes every arcade's queue once a day at DAILY_RESET_TIME (local wall
clock), separately for each tenant.

Each active tenant owns one one-shot timer armed for the next occurrence of
the reset time. When it fires, the tenant's queues are zeroed and the timer
re-arms for the following day. If the process is down across a reset time
that day's reset is skipped; nothing catches up and nothing retries early.

The timer map belongs to the scheduler instance; the app keeps a single
instance on app.state.
"""
from datetime import datetime, timedelta
from itertools import count
from typing import Callable, Dict, List, Optional, Tuple
import threading

from sqlalchemy.orm import Session

from arcade_queue.config import Settings
from arcade_queue.core.locking import TenantLocks
from arcade_queue.core.queue import zero_counts
from arcade_queue.core.store import RecordStore
from arcade_queue.utils.logging import get_logger

logger = get_logger(__name__)


class ResetScheduler:
    def __init__(
        self,
        settings: Settings,
        session_factory: Callable[[], Session],
        locks: TenantLocks,
        clock: Callable[[], datetime] = datetime.now,
        timer_factory=threading.Timer,
    ):
        self.settings = settings
        self.session_factory = session_factory
        self.locks = locks
        self.clock = clock
        self.timer_factory = timer_factory

        self._guard = threading.Lock()
        self._timers: Dict[str, Tuple[object, int, datetime]] = {}
        self._tokens = count(1)
        self._stopped = False

    def next_fire_time(self, now: datetime = None) -> datetime:
        """Today at the reset time if still ahead of now, else tomorrow."""
        now = now or self.clock()
        hour, minute = self.settings.reset_hour_minute
        target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if target <= now:
            target += timedelta(days=1)
        return target

    def _arm(self, tenant_id: str, after: Optional[datetime] = None) -> None:
        # Caller holds self._guard
        now = self.clock()
        # A timer may wake slightly before its wall-clock target; never re-arm the same target
        fire_at = self.next_fire_time(max(now, after) if after else now)
        delay = max((fire_at - now).total_seconds(), 0)
        token = next(self._tokens)

        timer = self.timer_factory(delay, self._fire, args=(tenant_id, token))
        timer.daemon = True
        timer.start()
        self._timers[tenant_id] = (timer, token, fire_at)

        logger.debug(f"Reset for {tenant_id} armed at {fire_at.isoformat()}", extra={"tenant_id": tenant_id})

    def activate(self, tenant_id: str) -> bool:
        """Arm the tenant's timer unless it is already armed."""
        if not self.settings.SCHEDULER_ENABLED:
            return False
        with self._guard:
            if self._stopped or tenant_id in self._timers:
                return False
            self._arm(tenant_id)
        return True

    def cancel(self, tenant_id: str) -> bool:
        with self._guard:
            entry = self._timers.pop(tenant_id, None)
        if entry is None:
            return False
        entry[0].cancel()
        logger.info(f"Reset timer for {tenant_id} cancelled", extra={"tenant_id": tenant_id})
        return True

    def is_armed(self, tenant_id: str) -> bool:
        with self._guard:
            return tenant_id in self._timers

    def armed_tenants(self) -> List[str]:
        with self._guard:
            return sorted(self._timers)

    def bootstrap(self) -> int:
        """Arm a timer for every tenant that owns at least one arcade."""
        db = self.session_factory()
        try:
            tenants = RecordStore(db).distinct("arcade", "tenant_id")
        finally:
            db.close()

        armed = sum(1 for tenant_id in tenants if self.activate(tenant_id))
        logger.info(f"Reset scheduler armed for {armed} tenants at {self.settings.DAILY_RESET_TIME}")
        return armed

    def shutdown(self) -> None:
        with self._guard:
            self._stopped = True
            entries = list(self._timers.values())
            self._timers.clear()
        for timer, _, _ in entries:
            timer.cancel()

    def run_reset(self, tenant_id: str) -> int:
        """Zero the tenant's queues now; returns the number of arcades reset."""
        db = self.session_factory()
        try:
            store = RecordStore(db)
            with self.locks.hold(tenant_id):
                result = zero_counts(store, tenant_id, self.settings.RESET_UPDATER)
        finally:
            db.close()
        return result.count

    def _fire(self, tenant_id: str, token: int) -> None:
        with self._guard:
            entry = self._timers.get(tenant_id)
            if self._stopped or entry is None or entry[1] != token:
                # Cancelled after the timer started
                return

        try:
            reset = self.run_reset(tenant_id)
            logger.info(f"Daily reset zeroed {reset} arcades", extra={"tenant_id": tenant_id})
        except Exception:
            logger.error(f"Daily reset failed for {tenant_id}", exc_info=True, extra={"tenant_id": tenant_id})

        with self._guard:
            entry = self._timers.get(tenant_id)
            if not self._stopped and entry is not None and entry[1] == token:
                self._arm(tenant_id, after=entry[2])
