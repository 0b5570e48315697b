# discount_engine/services/lifecycle.py
import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional
from ..database.rule_store import RuleStore
from ..models.discount import ReconcileResult, RuleStatus
from ..utils.time import ensure_utc, utcnow

def determine_status(start: datetime, end: datetime, now: datetime) -> RuleStatus:
    """Status implied by the half-open window [start, end) at now"""
    start, end, now = ensure_utc(start), ensure_utc(end), ensure_utc(now)
    if now < start:
        return RuleStatus.SCHEDULED
    if now < end:
        return RuleStatus.ACTIVE
    return RuleStatus.EXPIRED

class RuleLifecycleManager:
    """
    Keeps the persisted rule status in line with the rule dates.

    The status column is a cached value: rules crossing into their window
    stay invisible to pricing until the next reconcile() pass.
    """

    def __init__(self, store: RuleStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    determine_status = staticmethod(determine_status)

    async def reconcile(self, now: Optional[datetime] = None) -> ReconcileResult:
        """Expire finished rules and activate scheduled rules whose window has opened"""
        now = ensure_utc(now or self.clock())

        expired_ids: List[str] = []
        activated_ids: List[str] = []
        for rule in await self.store.find_drifted(now):
            derived = determine_status(rule.start_date, rule.end_date, now)
            if derived == rule.status:
                continue
            if derived == RuleStatus.EXPIRED:
                expired_ids.append(rule.id)
            elif derived == RuleStatus.ACTIVE and rule.status == RuleStatus.SCHEDULED:
                activated_ids.append(rule.id)

        expired_count = await self.store.bulk_update_status(expired_ids, RuleStatus.EXPIRED, now)
        activated_count = await self.store.bulk_update_status(activated_ids, RuleStatus.ACTIVE, now)

        if expired_count or activated_count:
            self.logger.info(
                f"Reconciled rule statuses: expired={expired_count} activated={activated_count}"
            )

        return ReconcileResult(
            expired_count=expired_count,
            activated_count=activated_count,
            expired_ids=expired_ids,
            activated_ids=activated_ids
        )

    async def run_forever(self, interval: float, stop_event: asyncio.Event) -> int:
        """Reconcile every interval seconds until stop_event is set; returns passes run"""
        passes = 0
        while not stop_event.is_set():
            try:
                await self.reconcile()
            except Exception as e:
                self.logger.error(f"Reconciliation pass failed: {e}", exc_info=True)
            passes += 1
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
        return passes
