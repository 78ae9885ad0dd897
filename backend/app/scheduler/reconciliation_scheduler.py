"""Reconciliation Scheduler - Periodic repair of status history

Every reconciliation_interval_seconds the scheduler sweeps entities whose
status changed inside [now - lookback, now - grace]. The grace period keeps
transitions that are still between their compare-and-swap and their history
append out of the sweep.
"""
import asyncio
from datetime import datetime, timedelta
from typing import List, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config.settings import Settings, settings as default_settings
from ..domain.errors import DomainError
from ..domain.models import ReconciliationResult
from ..engine.reconciler import Reconciler
from ..utils.logger import get_logger, set_correlation_id
from ..utils.idgen import generate_correlation_id
from ..utils.time import utc_now

logger = get_logger(__name__)


class ReconciliationScheduler:
    """
    APScheduler wrapper running the reconciliation sweep

    Each process may run its own scheduler; catch-up records are only written
    for entities still out of sync, and concurrent appends for one entity are
    serialized by the history sequence index.
    """

    def __init__(self, reconciler: Reconciler, settings: Optional[Settings] = None):
        self.reconciler = reconciler
        self.settings = settings or default_settings
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._is_running = False

    def start(self) -> None:
        """Start the scheduler"""
        if self._is_running:
            logger.warning("Reconciliation scheduler already running")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self._run_sweep,
            trigger=IntervalTrigger(seconds=self.settings.reconciliation_interval_seconds),
            id="reconcile_status_history",
            name="Reconcile status history",
            replace_existing=True,
            max_instances=1
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(
            f"Reconciliation scheduler started (every {self.settings.reconciliation_interval_seconds}s)"
        )

    def stop(self) -> None:
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("Reconciliation scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._is_running

    def sweep_window(self, now: Optional[datetime] = None):
        """(since, until) covered by a sweep started at now"""
        now = now or utc_now()
        since = now - timedelta(minutes=self.settings.reconciliation_lookback_minutes)
        until = now - timedelta(seconds=self.settings.reconciliation_grace_seconds)
        return since, until

    def run_once(self, now: Optional[datetime] = None) -> List[ReconciliationResult]:
        """Run one sweep synchronously"""
        since, until = self.sweep_window(now)
        return self.reconciler.sweep(since, until, limit=self.settings.reconciliation_batch_size)

    async def _run_sweep(self) -> None:
        set_correlation_id(generate_correlation_id())
        start_time = utc_now()
        try:
            # pymongo is blocking; keep it off the event loop
            results = await asyncio.to_thread(self.run_once, start_time)
        except DomainError as e:
            logger.error(
                f"Reconciliation sweep failed: {e.message}",
                extra={"error_code": e.error_code}
            )
            return

        duration_ms = (utc_now() - start_time).total_seconds() * 1000
        repaired = [r for r in results if not r.in_sync]
        if repaired:
            logger.warning(
                f"Reconciliation sweep repaired {len(repaired)} of {len(results)} entities "
                f"in {round(duration_ms, 2)}ms"
            )
