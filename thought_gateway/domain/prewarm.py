"""Periodic prewarm of daily banks for hot labels"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from thought_gateway.domain.bank_manager import DailyBankManager
from thought_gateway.domain.labels import is_valid_label, normalize_label

logger = logging.getLogger(__name__)

PREWARM_JOB_ID = "prewarm_hot_labels"


class PrewarmScheduler:
    """
    Ensures banks exist for a fixed hot-label set.

    Every label is checked and triggered independently, so a slow or failing
    label never delays another. Builds themselves are fire-and-forget.
    """

    def __init__(
        self,
        bank_manager: DailyBankManager,
        labels: Iterable[str],
        interval_minutes: int = 60,
        run_on_start: bool = True,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.bank_manager = bank_manager
        self.labels = self._clean(labels)
        self.interval_minutes = interval_minutes
        self.run_on_start = run_on_start
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)

    @staticmethod
    def _clean(labels: Iterable[str]) -> List[str]:
        cleaned = []
        for label in labels or []:
            label = normalize_label(label)
            if is_valid_label(label) and label not in cleaned:
                cleaned.append(label)
        return cleaned

    async def run_once(self) -> List[str]:
        """Trigger builds for labels missing today's bank; returns the labels triggered"""
        if not self.labels:
            return []

        logger.info(f"Prewarming labels: {', '.join(self.labels)}")
        results = await asyncio.gather(*(self._prewarm(label) for label in self.labels), return_exceptions=True)

        triggered = []
        for label, result in zip(self.labels, results):
            if isinstance(result, BaseException):
                logger.error(f"Prewarm check failed for '{label}': {result}", extra={"label": label})
            elif result:
                triggered.append(label)
        return triggered

    async def _prewarm(self, label: str) -> bool:
        if await self.bank_manager.has_today(label):
            return False
        return self.bank_manager.build_in_background(label) is not None

    def start(self) -> None:
        """Register the interval job (first run immediately when run_on_start) and start the scheduler"""
        if self.interval_minutes > 0:
            # next_run_time=None would add the job paused, so only pass it to run now
            extra = {"next_run_time": datetime.now(timezone.utc)} if self.run_on_start else {}
            self.scheduler.add_job(
                self.run_once,
                IntervalTrigger(minutes=self.interval_minutes),
                id=PREWARM_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                **extra,
            )
        elif self.run_on_start:
            self.scheduler.add_job(self.run_once, id=PREWARM_JOB_ID, replace_existing=True)
        self.scheduler.start()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
