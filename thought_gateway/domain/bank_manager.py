"""Daily thought bank: build-vs-reuse state machine with single-flight builds"""

import asyncio
import logging
import time
from contextlib import contextmanager
from datetime import date
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple

from thought_gateway.domain.exceptions import BankTooSmallError, InvalidLabelError
from thought_gateway.domain.labels import is_valid_label, normalize_label
from thought_gateway.domain.models import BankSource, BuildOutcome, EnsureResult, WordRange
from thought_gateway.domain.word_filter import ACCEPT_THRESHOLD, filter_with_auto_relax
from thought_gateway.infrastructure.observability.logging import log_bank_build
from thought_gateway.infrastructure.observability.metrics import (
    bank_build_counter,
    bank_lookup_counter,
    filter_mode_counter,
)
from thought_gateway.utils.date_utils import utc_today

logger = logging.getLogger(__name__)


class BuildLocks:
    """
    Per-key mutex for bank builds within one process.

    Acquisition never waits: a held key means a build is already running
    and the caller should reuse its result instead of starting another.
    """

    def __init__(self) -> None:
        self._held: Set[str] = set()

    def is_held(self, key: str) -> bool:
        return key in self._held

    def try_acquire(self, key: str) -> bool:
        if key in self._held:
            return False
        self._held.add(key)
        return True

    def release(self, key: str) -> None:
        self._held.discard(key)

    @contextmanager
    def holding(self, key: str) -> Iterator[bool]:
        acquired = self.try_acquire(key)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(key)


class DailyBankManager:
    """
    Serves per-label daily banks and builds missing ones.

    States per label: NO_BANK -> BUILDING -> READY, with STALE_SERVE while a
    previous day's bank covers for a build in progress.

    `generator` must provide `async generate_batch(label, count) -> str`.
    """

    def __init__(
        self,
        store,
        generator,
        word_range: WordRange,
        capacity: int = 100,
        batch_size: int = 25,
        min_accept: int = 30,
        max_batches: int = 12,
        relax1: Tuple[int, int] = (2, 4),
        relax2: Tuple[int, int] = (3, 8),
        locks: Optional[BuildLocks] = None,
        today: Callable[[], date] = utc_today,
    ):
        self.store = store
        self.generator = generator
        self.word_range = word_range
        self.capacity = capacity
        self.batch_size = batch_size
        self.min_accept = min_accept
        self.max_batches = max_batches
        self.relax1 = relax1
        self.relax2 = relax2
        self.locks = locks or BuildLocks()
        self._today = today
        # Strong references so fire-and-forget builds are not garbage collected
        self._tasks: Set[asyncio.Task] = set()

    @staticmethod
    def lock_key(label: str, day: date) -> str:
        return f"{label}:{day.isoformat()}"

    async def ensure(self, label: str) -> EnsureResult:
        """
        Return today's bank, or a stale one while today's is built.

        Raises:
            InvalidLabelError: Label fails validation after normalization
        """
        label = normalize_label(label)
        if not is_valid_label(label):
            raise InvalidLabelError(f"Invalid label: {label!r}")

        day = self._today()
        entry = await self.store.get(label, day)
        if entry and entry.lines:
            bank_lookup_counter.labels(source=BankSource.TODAY.value).inc()
            return EnsureResult(lines=entry.lines, source=BankSource.TODAY, triggered_build=False, day=day)

        fallback = await self.store.get_latest_before(label, day)
        triggered = self.build_in_background(label) is not None

        if fallback and fallback.lines:
            bank_lookup_counter.labels(source=BankSource.LATEST_FALLBACK.value).inc()
            return EnsureResult(
                lines=fallback.lines,
                source=BankSource.LATEST_FALLBACK,
                triggered_build=triggered,
                day=fallback.day,
            )

        bank_lookup_counter.labels(source=BankSource.NONE.value).inc()
        return EnsureResult(lines=(), source=BankSource.NONE, triggered_build=triggered)

    async def has_today(self, label: str) -> bool:
        entry = await self.store.get(normalize_label(label), self._today())
        return bool(entry and entry.lines)

    def build_in_background(self, label: str) -> Optional[asyncio.Task]:
        """
        Start a fire-and-forget build for today's bank.

        Returns None without side effects when the label is invalid or a build
        for it is already running. The lock is taken before the task is
        scheduled and released by the task's done-callback, so it cannot leak
        even if the task is cancelled before it starts.
        """
        label = normalize_label(label)
        if not is_valid_label(label):
            return None

        day = self._today()
        key = self.lock_key(label, day)
        if not self.locks.try_acquire(key):
            return None

        task = asyncio.create_task(self._build_locked(label, day))
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._on_background_done(key, label, t))
        return task

    async def build(self, label: str) -> BuildOutcome:
        """
        Build today's bank in the caller's task.

        Raises:
            BankTooSmallError: Generation ran dry below the minimum; nothing persisted
            GenerationServiceError: The generation service failed
        """
        label = normalize_label(label)
        if not is_valid_label(label):
            return BuildOutcome.SKIPPED_INVALID

        day = self._today()
        with self.locks.holding(self.lock_key(label, day)) as acquired:
            if not acquired:
                return BuildOutcome.SKIPPED_LOCKED
            return await self._build_locked(label, day)

    async def wait_for_builds(self) -> None:
        """Wait for every background build started so far to settle"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _build_locked(self, label: str, day: date) -> BuildOutcome:
        start_time = time.time()
        try:
            # A build that finished while this one waited to start makes it redundant
            existing = await self.store.get(label, day)
            if existing and existing.lines:
                self._record_build(label, day, BuildOutcome.EXISTS, len(existing.lines), start_time)
                return BuildOutcome.EXISTS

            logger.info(f"Building daily bank for '{label}'", extra={"label": label, "day": day.isoformat()})
            lines = await self._collect(label)

            if len(lines) < self.min_accept:
                raise BankTooSmallError(label, len(lines), self.min_accept)

            await self.store.upsert(label, day, lines)
        except BankTooSmallError as e:
            self._record_build(label, day, BuildOutcome.TOO_SMALL, e.size, start_time)
            raise
        except Exception:
            self._record_build(label, day, BuildOutcome.FAILED, 0, start_time)
            raise

        self._record_build(label, day, BuildOutcome.BUILT, len(lines), start_time)
        return BuildOutcome.BUILT

    @staticmethod
    def _record_build(label: str, day: date, outcome: BuildOutcome, size: int, start_time: float) -> None:
        bank_build_counter.labels(outcome=outcome.value).inc()
        level = logging.WARNING if outcome in (BuildOutcome.TOO_SMALL, BuildOutcome.FAILED) else logging.INFO
        log_bank_build(label, day, outcome.value, size, (time.time() - start_time) * 1000, level=level)

    async def _collect(self, label: str) -> List[str]:
        """
        Accumulate deduplicated lines batch by batch.

        Stops at capacity, or when a batch is short of the acceptance
        threshold or adds nothing new (generation exhausted).
        """
        collected: Dict[str, None] = {}
        for _ in range(self.max_batches):
            raw = await self.generator.generate_batch(label, self.batch_size)
            result = filter_with_auto_relax(
                raw,
                self.word_range,
                relax1=self.relax1,
                relax2=self.relax2,
                label_for_logs=label,
            )
            filter_mode_counter.labels(mode=result.mode.value).inc()

            before = len(collected)
            for text in result.texts:
                collected.setdefault(text, None)

            if len(collected) >= self.capacity:
                break
            if len(result.lines) < ACCEPT_THRESHOLD or len(collected) == before:
                break

        return list(collected)[: self.capacity]

    def _on_background_done(self, key: str, label: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self.locks.release(key)

        if task.cancelled():
            logger.warning(f"Bank build for '{label}' cancelled", extra={"label": label})
            return

        exc = task.exception()
        if isinstance(exc, BankTooSmallError):
            logger.error(str(exc), extra={"label": label, "bank_size": exc.size})
        elif exc is not None:
            logger.error(f"Bank build error for '{label}': {exc}", exc_info=exc, extra={"label": label})
