"""Data access layer: thought bank storage, credit ledger and entitlement dedupe"""

import logging
from datetime import date
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from thought_gateway.domain.exceptions import InvalidAccountError, InvalidAmountError, InvalidEventError
from thought_gateway.domain.models import (
    AccountBalances,
    BankEntry,
    CreditPool,
    DedupeOutcome,
    PoolBalance,
    SpendResult,
)
from thought_gateway.infrastructure.database.models import EntitlementEvent, LedgerAccount, ThoughtBank

logger = logging.getLogger(__name__)

# (granted, used) columns per pool
POOL_COLUMNS = {
    CreditPool.PRO: (LedgerAccount.pro_granted, LedgerAccount.pro_used),
    CreditPool.CHAT: (LedgerAccount.chat_granted, LedgerAccount.chat_used),
}


def _dialect_insert(session: AsyncSession, model):
    """INSERT supporting ON CONFLICT for the bound dialect"""
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise NotImplementedError(f"Upsert not supported for dialect '{dialect}'")


def _to_bank_entry(row: ThoughtBank) -> BankEntry:
    return BankEntry(label=row.label, day=row.day, lines=tuple(row.thoughts or ()))


class BankStore:
    """Repository for daily thought banks, keyed by (label, day)"""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def get(self, label: str, day: date) -> Optional[BankEntry]:
        async with self._session_factory() as session:
            row = await session.get(ThoughtBank, (label, day))
            return _to_bank_entry(row) if row else None

    async def get_latest_before(self, label: str, day: date) -> Optional[BankEntry]:
        """Most recent bank for the label strictly before `day`"""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ThoughtBank)
                .where(ThoughtBank.label == label, ThoughtBank.day < day)
                .order_by(ThoughtBank.day.desc())
                .limit(1)
            )
            row = result.scalars().first()
            return _to_bank_entry(row) if row else None

    async def upsert(self, label: str, day: date, lines: Iterable[str]) -> BankEntry:
        thoughts = list(lines)
        async with self._session_factory.begin() as session:
            stmt = _dialect_insert(session, ThoughtBank).values(label=label, day=day, thoughts=thoughts)
            stmt = stmt.on_conflict_do_update(
                index_elements=[ThoughtBank.label, ThoughtBank.day],
                set_={"thoughts": stmt.excluded.thoughts},
            )
            await session.execute(stmt)
        return BankEntry(label=label, day=day, lines=tuple(thoughts))


def require_account_id(account_id) -> str:
    """Trimmed account id of at least 3 characters"""
    if not isinstance(account_id, str) or len(account_id.strip()) < 3:
        raise InvalidAccountError("Missing or invalid account id")
    return account_id.strip()


def _require_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(f"Amount must be a positive integer, got {amount!r}")
    return amount


class CreditLedger:
    """
    Atomic balance tracker with two independent pools per account.

    Every operation seeds the account (insert-or-ignore with the default
    grants) and then runs one conditional UPDATE in the same transaction,
    so concurrent spenders can never push `used` past `granted`.
    """

    def __init__(self, session_factory: async_sessionmaker, default_seeds: Optional[Dict[CreditPool, int]] = None):
        self._session_factory = session_factory
        seeds = default_seeds or {}
        self.default_seeds = {pool: int(seeds.get(pool, 0)) for pool in CreditPool}

    async def _seed(self, session: AsyncSession, account_id: str) -> None:
        stmt = _dialect_insert(session, LedgerAccount).values(
            account_id=account_id,
            pro_granted=self.default_seeds[CreditPool.PRO],
            pro_used=0,
            chat_granted=self.default_seeds[CreditPool.CHAT],
            chat_used=0,
        )
        await session.execute(stmt.on_conflict_do_nothing(index_elements=[LedgerAccount.account_id]))

    async def _read_pool(self, session: AsyncSession, account_id: str, pool: CreditPool) -> PoolBalance:
        granted, used = POOL_COLUMNS[pool]
        row = (await session.execute(select(granted, used).where(LedgerAccount.account_id == account_id))).one()
        return PoolBalance(granted=row[0], used=row[1])

    async def ensure_account(self, account_id: str) -> AccountBalances:
        """Create the account with default grants if absent and return both pools"""
        account_id = require_account_id(account_id)
        async with self._session_factory.begin() as session:
            await self._seed(session, account_id)
            pro = await self._read_pool(session, account_id, CreditPool.PRO)
            chat = await self._read_pool(session, account_id, CreditPool.CHAT)
        return AccountBalances(account_id=account_id, pro=pro, chat=chat)

    async def spend(self, account_id: str, cost: int, pool: CreditPool = CreditPool.PRO) -> SpendResult:
        """Increment `used` by cost only if it stays within `granted`"""
        account_id = require_account_id(account_id)
        cost = _require_amount(cost)
        granted, used = POOL_COLUMNS[pool]

        async with self._session_factory.begin() as session:
            await self._seed(session, account_id)
            result = await session.execute(
                update(LedgerAccount)
                .where(LedgerAccount.account_id == account_id, used + cost <= granted)
                .values({used: used + cost})
                .execution_options(synchronize_session=False)
            )
            ok = result.rowcount == 1
            balance = await self._read_pool(session, account_id, pool)

        return SpendResult(ok=ok, pool=pool, balance=balance)

    async def grant(self, account_id: str, amount: int, pool: CreditPool = CreditPool.PRO) -> PoolBalance:
        """Increment `granted`; used for top-ups and refunds"""
        account_id = require_account_id(account_id)
        amount = _require_amount(amount)
        granted, _ = POOL_COLUMNS[pool]

        async with self._session_factory.begin() as session:
            await self._seed(session, account_id)
            await session.execute(
                update(LedgerAccount)
                .where(LedgerAccount.account_id == account_id)
                .values({granted: granted + amount})
                .execution_options(synchronize_session=False)
            )
            return await self._read_pool(session, account_id, pool)


class EventDedupeStore:
    """Idempotency guard for at-least-once entitlement notifications"""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def check_and_record(self, event_id: str, subject_id: str, product_id: str) -> DedupeOutcome:
        """
        Record an event id once.

        A uniqueness conflict means the event was already handled and yields
        is_new=False. Any other storage error propagates so callers never
        grant under doubt.
        """
        event_id, subject_id, product_id = _require_event_fields(event_id, subject_id, product_id)
        try:
            async with self._session_factory.begin() as session:
                session.add(EntitlementEvent(event_id=event_id, subject_id=subject_id, product_id=product_id))
        except IntegrityError:
            logger.info("Duplicate entitlement event", extra={"event_id": event_id, "subject_id": subject_id})
            return DedupeOutcome(is_new=False)
        return DedupeOutcome(is_new=True)


def _require_event_fields(*values) -> Tuple[str, ...]:
    cleaned = tuple(v.strip() if isinstance(v, str) else "" for v in values)
    if not all(cleaned):
        raise InvalidEventError("Event id, subject id and product id are required")
    return cleaned
