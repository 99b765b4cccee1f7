"""Unit tests for the atomic credit ledger"""

import asyncio
import pytest
from thought_gateway.domain.exceptions import InvalidAccountError, InvalidAmountError
from thought_gateway.domain.models import CreditPool
from thought_gateway.infrastructure.database.repositories import CreditLedger


async def test_ensure_account_seeds_defaults(ledger: CreditLedger):
    """Test lazy creation with configured default grants"""
    balances = await ledger.ensure_account("device-1")

    assert balances.pro.granted == 5
    assert balances.pro.used == 0
    assert balances.pro.remaining == 5
    assert balances.chat.granted == 3
    assert balances.chat.remaining == 3


async def test_ensure_account_is_idempotent(ledger: CreditLedger):
    """Test a second ensure does not reseed a used account"""
    await ledger.spend("device-1", 2)
    balances = await ledger.ensure_account("device-1")

    assert balances.pro.granted == 5
    assert balances.pro.used == 2


async def test_spend_auto_seeds_and_returns_post_balance(ledger: CreditLedger):
    result = await ledger.spend("device-1", 1)

    assert result.ok is True
    assert result.pool is CreditPool.PRO
    assert result.balance.used == 1
    assert result.balance.remaining == 4


async def test_spend_over_limit_returns_unchanged_balance(ledger: CreditLedger):
    """Test overdraft is a refusal with current balances, not an exception"""
    result = await ledger.spend("device-1", 6)

    assert result.ok is False
    assert result.balance.used == 0
    assert result.balance.remaining == 5


async def test_pools_are_independent(ledger: CreditLedger):
    """Test spending one pool leaves the other untouched"""
    await ledger.spend("device-1", 3, CreditPool.CHAT)
    refused = await ledger.spend("device-1", 1, CreditPool.CHAT)
    balances = await ledger.ensure_account("device-1")

    assert refused.ok is False
    assert balances.chat.remaining == 0
    assert balances.pro.remaining == 5


async def test_grant_then_spend_same_amount_leaves_zero(ledger: CreditLedger):
    """Test grant followed by spend of the same amount on an exhausted pool"""
    await ledger.spend("device-1", 5)
    granted = await ledger.grant("device-1", 3)
    result = await ledger.spend("device-1", 3)

    assert granted.remaining == 3
    assert result.ok is True
    assert result.balance.remaining == 0


async def test_scenario_c_exhausted_then_refilled(ledger: CreditLedger):
    """Test granted=5, used=5: refuse, grant 1, then spend succeeds at zero remaining"""
    await ledger.spend("device-1", 5)

    refused = await ledger.spend("device-1", 1)
    assert refused.ok is False
    assert refused.balance.remaining == 0

    await ledger.grant("device-1", 1)
    result = await ledger.spend("device-1", 1)
    assert result.ok is True
    assert result.balance.remaining == 0
    assert result.balance.granted == 6
    assert result.balance.used == 6


async def test_concurrent_spends_never_overspend(ledger: CreditLedger):
    """Test concurrent spend(1) calls succeed at most `remaining` times"""
    await ledger.ensure_account("device-1")

    results = await asyncio.gather(*(ledger.spend("device-1", 1) for _ in range(12)))

    assert sum(1 for r in results if r.ok) == 5
    balances = await ledger.ensure_account("device-1")
    assert balances.pro.used == 5
    assert balances.pro.used <= balances.pro.granted


async def test_concurrent_grant_and_spend_stay_consistent(ledger: CreditLedger):
    """Test interleaved grants and spends keep used <= granted"""
    await ledger.spend("device-1", 5)

    await asyncio.gather(
        *(ledger.grant("device-1", 1) for _ in range(3)),
        *(ledger.spend("device-1", 1) for _ in range(6)),
    )
    balances = await ledger.ensure_account("device-1")

    assert balances.pro.granted == 8
    assert balances.pro.used <= 8


@pytest.mark.parametrize("account_id", [None, "", "  ", "ab", 42])
async def test_invalid_account_rejected(ledger: CreditLedger, account_id):
    with pytest.raises(InvalidAccountError):
        await ledger.spend(account_id, 1)


@pytest.mark.parametrize("amount", [0, -1, 1.5, True, "1"])
async def test_invalid_amount_rejected(ledger: CreditLedger, amount):
    with pytest.raises(InvalidAmountError):
        await ledger.grant("device-1", amount)


async def test_account_id_is_trimmed(ledger: CreditLedger):
    await ledger.spend("  device-1  ", 1)
    balances = await ledger.ensure_account("device-1")

    assert balances.account_id == "device-1"
    assert balances.pro.used == 1
