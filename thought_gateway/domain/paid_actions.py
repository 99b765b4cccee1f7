"""Metered actions: spend first, act, refund best-effort on failure"""

import logging
from typing import Awaitable, Callable, Optional

from thought_gateway.domain.exceptions import DomainException
from thought_gateway.domain.models import CreditPool, PaidActionResult, PoolBalance
from thought_gateway.infrastructure.observability.metrics import credit_refund_failure_counter, record_spend

logger = logging.getLogger(__name__)

LIMIT_REACHED = "LIMIT_REACHED"
ACTION_FAILED = "ACTION_FAILED"


async def refund(ledger, account_id: str, amount: int, pool: CreditPool) -> Optional[PoolBalance]:
    """
    Compensating grant after a failed paid action.

    Failure is logged and counted, never retried: the ledger may drift in
    the user's favour rather than risk a double charge.
    """
    try:
        return await ledger.grant(account_id, amount, pool)
    except Exception as e:
        credit_refund_failure_counter.inc()
        logger.error(
            f"Refund failed: {e}",
            extra={"account_id": account_id, "pool": pool.value, "amount": amount},
        )
        return None


async def run_paid_action(
    ledger,
    account_id: str,
    action: Callable[[], Awaitable[Optional[str]]],
    pool: CreditPool = CreditPool.PRO,
    cost: int = 1,
) -> PaidActionResult:
    """
    Run `action` only after an atomic spend succeeds.

    Limit reached is a normal result carrying current balances. An empty
    output or a domain failure refunds the spend and reports ACTION_FAILED;
    unexpected exceptions refund and propagate.
    """
    spend = await ledger.spend(account_id, cost, pool)
    record_spend(pool.value, spend.ok)
    if not spend.ok:
        return PaidActionResult(ok=False, balance=spend.balance, error=LIMIT_REACHED)

    try:
        output = await action()
    except DomainException as e:
        logger.warning(f"Paid action failed: {e}", extra={"account_id": account_id, "pool": pool.value})
        output = None
    except Exception:
        await refund(ledger, account_id, cost, pool)
        raise

    if not output or not isinstance(output, str):
        refunded = await refund(ledger, account_id, cost, pool)
        return PaidActionResult(ok=False, balance=refunded or spend.balance, error=ACTION_FAILED)

    return PaidActionResult(ok=True, balance=spend.balance, output=output)
