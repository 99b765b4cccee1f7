"""Entitlement webhook processing: dedupe first, then grant"""

import logging
from typing import Dict, Tuple

from thought_gateway.domain.models import CreditPool, EntitlementEvent, EntitlementOutcome, EntitlementResult
from thought_gateway.infrastructure.database.repositories import require_account_id
from thought_gateway.infrastructure.observability.metrics import entitlement_event_counter

logger = logging.getLogger(__name__)


def product_grants_from(pro: Dict[str, int], chat: Dict[str, int]) -> Dict[str, Tuple[CreditPool, int]]:
    """Product id -> (pool, credits) lookup built from the configured product tables"""
    grants = {product: (CreditPool.PRO, int(amount)) for product, amount in (pro or {}).items()}
    grants.update({product: (CreditPool.CHAT, int(amount)) for product, amount in (chat or {}).items()})
    return grants


class EntitlementProcessor:
    """
    Grants credits for store notifications exactly once per event id.

    The event is recorded before the grant is issued so redelivery during
    or after the grant is always seen as a duplicate. Storage errors from
    the dedupe check propagate and nothing is granted.
    """

    def __init__(self, dedupe_store, ledger, product_grants: Dict[str, Tuple[CreditPool, int]]):
        self.dedupe_store = dedupe_store
        self.ledger = ledger
        self.product_grants = product_grants

    async def handle(self, event: EntitlementEvent) -> EntitlementResult:
        grant = self.product_grants.get(event.product_id)
        if grant is None:
            entitlement_event_counter.labels(outcome=EntitlementOutcome.IGNORED.value).inc()
            logger.warning(
                f"Ignoring event for unknown product '{event.product_id}'",
                extra={"event_id": event.event_id, "product_id": event.product_id},
            )
            return EntitlementResult(outcome=EntitlementOutcome.IGNORED)

        subject_id = require_account_id(event.subject_id)
        recorded = await self.dedupe_store.check_and_record(event.event_id, subject_id, event.product_id)
        if not recorded.is_new:
            entitlement_event_counter.labels(outcome=EntitlementOutcome.DUPLICATE.value).inc()
            return EntitlementResult(outcome=EntitlementOutcome.DUPLICATE)

        pool, amount = grant
        balance = await self.ledger.grant(subject_id, amount, pool)
        entitlement_event_counter.labels(outcome=EntitlementOutcome.GRANTED.value).inc()
        logger.info(
            "Entitlement granted",
            extra={"event_id": event.event_id, "subject_id": subject_id, "pool": pool.value, "amount": amount},
        )
        return EntitlementResult(outcome=EntitlementOutcome.GRANTED, pool=pool, balance=balance)
