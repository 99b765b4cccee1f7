"""Service wiring and dependency injection for FastAPI endpoints"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from thought_gateway.config import Settings, settings as default_settings
from thought_gateway.domain.bank_manager import DailyBankManager
from thought_gateway.domain.classification import SubjectClassifier
from thought_gateway.domain.entitlements import EntitlementProcessor, product_grants_from
from thought_gateway.domain.fingerprint_cache import FingerprintCache
from thought_gateway.domain.models import CreditPool, WordRange
from thought_gateway.domain.prewarm import PrewarmScheduler
from thought_gateway.infrastructure.clients.classification import ClassificationClient
from thought_gateway.infrastructure.clients.generation import GenerationClient
from thought_gateway.infrastructure.database.repositories import BankStore, CreditLedger, EventDedupeStore
from thought_gateway.infrastructure.database.session import create_engine_for, create_session_factory


@dataclass
class Services:
    """Process-scoped state shared by request handlers"""

    bank_manager: DailyBankManager
    ledger: CreditLedger
    entitlements: EntitlementProcessor
    classifier: SubjectClassifier
    generation_client: GenerationClient
    classification_client: ClassificationClient
    prewarm: Optional[PrewarmScheduler] = None
    engine: Optional[AsyncEngine] = None


def build_services(
    config: Settings = default_settings,
    session_factory: Optional[async_sessionmaker] = None,
    generation_client=None,
    classification_client=None,
) -> Services:
    """Assemble components from settings; collaborators can be swapped for tests"""
    engine = None
    if session_factory is None:
        engine = create_engine_for(config.database_url)
        session_factory = create_session_factory(engine)

    free_range = WordRange(config.free_thought_min_words, config.free_thought_max_words)
    pro_range = WordRange(config.pro_thought_min_words, config.pro_thought_max_words)
    generation_client = generation_client or GenerationClient(batch_range=free_range, single_range=pro_range)
    classification_client = classification_client or ClassificationClient()

    bank_manager = DailyBankManager(
        store=BankStore(session_factory),
        generator=generation_client,
        word_range=free_range,
        capacity=config.bank_daily_size,
        batch_size=config.bank_batch_size,
        min_accept=config.bank_min_accept,
        max_batches=config.bank_max_batches,
        relax1=(config.relax1_delta_min_words, config.relax1_delta_max_words),
        relax2=(config.relax2_delta_min_words, config.relax2_delta_max_words),
    )
    ledger = CreditLedger(
        session_factory,
        default_seeds={CreditPool.PRO: config.default_pro_balance, CreditPool.CHAT: config.default_chat_balance},
    )
    entitlements = EntitlementProcessor(
        dedupe_store=EventDedupeStore(session_factory),
        ledger=ledger,
        product_grants=product_grants_from(config.pro_product_grants, config.chat_product_grants),
    )
    classifier = SubjectClassifier(
        classification_client,
        FingerprintCache(capacity=config.fingerprint_cache_capacity, default_ttl=config.fingerprint_cache_ttl_seconds),
    )
    prewarm = None
    if config.prewarm_enabled:
        prewarm = PrewarmScheduler(
            bank_manager,
            labels=config.prewarm_labels,
            interval_minutes=config.prewarm_interval_minutes,
            run_on_start=config.prewarm_on_start,
        )

    return Services(
        bank_manager=bank_manager,
        ledger=ledger,
        entitlements=entitlements,
        classifier=classifier,
        generation_client=generation_client,
        classification_client=classification_client,
        prewarm=prewarm,
        engine=engine,
    )


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_bank_manager(request: Request) -> DailyBankManager:
    return get_services(request).bank_manager


def get_ledger(request: Request) -> CreditLedger:
    return get_services(request).ledger


def get_entitlements(request: Request) -> EntitlementProcessor:
    return get_services(request).entitlements


def get_classifier(request: Request) -> SubjectClassifier:
    return get_services(request).classifier
