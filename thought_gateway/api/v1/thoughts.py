"""POST /v1/thought/free, /v1/thought/pro and /v1/chat - thought endpoints"""

import logging
import random
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from thought_gateway.api.dependencies import Services, get_bank_manager, get_request_id, get_services
from thought_gateway.api.v1.schemas import ChatRequest, ChatResponse, FreeThoughtRequest, ProThoughtRequest, ThoughtResponse
from thought_gateway.domain.bank_manager import DailyBankManager
from thought_gateway.domain.exceptions import InvalidAccountError, InvalidLabelError
from thought_gateway.domain.labels import is_valid_label, normalize_label
from thought_gateway.domain.models import CreditPool, PaidActionResult
from thought_gateway.domain.paid_actions import LIMIT_REACHED, run_paid_action
from thought_gateway.domain.word_filter import ensure_single_ending_emoji, strip_line_prefix

router = APIRouter()


def _clean_thought(raw: str) -> str | None:
    text = strip_line_prefix(raw)
    return ensure_single_ending_emoji(text) if text else None


def _require_label(label: str) -> str:
    clean = normalize_label(label)
    if not is_valid_label(clean):
        raise HTTPException(status_code=400, detail="Invalid label")
    return clean


def _raise_for_paid_failure(result: PaidActionResult, pool: CreditPool) -> None:
    if result.error == LIMIT_REACHED:
        raise HTTPException(
            status_code=402,
            detail={"error": f"{pool.value.upper()}_LIMIT_REACHED", "remaining": result.balance.remaining},
        )
    raise HTTPException(status_code=502, detail=f"{pool.value.upper()}_FAILED")


@router.post("/thought/free", response_model=ThoughtResponse)
async def free_thought(
    request_body: FreeThoughtRequest,
    request: Request,
    bank_manager: DailyBankManager = Depends(get_bank_manager),
):
    """
    Serve a random thought from the label's daily bank.

    Falls back to the most recent earlier bank while today's is being built;
    503 until any bank exists.
    """
    request_id = get_request_id(request)
    try:
        result = await bank_manager.ensure(request_body.label)
    except InvalidLabelError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Bank lookup failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Thought bank unavailable")

    if not result.lines:
        raise HTTPException(status_code=503, detail="NO_BANK_YET")

    return ThoughtResponse(
        thought=random.choice(result.lines),
        tier="free",
        source=result.source.value,
        bank_day=result.day,
    )


@router.post("/thought/pro", response_model=ThoughtResponse)
async def pro_thought(
    request_body: ProThoughtRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    """
    Paid, image-aware thought.

    Flow:
    1. Atomically spend one pro credit (402 with balance when out)
    2. Describe the scene and generate a single thought
    3. Refund the credit if generation fails
    """
    request_id = get_request_id(request)
    label = _require_label(request_body.label)
    tags: List[str] = []

    async def generate() -> str | None:
        tags.extend(await services.classification_client.describe_scene(request_body.image_data_url))
        raw = await services.generation_client.generate_single(label, f"Scene tags (your surroundings): {', '.join(tags)}")
        return _clean_thought(raw)

    try:
        result = await run_paid_action(services.ledger, request_body.device_id, generate, pool=CreditPool.PRO)
    except InvalidAccountError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Ledger error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Ledger unavailable")
    except Exception as e:
        logging.error(f"Paid action error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    if not result.ok:
        _raise_for_paid_failure(result, CreditPool.PRO)

    return ThoughtResponse(
        thought=result.output,
        tier="pro",
        source="generated",
        tags=tags,
        remaining_pro=result.balance.remaining,
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request_body: ChatRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    """Paid in-character reply metered against the chat pool"""
    request_id = get_request_id(request)
    label = _require_label(request_body.label)

    async def reply() -> str | None:
        raw = await services.generation_client.generate_single(label, f"Someone says to you: {request_body.message}")
        return _clean_thought(raw)

    try:
        result = await run_paid_action(services.ledger, request_body.device_id, reply, pool=CreditPool.CHAT)
    except InvalidAccountError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Ledger error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Ledger unavailable")
    except Exception as e:
        logging.error(f"Paid action error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    if not result.ok:
        _raise_for_paid_failure(result, CreditPool.CHAT)

    return ChatResponse(reply=result.output, remaining_chat=result.balance.remaining)
