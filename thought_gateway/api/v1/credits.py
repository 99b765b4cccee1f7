"""POST /v1/status and /v1/dev/credits - credit balances"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError

from thought_gateway.api.dependencies import get_ledger, get_request_id
from thought_gateway.api.v1.schemas import DevCreditsRequest, DeviceRequest, PoolBalanceResponse, StatusResponse
from thought_gateway.domain.exceptions import InvalidAccountError, InvalidAmountError
from thought_gateway.infrastructure.database.repositories import CreditLedger

router = APIRouter()


@router.post("/status", response_model=StatusResponse)
async def get_status(
    request_body: DeviceRequest,
    request: Request,
    ledger: CreditLedger = Depends(get_ledger),
):
    """
    Current balances for both pools, creating the account on first contact.

    When the ledger is unreachable the balance is reported as zero
    (source="unavailable") rather than failing the app's status check.
    """
    try:
        balances = await ledger.ensure_account(request_body.device_id)
    except InvalidAccountError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Ledger status error: {e}", extra={"request_id": get_request_id(request)})
        return StatusResponse(
            device_id=request_body.device_id,
            remaining_pro=0,
            pro_tokens=0,
            pro_used=0,
            remaining_chat=0,
            chat_tokens=0,
            chat_used=0,
            source="unavailable",
        )

    return StatusResponse(
        device_id=balances.account_id,
        remaining_pro=balances.pro.remaining,
        pro_tokens=balances.pro.granted,
        pro_used=balances.pro.used,
        remaining_chat=balances.chat.remaining,
        chat_tokens=balances.chat.granted,
        chat_used=balances.chat.used,
    )


@router.post("/dev/credits", response_model=PoolBalanceResponse)
async def add_credits(
    request_body: DevCreditsRequest,
    request: Request,
    ledger: CreditLedger = Depends(get_ledger),
):
    """Development purchase simulator: grant credits to a pool"""
    try:
        balance = await ledger.grant(request_body.device_id, request_body.amount, request_body.pool)
    except (InvalidAccountError, InvalidAmountError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Ledger grant error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Ledger unavailable")

    return PoolBalanceResponse(
        device_id=request_body.device_id.strip(),
        pool=request_body.pool,
        granted=balance.granted,
        used=balance.used,
        remaining=balance.remaining,
    )
