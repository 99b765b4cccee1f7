"""Pydantic schemas for API request/response validation"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from thought_gateway.domain.models import CreditPool


class DeviceRequest(BaseModel):
    """Request body identifying the calling device"""

    device_id: str = Field(..., min_length=3, description="Device/account identifier")


class StatusResponse(BaseModel):
    """Response for POST /v1/status"""

    device_id: str
    remaining_pro: int
    pro_tokens: int
    pro_used: int
    remaining_chat: int
    chat_tokens: int
    chat_used: int
    source: str = "ledger"


class ClassifyRequest(BaseModel):
    """Request body for POST /v1/classify"""

    image_data_url: str = Field(..., min_length=1, description="Image as a data URL")


class ClassifyResponse(BaseModel):
    ok: bool
    label: Optional[str] = None
    reason: Optional[str] = None


class FreeThoughtRequest(BaseModel):
    """Request body for POST /v1/thought/free"""

    label: str = Field(..., min_length=1, description="Subject label")


class ProThoughtRequest(DeviceRequest):
    """Request body for POST /v1/thought/pro"""

    label: str = Field(..., min_length=1)
    image_data_url: str = Field(..., min_length=1)


class ThoughtResponse(BaseModel):
    """Response for the thought endpoints"""

    thought: str
    tier: str
    source: str
    bank_day: Optional[date] = None
    tags: List[str] = []
    remaining_pro: Optional[int] = None


class ChatRequest(DeviceRequest):
    """Request body for POST /v1/chat"""

    label: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=500)


class ChatResponse(BaseModel):
    reply: str
    remaining_chat: int


class DevCreditsRequest(DeviceRequest):
    """Request body for POST /v1/dev/credits"""

    amount: int = Field(..., gt=0)
    pool: CreditPool = CreditPool.PRO


class PoolBalanceResponse(BaseModel):
    device_id: str
    pool: CreditPool
    granted: int
    used: int
    remaining: int


class EntitlementWebhookRequest(BaseModel):
    """Store notification payload"""

    event_id: str = Field(..., min_length=1)
    subject_id: str = Field(..., min_length=1, description="Device/account the purchase belongs to")
    product_id: str = Field(..., min_length=1)


class EntitlementWebhookResponse(BaseModel):
    outcome: str
    pool: Optional[CreditPool] = None
    remaining: Optional[int] = None
