"""POST /v1/classify - Detect the photo's subject label"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from thought_gateway.api.dependencies import get_classifier, get_request_id
from thought_gateway.api.v1.schemas import ClassifyRequest, ClassifyResponse
from thought_gateway.domain.classification import SubjectClassifier
from thought_gateway.domain.exceptions import ClassificationServiceError

router = APIRouter()


@router.post("/classify", response_model=ClassifyResponse)
async def classify(
    request_body: ClassifyRequest,
    request: Request,
    classifier: SubjectClassifier = Depends(get_classifier),
):
    """
    Classify the main subject of an image.

    Identical images within the cache TTL reuse the earlier answer.
    """
    try:
        result = await classifier.classify(request_body.image_data_url)
    except ClassificationServiceError as e:
        logging.error(f"Classification error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=502, detail="Classification service unavailable")

    return ClassifyResponse(ok=result.ok, label=result.label, reason=result.reason)
