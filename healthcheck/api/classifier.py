"""Stateless symptom classifier endpoint.

Same contract the web client's analysis function exposes: symptoms in,
camelCase verdict out. Unusable model output degrades to the generic
fallback verdict; gateway failures are reported as ``{"error": ...}``.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from typing import Any, Dict
from healthcheck.agents.symptom_classifier import (
    ClassifierError,
    LLMSymptomClassifier,
    VerdictParseError,
    get_symptom_classifier,
)
from healthcheck.api.dependencies import get_current_user
from healthcheck.models.messages import AnalyzeSymptomsRequest
from healthcheck.models.verdict import fallback_verdict
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Classifier"])


@router.post("/analyze-symptoms")
async def analyze_symptoms(
    request: AnalyzeSymptomsRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    classifier: LLMSymptomClassifier = Depends(get_symptom_classifier),
):
    """
    Classify symptoms, optionally with answered follow-up questions.

    Returns the verdict JSON, or ``{"error": ...}`` with 429 (rate limited),
    402 (gateway credits exhausted), 503 (gateway not configured) or 502.
    """
    symptoms = [s.strip() for s in request.symptoms if s and s.strip()]
    if not symptoms and not (request.narrative or "").strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide at least one symptom or a description",
        )

    try:
        verdict = await classifier.classify(
            symptoms, request.narrative, request.follow_up_responses
        )
    except VerdictParseError as e:
        logger.warning(f"Returning fallback verdict for user {current_user['user_id']}: {e}")
        verdict = fallback_verdict()
    except ClassifierError as e:
        logger.error(f"Classifier endpoint failed ({e.status_code}): {e.message}")
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    return verdict.to_wire()
