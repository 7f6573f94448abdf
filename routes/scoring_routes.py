import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from dependencies import get_function_scorer
from models.screening_model import ScreenCVsRequest
from services.scoring import ScoringError
from services.scoring_client import LocalScoringClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", tags=["Scoring Function"])


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/screen-cvs")
async def screen_cvs_function(request: Request, scorer: LocalScoringClient = Depends(get_function_scorer)):
    """
    Scores CVs against a job description.

    Body: ``{"jobDescription": str, "cvTexts": [{"id", "name", "content"}]}``.
    Answers ``{"results": [...]}`` or ``{"error": str}`` with status 400, 402,
    429 or 500.
    """
    try:
        payload = ScreenCVsRequest.model_validate(await request.json())
    except (ValueError, ValidationError):
        return error_response(400, "Job description and CV texts are required")

    try:
        results = await scorer.screen(payload.job_description, payload.cv_texts)
    except ScoringError as e:
        if e.status_code >= 500:
            logger.error(f"Screen CVs error: {e.message}")
        return error_response(e.status_code, e.message)
    except Exception as e:
        logger.exception("Screen CVs error")
        return error_response(500, str(e) or "Unknown error")

    return {"results": [r.to_wire() for r in results]}
