import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

import config
from models.screening_model import CVText, ScreenCVsRequest, ScreenCVsResponse, ScreeningResult
from services.scoring import ScoringError, score_cvs

logger = logging.getLogger(__name__)


class ScoringClient:
    async def screen(self, job_description: str, cv_texts: List[CVText], token: Optional[str] = None) -> List[ScreeningResult]:
        raise NotImplementedError


class LocalScoringClient(ScoringClient):
    """Runs the scoring function in-process."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client

    async def screen(self, job_description, cv_texts, token=None):
        return await score_cvs(job_description, cv_texts, client=self.client)


class HttpScoringClient(ScoringClient):
    """Calls a deployed scoring function over its JSON contract."""

    def __init__(self, url: str, timeout: float = config.AI_TIMEOUT_SECONDS, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def screen(self, job_description, cv_texts, token=None):
        body = ScreenCVsRequest(job_description=job_description, cv_texts=cv_texts).to_wire()
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Scoring function unreachable: {e}")
            raise ScoringError(500, f"Scoring function unreachable: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and payload.get("error"):
            status_code = response.status_code if not response.is_success else 500
            raise ScoringError(status_code, str(payload["error"]))
        if not response.is_success:
            raise ScoringError(response.status_code, f"Scoring function error: {response.status_code}")

        try:
            return ScreenCVsResponse.model_validate(payload).results
        except ValidationError as e:
            logger.error(f"Invalid response from scoring function: {e}")
            raise ScoringError(502, "Invalid response from scoring function") from e


def default_scoring_client() -> ScoringClient:
    if config.SCORING_FUNCTION_URL:
        return HttpScoringClient(config.SCORING_FUNCTION_URL)
    return LocalScoringClient()
