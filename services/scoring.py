"""
ATS scoring against a hosted chat-completion model.

The selection threshold (score >= 60) is only instructed in the prompt.
Nothing here re-derives ``status`` from ``score``; callers that care should
check ``ScreeningResult.honours_threshold``.
"""

import json
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

import config
from models.screening_model import CVText, ScreeningResult, ScreeningResultList

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert HR recruiter and ATS (Applicant Tracking System) analyzer. Your job is to:
1. Analyze CVs against a job description
2. Calculate an ATS compatibility score (0-100)
3. Identify missing keywords
4. Provide clear selection/rejection reasons

For each CV, you must return:
- score: number between 0-100
- status: "selected" (score >= 60) or "rejected" (score < 60)
- missingKeywords: array of important keywords from job description missing in CV
- selectionReasons: array of bullet points explaining why candidate is a good fit (if selected)
- rejectionReasons: array of bullet points explaining why candidate doesn't fit (if rejected)
- matchedSkills: array of skills that match the job requirements
- experienceMatch: brief assessment of experience relevance

Be objective and thorough in your analysis."""

RESULT_SHAPE = """{
  "cvId": "the CV id",
  "cvName": "the CV filename",
  "score": number,
  "status": "selected" | "rejected",
  "missingKeywords": ["keyword1", "keyword2"],
  "matchedSkills": ["skill1", "skill2"],
  "selectionReasons": ["reason1", "reason2"],
  "rejectionReasons": ["reason1", "reason2"],
  "experienceMatch": "brief assessment"
}"""

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
CREDITS_EXHAUSTED_MESSAGE = "AI credits exhausted. Please add credits to continue."
PARSE_FAILURE_MESSAGE = "Failed to parse AI response"


class ScoringError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def build_user_prompt(job_description: str, cv_texts: List[CVText]) -> str:
    cv_blocks = "\n".join(
        f"\n--- CV {index} (ID: {cv.id}, Name: {cv.name}) ---\n{cv.content}"
        for index, cv in enumerate(cv_texts, 1)
    )
    return (
        "Analyze these CVs against the following job description and provide ATS scores with detailed feedback.\n\n"
        f"JOB DESCRIPTION:\n{job_description}\n\n"
        f"CVS TO ANALYZE:\n{cv_blocks}\n\n"
        f"Return a JSON array with the analysis for each CV. Each object should have:\n{RESULT_SHAPE}\n\n"
        "Return ONLY the JSON array, no other text."
    )


def strip_code_fence(content: str) -> str:
    cleaned = content.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_model_reply(content: str) -> List[ScreeningResult]:
    """Decode the model's JSON array; any malformed entry fails the whole reply."""
    try:
        return ScreeningResultList.validate_python(json.loads(strip_code_fence(content)))
    except (ValueError, ValidationError) as e:
        logger.error(f"Failed to parse AI response: {e}\n{content[:500]}")
        raise ScoringError(500, PARSE_FAILURE_MESSAGE) from e


async def score_cvs(
    job_description: str,
    cv_texts: List[CVText],
    client: Optional[httpx.AsyncClient] = None,
) -> List[ScreeningResult]:
    if not job_description or not job_description.strip() or not cv_texts:
        raise ScoringError(400, "Job description and CV texts are required")

    if not config.AI_GATEWAY_API_KEY:
        raise ScoringError(500, "AI_GATEWAY_API_KEY is not configured")

    body = {
        "model": config.AI_MODEL,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(job_description, cv_texts)},
        ],
    }
    headers = {
        "Authorization": f"Bearer {config.AI_GATEWAY_API_KEY}",
        "Content-Type": "application/json",
    }

    logger.info(f"🤖 Scoring {len(cv_texts)} CV(s) with {config.AI_MODEL}")
    try:
        if client is not None:
            response = await client.post(config.AI_GATEWAY_URL, json=body, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=config.AI_TIMEOUT_SECONDS) as own_client:
                response = await own_client.post(config.AI_GATEWAY_URL, json=body, headers=headers)
    except httpx.HTTPError as e:
        logger.error(f"AI gateway request failed: {e}")
        raise ScoringError(500, f"AI gateway request failed: {e}") from e

    if response.status_code == 429:
        raise ScoringError(429, RATE_LIMIT_MESSAGE)
    if response.status_code == 402:
        raise ScoringError(402, CREDITS_EXHAUSTED_MESSAGE)
    if not response.is_success:
        logger.error(f"AI gateway error: {response.status_code} {response.text}")
        raise ScoringError(500, f"AI gateway error: {response.status_code}")

    try:
        content = response.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError):
        content = None
    if not content:
        raise ScoringError(500, "No response from AI")

    results = parse_model_reply(content)
    logger.info(f"✅ AI returned {len(results)} result(s)")
    return results
