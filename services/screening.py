"""
Screening orchestration: download the selected CVs, extract their text and
submit one batched request to the scoring function.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

import config
from db import CV_SCREENINGS
from models.cv_model import CVRecord
from models.screening_model import CVText, ScreeningResult
from models.user_model import Session
from services.notifier import BestEffortNotifier
from services.presentation import contract_violations
from services.scoring_client import ScoringClient
from services.storage import BlobStorage, StorageError
from services.text_extractor import extract_text
from utils import iso_timestamp, utc_now

logger = logging.getLogger(__name__)


class ScreeningValidationError(Exception):
    pass


def unreadable_cv(file_name: str) -> str:
    return f"[Could not read CV: {file_name}]"


def _require_cvs(cvs: List[CVRecord]):
    if not cvs:
        raise ScreeningValidationError("Please select at least one CV to screen.")


async def finalize_selection(
    cvs: List[CVRecord],
    session: Session,
    storage: BlobStorage,
    notifier: BestEffortNotifier,
) -> Dict[str, Any]:
    _require_cvs(cvs)

    selected = []
    for cv in cvs:
        try:
            file_url = await storage.public_url(cv.file_path)
        except StorageError as e:
            logger.warning(f"No public URL for '{cv.file_path}': {e}")
            file_url = None
        selected.append({
            "id": cv.id,
            "fileName": cv.file_name,
            "filePath": cv.file_path,
            "fileSize": cv.file_size,
            "fileUrl": file_url,
            "uploadedAt": iso_timestamp(cv.uploaded_at),
        })

    payload = {
        "action": "start_screening",
        "userId": session.user_id,
        "userEmail": session.email,
        "selectedCVs": selected,
        "totalSelected": len(cvs),
        "timestamp": iso_timestamp(),
    }
    await notifier.send(config.SELECTION_WEBHOOK_URL, payload)
    return payload


async def _read_cv(storage: BlobStorage, cv: CVRecord, timeout: Optional[float]) -> CVText:
    try:
        data = await asyncio.wait_for(storage.get(cv.file_path), timeout=timeout)
    except (StorageError, asyncio.TimeoutError) as e:
        logger.error(f"Failed to download {cv.file_name}: {e!r}")
        return CVText(id=cv.id, name=cv.file_name, content=unreadable_cv(cv.file_name))
    return CVText(id=cv.id, name=cv.file_name, content=extract_text(data, cv.file_name))


async def collect_cv_texts(storage: BlobStorage, cvs: List[CVRecord], timeout: Optional[float] = None) -> List[CVText]:
    """Download and extract every CV concurrently; failures become placeholders."""
    return list(await asyncio.gather(*(_read_cv(storage, cv, timeout) for cv in cvs)))


async def screen_cvs(
    job_description: str,
    cvs: List[CVRecord],
    session: Session,
    storage: BlobStorage,
    scoring_client: ScoringClient,
    notifier: BestEffortNotifier,
) -> List[ScreeningResult]:
    if not job_description or not job_description.strip():
        raise ScreeningValidationError("Please enter a job description to screen CVs against.")
    _require_cvs(cvs)

    await notifier.send(config.SCREENING_WEBHOOK_URL, {
        "action": "run_ai_screening",
        "userId": session.user_id,
        "userEmail": session.email,
        "jobDescription": job_description,
        "selectedCVs": [
            {"id": cv.id, "fileName": cv.file_name, "filePath": cv.file_path}
            for cv in cvs
        ],
        "totalSelected": len(cvs),
        "timestamp": iso_timestamp(),
    })

    cv_texts = await collect_cv_texts(storage, cvs, config.CV_DOWNLOAD_TIMEOUT_SECONDS)
    results = await scoring_client.screen(job_description, cv_texts, token=session.token)

    violations = contract_violations(results)
    if violations:
        logger.warning(f"Scoring results disagree with the selection threshold for CV(s): {', '.join(violations)}")

    selected = sum(1 for r in results if r.status == "selected")
    logger.info(f"Screening complete: {selected} of {len(results)} candidates shortlisted")
    return results


async def persist_results(
    db: AsyncIOMotorDatabase,
    session: Session,
    results: List[ScreeningResult],
    job_role_id: Optional[str] = None,
) -> List[str]:
    if not results:
        return []

    screened_at = utc_now()
    docs = []
    for result in results:
        docs.append({
            "user_id": ObjectId(session.user_id),
            "cv_id": ObjectId(result.cv_id) if ObjectId.is_valid(result.cv_id) else result.cv_id,
            "job_role_id": ObjectId(job_role_id) if job_role_id else None,
            "ats_score": result.score,
            "status": result.status,
            "missing_keywords": result.missing_keywords,
            "matched_skills": result.matched_skills,
            "selection_reasons": result.selection_reasons,
            "rejection_reasons": result.rejection_reasons,
            "experience_match": result.experience_match,
            "screened_at": screened_at,
        })
    inserted = await db[CV_SCREENINGS].insert_many(docs)
    return [str(i) for i in inserted.inserted_ids]
