import logging

from fastapi import APIRouter, HTTPException, Depends, Path
from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId
from bson.errors import InvalidId

from db import CV_SCREENINGS, JOB_ROLES, get_database
from dependencies import get_session, get_storage, get_notifier, get_scoring_client
from models.screening_model import ScreeningRunInput, SelectionInput
from models.user_model import Session
from services.cv_records import CVNotFoundError, get_cvs_by_ids
from services.notifier import BestEffortNotifier
from services.presentation import summarize
from services.scoring import ScoringError
from services.scoring_client import ScoringClient
from services.screening import ScreeningValidationError, finalize_selection, persist_results, screen_cvs
from services.storage import BlobStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/screening", tags=["Screening"])


async def _load_selection(db, session: Session, cv_ids):
    if not cv_ids:
        raise HTTPException(status_code=400, detail="Please select at least one CV to screen.")
    try:
        return await get_cvs_by_ids(db, session.user_id, cv_ids)
    except CVNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ✅ CV selection finalized, screening about to start
@router.post("/selection")
async def select_cvs(
    selection: SelectionInput,
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
    storage: BlobStorage = Depends(get_storage),
    notifier: BestEffortNotifier = Depends(get_notifier),
):
    cvs = await _load_selection(db, session, selection.cv_ids)
    try:
        payload = await finalize_selection(cvs, session, storage, notifier)
    except ScreeningValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"message": f"{payload['totalSelected']} CV(s) selected for screening.", "totalSelected": payload["totalSelected"]}


# ✅ Run AI screening against a job description
@router.post("/run")
async def run_screening(
    run: ScreeningRunInput,
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
    storage: BlobStorage = Depends(get_storage),
    notifier: BestEffortNotifier = Depends(get_notifier),
    scoring_client: ScoringClient = Depends(get_scoring_client),
):
    if not run.job_description.strip():
        raise HTTPException(status_code=400, detail="Please enter a job description to screen CVs against.")
    cvs = await _load_selection(db, session, run.cv_ids)

    if run.job_role_id:
        try:
            role = await db[JOB_ROLES].find_one({"_id": ObjectId(run.job_role_id), "user_id": ObjectId(session.user_id)})
        except InvalidId:
            role = None
        if not role:
            raise HTTPException(status_code=404, detail="Job role not found")

    try:
        results = await screen_cvs(run.job_description, cvs, session, storage, scoring_client, notifier)
    except ScreeningValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ScoringError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    try:
        screening_ids = await persist_results(db, session, results, run.job_role_id)
        persisted = True
    except Exception as e:
        logger.error(f"Failed to store screening results: {e}")
        screening_ids = []
        persisted = False

    return {
        "results": [r.to_wire() for r in results],
        "summary": summarize(results),
        "persisted": persisted,
        "screeningIds": screening_ids,
    }


@router.get("/results/{cv_id}")
async def get_screenings_for_cv(
    cv_id: str = Path(..., description="CV ID to fetch screenings for"),
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    try:
        cursor = db[CV_SCREENINGS].find({
            "cv_id": ObjectId(cv_id),
            "user_id": ObjectId(session.user_id)
        }).sort("screened_at", -1)
    except InvalidId:
        raise HTTPException(status_code=400, detail=f"Invalid cv_id format. Got cv_id='{cv_id}'.")

    results = []
    async for doc in cursor:
        results.append({
            "id": str(doc["_id"]),
            "jobRoleId": str(doc["job_role_id"]) if doc.get("job_role_id") else None,
            "atsScore": doc.get("ats_score"),
            "status": doc["status"],
            "missingKeywords": doc.get("missing_keywords", []),
            "matchedSkills": doc.get("matched_skills", []),
            "selectionReasons": doc.get("selection_reasons", []),
            "rejectionReasons": doc.get("rejection_reasons", []),
            "experienceMatch": doc.get("experience_match"),
            "screenedAt": doc["screened_at"],
        })

    return {"results": results}


@router.get("/count/{cv_id}")
async def get_screening_count(
    cv_id: str = Path(..., description="CV ID to count screenings for"),
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    try:
        query = {
            "cv_id": ObjectId(cv_id),
            "user_id": ObjectId(session.user_id)
        }
    except InvalidId:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid cv_id format. Got cv_id='{cv_id}'."
        )
    count = await db[CV_SCREENINGS].count_documents(query)
    return {"count": count}
