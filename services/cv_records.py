import logging
from typing import Any, Dict, List

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase

from db import CVS, CV_SCREENINGS, JOB_ROLES, ORPHANED_BLOBS
from models.cv_model import CVRecord
from services.storage import BlobNotFoundError, BlobStorage, StorageError
from utils import utc_now

logger = logging.getLogger(__name__)


class CVNotFoundError(Exception):
    def __init__(self, cv_ids: List[str]):
        super().__init__(f"CV(s) not found: {', '.join(cv_ids)}")
        self.cv_ids = cv_ids


def to_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise CVNotFoundError([str(value)])


async def list_cvs(db: AsyncIOMotorDatabase, user_id: str) -> List[CVRecord]:
    cvs = []
    cursor = db[CVS].find({"user_id": ObjectId(user_id)}).sort("uploaded_at", -1)
    async for doc in cursor:
        cvs.append(CVRecord.from_doc(doc))
    return cvs


async def get_cvs_by_ids(db: AsyncIOMotorDatabase, user_id: str, cv_ids: List[str]) -> List[CVRecord]:
    """The caller's CVs for ``cv_ids``, in request order; unknown ids raise CVNotFoundError."""
    unique_ids = list(dict.fromkeys(cv_ids))
    invalid = []
    object_ids = []
    for cv_id in unique_ids:
        try:
            object_ids.append(ObjectId(cv_id))
        except (InvalidId, TypeError):
            invalid.append(cv_id)
    if invalid:
        raise CVNotFoundError(invalid)

    found = {}
    cursor = db[CVS].find({"_id": {"$in": object_ids}, "user_id": ObjectId(user_id)})
    async for doc in cursor:
        found[str(doc["_id"])] = CVRecord.from_doc(doc)

    missing = [cv_id for cv_id in unique_ids if cv_id not in found]
    if missing:
        raise CVNotFoundError(missing)
    return [found[cv_id] for cv_id in unique_ids]


async def log_orphaned_blob(db: AsyncIOMotorDatabase, key: str, reason: str) -> None:
    try:
        await db[ORPHANED_BLOBS].update_one(
            {"file_path": key},
            {"$set": {"reason": reason, "logged_at": utc_now()}, "$setOnInsert": {"attempts": 0}},
            upsert=True,
        )
        logger.warning(f"Orphaned blob '{key}' recorded for cleanup: {reason}")
    except Exception as e:
        logger.error(f"Could not record orphaned blob '{key}' ({reason}): {e}")


async def delete_cv(db: AsyncIOMotorDatabase, storage: BlobStorage, user_id: str, cv_id: str) -> CVRecord:
    doc = await db[CVS].find_one({"_id": to_object_id(cv_id), "user_id": ObjectId(user_id)})
    if not doc:
        raise CVNotFoundError([cv_id])
    result = await db[CVS].delete_one({"_id": doc["_id"]})
    if result.deleted_count == 0:
        raise CVNotFoundError([cv_id])
    cv = CVRecord.from_doc(doc)

    try:
        await storage.delete(cv.file_path)
    except BlobNotFoundError:
        logger.info(f"Blob '{cv.file_path}' was already gone")
    except StorageError as e:
        await log_orphaned_blob(db, cv.file_path, f"delete failed: {e}")
    return cv


async def cv_history(db: AsyncIOMotorDatabase, user_id: str) -> List[Dict[str, Any]]:
    cvs = await list_cvs(db, user_id)

    role_titles = {}
    async for role in db[JOB_ROLES].find({"user_id": ObjectId(user_id)}, {"title": 1}):
        role_titles[role["_id"]] = role["title"]

    screenings: Dict[str, List[Dict[str, Any]]] = {}
    cursor = db[CV_SCREENINGS].find({"user_id": ObjectId(user_id)}).sort("screened_at", -1)
    async for doc in cursor:
        role_id = doc.get("job_role_id")
        screenings.setdefault(str(doc.get("cv_id")), []).append({
            "id": str(doc["_id"]),
            "atsScore": doc.get("ats_score"),
            "status": doc["status"],
            "screenedAt": doc["screened_at"],
            "jobRole": {"title": role_titles[role_id]} if role_id in role_titles else None,
        })

    history = []
    for cv in cvs:
        entry = cv.model_dump(by_alias=True)
        entry["screenings"] = screenings.get(cv.id, [])
        history.append(entry)
    return history


async def retry_orphan_cleanup(db: AsyncIOMotorDatabase, storage: BlobStorage) -> Dict[str, int]:
    cleaned = 0
    remaining = 0
    async for entry in db[ORPHANED_BLOBS].find({}):
        key = entry["file_path"]
        try:
            await storage.delete(key)
        except BlobNotFoundError:
            pass
        except StorageError as e:
            logger.warning(f"Cleanup of orphaned blob '{key}' failed again: {e}")
            await db[ORPHANED_BLOBS].update_one(
                {"_id": entry["_id"]},
                {"$inc": {"attempts": 1}, "$set": {"reason": f"delete failed: {e}"}},
            )
            remaining += 1
            continue
        await db[ORPHANED_BLOBS].delete_one({"_id": entry["_id"]})
        cleaned += 1

    logger.info(f"Orphan cleanup finished: {cleaned} cleaned, {remaining} remaining")
    return {"cleaned": cleaned, "remaining": remaining}
