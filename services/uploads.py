import logging
import time
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

import config
from db import CVS
from models.cv_model import ALLOWED_CONTENT_TYPES, MAX_FILE_SIZE, CVRecord, IncomingFile, UploadOutcome, UploadReport
from models.user_model import Session
from services.cv_records import log_orphaned_blob
from services.notifier import BestEffortNotifier
from services.storage import BlobNotFoundError, BlobStorage, StorageError
from utils import iso_timestamp, utc_now

logger = logging.getLogger(__name__)


def build_storage_key(owner_id: str, file_name: str, timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{owner_id}/{timestamp_ms}-{file_name}"


def validate_file(file: IncomingFile) -> Optional[str]:
    """Reason the file can't be accepted, or None."""
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        return "invalid_type"
    if len(file.data) > MAX_FILE_SIZE:
        return "too_large"
    return None


async def _store_one(
    db: AsyncIOMotorDatabase,
    storage: BlobStorage,
    notifier: BestEffortNotifier,
    session: Session,
    file: IncomingFile,
) -> UploadOutcome:
    key = build_storage_key(session.user_id, file.file_name)

    try:
        file_url = await storage.put(key, file.data, file.content_type)
    except StorageError as e:
        logger.error(f"Upload of '{file.file_name}' failed: {e}")
        return UploadOutcome(file_name=file.file_name, status="failed", reason="storage_error")

    doc = {
        "user_id": ObjectId(session.user_id),
        "file_name": file.file_name,
        "file_path": key,
        "file_size": len(file.data),
        "content_type": file.content_type,
        "uploaded_at": utc_now(),
    }
    try:
        result = await db[CVS].insert_one(doc)
    except Exception as e:
        logger.error(f"Saving metadata for '{file.file_name}' failed, removing blob '{key}': {e}")
        try:
            await storage.delete(key)
        except BlobNotFoundError:
            pass
        except StorageError as cleanup_error:
            await log_orphaned_blob(db, key, f"compensating delete failed: {cleanup_error}")
        return UploadOutcome(file_name=file.file_name, status="failed", reason="metadata_error")

    doc["_id"] = result.inserted_id
    cv = CVRecord.from_doc(doc)

    await notifier.send(config.UPLOAD_WEBHOOK_URL, {
        "fileName": cv.file_name,
        "filePath": cv.file_path,
        "fileSize": cv.file_size,
        "fileUrl": file_url,
        "userId": session.user_id,
        "userEmail": session.email,
        "uploadedAt": iso_timestamp(cv.uploaded_at),
    })

    logger.info(f"CV '{cv.file_name}' uploaded as '{cv.file_path}'")
    return UploadOutcome(file_name=file.file_name, status="uploaded", cv=cv)


async def collect_uploads(
    db: AsyncIOMotorDatabase,
    storage: BlobStorage,
    notifier: BestEffortNotifier,
    session: Session,
    files: List[IncomingFile],
) -> UploadReport:
    results = []
    for file in files:
        reason = validate_file(file)
        if reason:
            logger.warning(f"Rejected '{file.file_name}' ({file.content_type}, {len(file.data)} bytes): {reason}")
            results.append(UploadOutcome(file_name=file.file_name, status="rejected", reason=reason))
            continue
        results.append(await _store_one(db, storage, notifier, session, file))

    uploaded_count = sum(1 for r in results if r.status == "uploaded")
    logger.info(f"{uploaded_count} of {len(files)} CV(s) uploaded for user {session.user_id}")
    return UploadReport(uploaded_count=uploaded_count, results=results)
