import logging
from typing import List, Dict, Any
from urllib.parse import quote

from fastapi import APIRouter, UploadFile, File, HTTPException, Depends, Path
from fastapi.responses import Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from db import get_database
from dependencies import get_session, get_storage, get_notifier
from models.cv_model import ALLOWED_CONTENT_TYPES, MAX_FILE_SIZE, IncomingFile
from models.user_model import Session
from services.cv_records import CVNotFoundError, list_cvs, get_cvs_by_ids, delete_cv, cv_history, retry_orphan_cleanup
from services.notifier import BestEffortNotifier
from services.storage import BlobStorage, BlobNotFoundError, StorageError
from services.uploads import collect_uploads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cvs", tags=["CVs"])


def content_disposition(file_name: str) -> str:
    quoted = quote(file_name)
    if quoted != file_name:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{file_name}"'


# ✅ Upload one or more CVs
@router.post("/upload")
async def upload_cvs(
    files: List[UploadFile] = File(...),
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
    storage: BlobStorage = Depends(get_storage),
    notifier: BestEffortNotifier = Depends(get_notifier),
) -> Dict[str, Any]:
    """
    Uploads CVs to blob storage and records their metadata.

    Every file is validated and stored on its own: a rejected or failed file
    is reported in ``results`` and does not stop the rest of the batch.
    """
    if not files:
        raise HTTPException(status_code=400, detail="No files provided for upload.")

    logger.info(f"Upload request for {len(files)} file(s) from user: {session.user_id}")

    incoming = []
    for file in files:
        # Rejected types stay unread, the rest are read one byte past the limit.
        data = b""
        if file.content_type in ALLOWED_CONTENT_TYPES:
            data = await file.read(MAX_FILE_SIZE + 1)
        incoming.append(IncomingFile(
            file_name=file.filename or "unnamed",
            content_type=file.content_type,
            data=data,
        ))

    report = await collect_uploads(db, storage, notifier, session, incoming)
    return {
        "message": f"{report.uploaded_count} CV(s) uploaded successfully.",
        **report.model_dump(by_alias=True, mode="json"),
    }


# ✅ List CVs (most recent first)
@router.get("/")
async def get_cvs(
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    cvs = await list_cvs(db, session.user_id)
    return {"cvs": [cv.model_dump(by_alias=True, mode="json") for cv in cvs]}


# ✅ CVs with their persisted screenings
@router.get("/history")
async def get_cv_history(
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return {"history": await cv_history(db, session.user_id)}


@router.get("/{cv_id}/download")
async def download_cv(
    cv_id: str = Path(..., description="CV ID to download"),
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
    storage: BlobStorage = Depends(get_storage),
):
    try:
        cv = (await get_cvs_by_ids(db, session.user_id, [cv_id]))[0]
        data = await storage.get(cv.file_path)
    except (CVNotFoundError, BlobNotFoundError):
        raise HTTPException(status_code=404, detail="CV not found")
    except StorageError as e:
        raise HTTPException(status_code=500, detail=f"Failed to download the CV: {e}")

    return Response(
        content=data,
        media_type=cv.content_type or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(cv.file_name)},
    )


@router.delete("/{cv_id}")
async def remove_cv(
    cv_id: str = Path(..., description="CV ID to delete"),
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
    storage: BlobStorage = Depends(get_storage),
):
    logger.info(f"Delete request for CV '{cv_id}' from user: {session.user_id}")
    try:
        await delete_cv(db, storage, session.user_id, cv_id)
    except CVNotFoundError:
        raise HTTPException(status_code=404, detail="CV not found")
    return {"message": "The CV has been removed from your account."}


# ✅ Retry deletes recorded in the orphaned blob log
@router.post("/cleanup")
async def cleanup_orphans(
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
    storage: BlobStorage = Depends(get_storage),
):
    return await retry_orphan_cleanup(db, storage)
