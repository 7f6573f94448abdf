from fastapi import APIRouter, HTTPException, Depends, Path
from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId
from bson.errors import InvalidId
from typing import Dict, Any

from db import JOB_ROLES, get_database
from dependencies import get_session
from models.job_role_model import JobRoleInput
from models.user_model import Session
from utils import utc_now

router = APIRouter(prefix="/job-roles", tags=["Job Roles"])


def _role_id(job_role_id: str) -> ObjectId:
    try:
        return ObjectId(job_role_id)
    except InvalidId:
        raise HTTPException(status_code=404, detail="Job role not found")


def _serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "title": doc["title"],
        "department": doc.get("department"),
        "description": doc.get("description"),
        "requirements": doc.get("requirements", []),
        "status": doc.get("status", "open"),
        "createdAt": doc.get("created_at"),
        "updatedAt": doc.get("updated_at"),
    }


# ✅ Create job role
@router.post("/")
async def create_job_role(
    role: JobRoleInput,
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    doc: Dict[str, Any] = role.model_dump()
    doc["user_id"] = ObjectId(session.user_id)
    doc["created_at"] = utc_now()
    doc["updated_at"] = doc["created_at"]

    result = await db[JOB_ROLES].insert_one(doc)
    return {"message": "Job role created", "id": str(result.inserted_id)}


# ✅ List job roles (sorted by most recent)
@router.get("/")
async def list_job_roles(
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    roles = []
    cursor = db[JOB_ROLES].find({"user_id": ObjectId(session.user_id)}).sort("created_at", -1)
    async for doc in cursor:
        roles.append(_serialize(doc))
    return {"jobRoles": roles}


# ✅ Update job role
@router.put("/{job_role_id}")
async def update_job_role(
    updated: JobRoleInput,
    job_role_id: str = Path(..., description="Job role ID to update"),
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    result = await db[JOB_ROLES].update_one(
        {"_id": _role_id(job_role_id), "user_id": ObjectId(session.user_id)},
        {"$set": {**updated.model_dump(), "updated_at": utc_now()}},
    )

    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Job role not found")

    return {"message": "Job role updated", "id": job_role_id}


# ✅ Delete job role
@router.delete("/{job_role_id}")
async def delete_job_role(
    job_role_id: str = Path(..., description="Job role ID to delete"),
    session: Session = Depends(get_session),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    result = await db[JOB_ROLES].delete_one({
        "_id": _role_id(job_role_id),
        "user_id": ObjectId(session.user_id)
    })

    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Job role not found")

    return {"message": "Job role deleted successfully"}
