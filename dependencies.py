from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase

from db import SESSIONS, get_database
from models.user_model import Session
from services.notifier import BestEffortNotifier
from services.scoring_client import LocalScoringClient, ScoringClient, default_scoring_client
from services.storage import BlobStorage, DriveStorage
from utils import decode_access_token

security = HTTPBearer()

_storage = None
_notifier = None
_scoring_client = None
_function_scorer = None


def get_storage() -> BlobStorage:
    global _storage
    if _storage is None:
        _storage = DriveStorage()
    return _storage


def get_notifier() -> BestEffortNotifier:
    global _notifier
    if _notifier is None:
        _notifier = BestEffortNotifier()
    return _notifier


def get_scoring_client() -> ScoringClient:
    global _scoring_client
    if _scoring_client is None:
        _scoring_client = default_scoring_client()
    return _scoring_client


# The scoring function endpoint always scores in-process
def get_function_scorer() -> LocalScoringClient:
    global _function_scorer
    if _function_scorer is None:
        _function_scorer = LocalScoringClient()
    return _function_scorer


async def get_session(
    credentials: HTTPAuthorizationCredentials = Security(security),
    db: AsyncIOMotorDatabase = Depends(get_database),
) -> Session:
    token = credentials.credentials
    payload = decode_access_token(token)
    session_id = payload.get("sid")

    if not session_id or not payload.get("user_id"):
        raise HTTPException(status_code=401, detail="Invalid token")

    try:
        record = await db[SESSIONS].find_one({"_id": ObjectId(session_id)})
    except InvalidId:
        record = None
    if not record or str(record["user_id"]) != payload["user_id"]:
        raise HTTPException(status_code=401, detail="Session expired or logged out")

    return Session(
        session_id=session_id,
        user_id=payload["user_id"],
        email=record["email"],
        name=record["name"],
        token=token,
    )
