import re
from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId

from db import USERS, SESSIONS, get_database
from dependencies import get_session
from models.user_model import UserSignup, UserLogin, Session
from utils import hash_password, verify_password, create_access_token, utc_now

router = APIRouter(prefix="/auth", tags=["Auth"])


# ✅ Password strength validator
def is_strong_password(password: str) -> bool:
    return bool(
        len(password) >= 8
        and re.search(r"\d", password)
        and re.search(r"[!@#$%^&*(),.?\":{}|<>]", password)
    )


@router.post("/signup")
async def signup(user: UserSignup, db: AsyncIOMotorDatabase = Depends(get_database)):
    email = user.email.strip().lower()

    if not is_strong_password(user.password):
        raise HTTPException(
            status_code=400,
            detail="Password must be at least 8 characters, include a digit and a special character."
        )

    existing = await db[USERS].find_one({"email": email})
    if existing:
        raise HTTPException(status_code=400, detail="User already exists.")

    result = await db[USERS].insert_one({
        "name": user.name.strip(),
        "email": email,
        "password": hash_password(user.password),
        "created_at": utc_now(),
    })

    return {"message": "Signup successful. You can now login.", "user_id": str(result.inserted_id)}


@router.post("/login")
async def login(user: UserLogin, db: AsyncIOMotorDatabase = Depends(get_database)):
    db_user = await db[USERS].find_one({"email": user.email.strip().lower()})
    if not db_user:
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    if not verify_password(user.password, db_user["password"]):
        raise HTTPException(status_code=401, detail="Invalid credentials.")

    session = await db[SESSIONS].insert_one({
        "user_id": db_user["_id"],
        "email": db_user["email"],
        "name": db_user["name"],
        "created_at": utc_now(),
    })

    token = create_access_token({"user_id": str(db_user["_id"]), "sid": str(session.inserted_id)})
    return {
        "access_token": token,
        "name": db_user["name"],
        "user_id": str(db_user["_id"])
    }


@router.post("/logout")
async def logout(session: Session = Depends(get_session), db: AsyncIOMotorDatabase = Depends(get_database)):
    await db[SESSIONS].delete_one({"_id": ObjectId(session.session_id)})
    return {"message": "Logged out."}


# ✅ Fetch current user profile
@router.get("/me")
async def get_current_user(session: Session = Depends(get_session)):
    return {
        "user_id": session.user_id,
        "name": session.name,
        "email": session.email
    }
