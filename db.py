from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from config import MONGO_URI, MONGO_DB_NAME

# ✅ Connect to MongoDB (the client connects lazily on first query)
client = AsyncIOMotorClient(MONGO_URI)

# ✅ Use the database and relevant collections
db = client[MONGO_DB_NAME]

USERS = "users"
SESSIONS = "sessions"
CVS = "cvs"
JOB_ROLES = "job_roles"
CV_SCREENINGS = "cv_screenings"
ORPHANED_BLOBS = "orphaned_blobs"


def get_database() -> AsyncIOMotorDatabase:
    return db
