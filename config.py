# config.py
import os
from dotenv import load_dotenv

# ✅ Load environment variables from .env file
load_dotenv()

# ==================== MONGO ====================
MONGO_URI = os.getenv("MONGO_URI")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "cv_screening")

if not MONGO_URI:
    raise ValueError("❌ MONGO_URI not found in .env file. Please set it in your .env.")

# ==================== AUTH ====================
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_EXPIRE_HOURS = int(os.getenv("JWT_EXPIRE_HOURS", "24"))

if not JWT_SECRET:
    raise ValueError("Environment variable 'JWT_SECRET' not set. Please set it in your .env file.")

# ==================== AI GATEWAY ====================
AI_GATEWAY_URL = os.getenv("AI_GATEWAY_URL", "https://ai.gateway.lovable.dev/v1/chat/completions")
AI_GATEWAY_API_KEY = os.getenv("AI_GATEWAY_API_KEY")
AI_MODEL = os.getenv("AI_MODEL", "google/gemini-3-flash-preview")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "120"))

# Remote scoring function; in-process scoring is used when unset
SCORING_FUNCTION_URL = os.getenv("SCORING_FUNCTION_URL")

# ==================== WEBHOOKS ====================
UPLOAD_WEBHOOK_URL = os.getenv("UPLOAD_WEBHOOK_URL")
SCREENING_WEBHOOK_URL = os.getenv("SCREENING_WEBHOOK_URL")
SELECTION_WEBHOOK_URL = os.getenv("SELECTION_WEBHOOK_URL")
WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "10"))

# ==================== SCREENING ====================
_download_timeout = os.getenv("CV_DOWNLOAD_TIMEOUT_SECONDS")
CV_DOWNLOAD_TIMEOUT_SECONDS = float(_download_timeout) if _download_timeout else None

# ==================== GOOGLE DRIVE ====================
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN")
GOOGLE_DRIVE_FOLDER_ID = os.getenv("GOOGLE_DRIVE_FOLDER_ID")

# ==================== HTTP ====================
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
