# main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import CORS_ORIGINS
from routes.auth_routes import router as auth_router
from routes.cv_routes import router as cv_router
from routes.job_role_routes import router as job_role_router
from routes.screening_routes import router as screening_router
from routes.scoring_routes import router as scoring_router

logging.basicConfig(level=logging.INFO)

app = FastAPI(
    title="CV Screening API",
    description="Backend API for CV uploads, job roles and AI screening",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials="*" not in CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

app.include_router(auth_router)
app.include_router(cv_router)
app.include_router(job_role_router)
app.include_router(screening_router)
app.include_router(scoring_router)


@app.get("/")
def root():
    return {"message": "CV screening backend running"}
