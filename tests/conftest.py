import os

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("AI_GATEWAY_API_KEY", "test-key")
os.environ.setdefault("AI_GATEWAY_URL", "https://ai.test/v1/chat/completions")
os.environ.setdefault("UPLOAD_WEBHOOK_URL", "https://hooks.test/upload")
os.environ.setdefault("SCREENING_WEBHOOK_URL", "https://hooks.test/screening")
os.environ.setdefault("SELECTION_WEBHOOK_URL", "https://hooks.test/selection")
os.environ.pop("SCORING_FUNCTION_URL", None)

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from db import get_database
from dependencies import get_notifier, get_scoring_client, get_storage
from main import app
from models.screening_model import ScreeningResult
from services.notifier import BestEffortNotifier
from services.scoring import ScoringError
from services.scoring_client import ScoringClient
from services.storage import BlobNotFoundError, BlobStorage, StorageError

PDF_TYPE = "application/pdf"
DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class InMemoryStorage(BlobStorage):
    def __init__(self):
        self.blobs = {}
        self.fail_put = False
        self.fail_delete = False
        self.fail_get = set()
        self.deleted = []

    async def put(self, key, data, content_type=None):
        if self.fail_put:
            raise StorageError("put failed")
        self.blobs[key] = data
        return f"https://storage.test/{key}"

    async def get(self, key):
        if key in self.fail_get:
            raise StorageError("download failed")
        if key not in self.blobs:
            raise BlobNotFoundError(key)
        return self.blobs[key]

    async def delete(self, key):
        if self.fail_delete:
            raise StorageError("delete failed")
        if key not in self.blobs:
            raise BlobNotFoundError(key)
        del self.blobs[key]
        self.deleted.append(key)

    async def public_url(self, key):
        if key not in self.blobs:
            raise BlobNotFoundError(key)
        return f"https://storage.test/{key}"


class RecordingNotifier(BestEffortNotifier):
    def __init__(self):
        super().__init__()
        self.sent = []

    async def send(self, url, payload):
        self.sent.append((url, payload))
        return True


class FakeScoringClient(ScoringClient):
    def __init__(self):
        self.calls = []
        self.results = None
        self.error = None

    async def screen(self, job_description, cv_texts, token=None):
        self.calls.append({"job_description": job_description, "cv_texts": cv_texts, "token": token})
        if self.error:
            raise self.error
        if self.results is not None:
            return self.results
        return [make_result(cv.id, cv.name, 75, "selected") for cv in cv_texts]


def make_result(cv_id, cv_name, score, status, **overrides):
    data = {
        "cvId": cv_id,
        "cvName": cv_name,
        "score": score,
        "status": status,
        "missingKeywords": ["kubernetes"],
        "matchedSkills": ["python"],
        "selectionReasons": ["Strong backend experience"] if status == "selected" else [],
        "rejectionReasons": [] if status == "selected" else ["Too junior"],
        "experienceMatch": "Relevant",
    }
    data.update(overrides)
    return ScreeningResult.model_validate(data)


@pytest.fixture
def mongo_db():
    return AsyncMongoMockClient()["cv_screening_test"]


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def scoring_client():
    return FakeScoringClient()


@pytest.fixture
def client(mongo_db, storage, notifier, scoring_client):
    app.dependency_overrides[get_database] = lambda: mongo_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_scoring_client] = lambda: scoring_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email="recruiter@acme.io", password="Secret123!", name="Dana"):
    client.post("/auth/signup", json={"name": name, "email": email, "password": password})
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def auth(client):
    login = register(client)
    return {"Authorization": f"Bearer {login['access_token']}"}


def upload(client, auth, *files):
    return client.post(
        "/cvs/upload",
        files=[("files", f) for f in files],
        headers=auth,
    )


@pytest.fixture
def uploaded_cvs(client, auth):
    response = upload(
        client, auth,
        ("alice.pdf", b"Alice Smith\nPython developer, 6 years", PDF_TYPE),
        ("bob.docx", b"Bob Jones\nJava developer", DOCX_TYPE),
        ("carol.pdf", b"Carol White\nData engineer", PDF_TYPE),
    )
    assert response.status_code == 200, response.text
    return [r["cv"] for r in response.json()["results"]]
