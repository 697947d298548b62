"""Common test fixtures."""
# pylint: disable=redefined-outer-name
import asyncio
from datetime import date

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.database import Database
from app.main import create_app
from app.schemas.inspections import AIAnalysisResult, HazardCreate, InspectionCreate
from app.services import inspection_service
from app.services.auth_service import create_user

IN_MEMORY_URL = "sqlite+aiosqlite://"

SAMPLE_AI_RESULT = {
    "hazards": [
        {
            "description": "Worker on scaffold without harness",
            "category": "Physical",
            "hazard_type": "Fall from Height",
            "severity": 5,
            "likelihood": 4,
            "corrective_actions": {
                "engineering": "Install guard rails",
                "administrative": "Permit to work for elevated tasks",
                "ppe": "Full body harness",
                "immediate": "Stop work at height",
            },
            "confidence": 0.92,
        },
        {
            "description": "Extension lead across walkway",
            "category": "electrical",
            "severity": 2,
            "likelihood": 3,
        },
    ],
    "overall_risk_level": "Extreme",
    "summary": "Fall protection is missing on the scaffold.",
}


class FakeAnalyzer:
    """Stands in for the Gemini client."""

    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result if result is not None else SAMPLE_AI_RESULT
        self.error = error
        self.delay = delay
        self.calls = []

    async def analyze_image(self, image_bytes, mime_type="image/jpeg"):
        self.calls.append((image_bytes, mime_type))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return AIAnalysisResult(**self.result)


class RecordingStorage:
    """Image storage double that only remembers what was deleted."""

    def __init__(self):
        self.deleted = []

    def delete(self, path):
        self.deleted.append(path)
        return True


@pytest_asyncio.fixture
async def db():
    database = Database(IN_MEMORY_URL)
    await database.create_all()
    yield database
    await database.dispose()


@pytest_asyncio.fixture
async def session(db):
    async with db.session() as s:
        yield s


@pytest.fixture
def user_factory(session):
    """Factory to create users; names are unique per call."""
    counter = {"n": 0}

    async def _make_user(username=None, password="secret123"):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        return await create_user(session, username=username, email=f"{username}@example.com", password=password)

    return _make_user


@pytest.fixture
def inspection_factory(session):
    """Factory to create pending inspections owned by a user."""

    async def _make_inspection(user, project_name="Tower Block A", location="Nairobi", **fields):
        payload = InspectionCreate(
            project_name=project_name,
            inspection_date=fields.pop("inspection_date", date(2026, 3, 14)),
            location=location,
            **fields,
        )
        return await inspection_service.create_inspection(
            session, user.id, payload, image_path="/tmp/does-not-exist.jpg", image_filename="site.jpg"
        )

    return _make_inspection


@pytest.fixture
def hazard_payload():
    def _make(severity=3, likelihood=3, category="Physical", description="Open trench edge"):
        return HazardCreate(description=description, category=category, severity=severity, likelihood=likelihood)

    return _make


@pytest.fixture
def make_analyzer():
    return FakeAnalyzer


@pytest.fixture
def fake_analyzer():
    return FakeAnalyzer()


@pytest.fixture
def recording_storage():
    return RecordingStorage()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=IN_MEMORY_URL,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        SECRET_KEY="test-secret",
        AI_TIMEOUT_SECONDS=5.0,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def client(settings, fake_analyzer):
    app = create_app(settings, analyzer=fake_analyzer)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register(client):
    """Register a user and return its Authorization header."""

    def _register(username="alice", password="secret123", **extra):
        resp = client.post(
            "/api/v1/auth/register",
            json={"username": username, "email": f"{username}@example.com", "password": password, **extra},
        )
        assert resp.status_code == 201, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _register


JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


@pytest.fixture
def upload(client):
    """POST a photograph with metadata to the analyze endpoint."""

    def _upload(headers, project_name="Tower Block A", inspection_date="2026-03-14", filename="site.jpg", **form):
        data = {"project_name": project_name, "inspection_date": inspection_date, "location": "Nairobi", **form}
        return client.post(
            "/api/v1/inspections/analyze",
            data=data,
            files={"image": (filename, JPEG_BYTES, "image/jpeg")},
            headers=headers,
        )

    return _upload
