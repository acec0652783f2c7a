"""Pytest configuration and fixtures."""

import json
import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from recipe_importer.api.dependencies import get_import_pipeline
from recipe_importer.database import Base, get_db, get_session_factory
from recipe_importer.main import app
from recipe_importer.models.ingredient import MeasurementType
from recipe_importer.services.auth import create_access_token
from recipe_importer.services.extractor import RecipeExtractor
from recipe_importer.services.llm import LLMService
from recipe_importer.services.media import ImagePipeline
from recipe_importer.services.media_source import MediaSourceLoader
from recipe_importer.services.pipeline import ImportPipeline
from recipe_importer.services.storage import StorageError
from recipe_importer.services.transcripts import Transcript, TranscriptSegment
from recipe_importer.services.video_metadata import VideoMetadataClient
from recipe_importer.services.webpage import WebpageFetcher


class AuthHeaders(dict):
    """Dict subclass that also stores user_id."""

    def __init__(self, *args, user_id: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/recipe_importer", "/recipe_importer_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer token for a test account."""
    user_id = "user-123"
    token = create_access_token(user_id)
    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user_id)


@pytest.fixture
def measurement_types(db):
    """Seed a few measurement units."""
    units = [
        MeasurementType(name_en="gram", name_de="Gramm", abbreviation_en="g", abbreviation_de="g"),
        MeasurementType(name_en="tablespoon", name_de="Esslöffel", abbreviation_en="tbsp", abbreviation_de="EL"),
        MeasurementType(name_en="piece", name_de="Stück", abbreviation_en="pc", abbreviation_de="St"),
        MeasurementType(name_en="cup", name_de="Tasse", abbreviation_en="cup", abbreviation_de="Tasse"),
    ]
    db.add_all(units)
    db.commit()
    return {unit.name_en: unit for unit in units}


# --- Fakes ---


class FakeStorage:
    """In-memory BlobStorage."""

    def __init__(self, objects: dict[tuple[str, str], bytes] | None = None):
        self.objects = dict(objects or {})
        self.removed: list[tuple[str, str]] = []
        self.fail_uploads = False

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> None:
        if self.fail_uploads:
            raise StorageError("upload failed")
        self.objects[(bucket, path)] = data

    async def download(self, bucket: str, path: str) -> bytes:
        if (bucket, path) not in self.objects:
            raise StorageError(f"Object not found: {bucket}/{path}")
        return self.objects[(bucket, path)]

    async def remove(self, bucket: str, paths: list[str]) -> None:
        for path in paths:
            self.objects.pop((bucket, path), None)
            self.removed.append((bucket, path))

    def public_url(self, bucket: str, path: str) -> str:
        return f"https://storage.test/{bucket}/{path}"


def model_reply(payload, input_tokens: int = 1000, output_tokens: int = 500):
    """Fake Anthropic message carrying ``payload`` (dict is JSON-encoded)."""
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


def fake_llm(*replies) -> LLMService:
    """LLMService whose client returns ``replies`` in order."""
    client = MagicMock()
    client.messages.create = AsyncMock(side_effect=list(replies))
    return LLMService(client=client)


def recipe_payload(name: str = "Spaghetti Carbonara", **overrides) -> dict:
    payload = {
        "is_valid_recipe": True,
        "error_message": None,
        "recipe": {
            "name": name,
            "author": None,
            "description": "Classic Roman pasta",
            "prep_time_minutes": 10,
            "cook_time_minutes": 15,
            "recipe_yield": "4 servings",
            "category": "Main",
            "cuisine": "Italian",
            "keywords": ["pasta"],
            "image_url": None,
        },
        "steps": [
            {"step_number": 1, "instruction": "🥘 Boil the pasta", "duration_minutes": 10},
            {"step_number": 2, "instruction": "🥚 Mix eggs and cheese", "duration_minutes": None},
        ],
        "ingredients": [
            {
                "name_en": "spaghetti",
                "name_de": "Spaghetti",
                "quantity": 400,
                "measurement_type": "gram",
                "notes": None,
                "is_new": True,
                "existing_ingredient_id": None,
            },
            {
                "name_en": "egg",
                "name_de": "Ei",
                "quantity": 4,
                "measurement_type": "piece",
                "notes": None,
                "is_new": True,
                "existing_ingredient_id": None,
            },
        ],
    }
    payload.update(overrides)
    return payload


def html_response(html: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, text=html, headers={"content-type": "text/html; charset=utf-8"})


class FakeTranscriptProvider:
    """TranscriptProvider returning a fixed transcript or raising an error."""

    def __init__(self, transcript: Transcript | None = None, error: Exception | None = None):
        self.transcript = transcript or Transcript(
            segments=[
                TranscriptSegment(text="Today we make pancakes.", offset_ms=0),
                TranscriptSegment(text="Mix 200 grams of flour with two eggs.", offset_ms=5000),
            ],
            language="en",
        )
        self.error = error
        self.calls = []

    async def fetch(self, url, platform, language=None):
        self.calls.append((url, platform, language))
        if self.error is not None:
            raise self.error
        return self.transcript


def no_network(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404)


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def build_pipeline(db, storage):
    """Factory for an ImportPipeline wired to fakes.

    ``web`` is an httpx handler for webpage fetches; ``media_web`` serves
    image downloads and thumbnail checks; ``meta_web`` serves oEmbed.
    """

    def _build(
        llm: LLMService,
        web=no_network,
        media_web=no_network,
        meta_web=no_network,
        transcripts=None,
        on_stage=None,
    ) -> ImportPipeline:
        return ImportPipeline(
            db=db,
            session_factory=TestingSessionLocal,
            webpage_fetcher=WebpageFetcher(transport=httpx.MockTransport(web)),
            metadata_client=VideoMetadataClient(transport=httpx.MockTransport(meta_web)),
            transcript_provider=transcripts or FakeTranscriptProvider(),
            extractor=RecipeExtractor(llm),
            media_loader=MediaSourceLoader(storage),
            image_pipeline=ImagePipeline(storage, transport=httpx.MockTransport(media_web)),
            on_stage=on_stage,
        )

    return _build


@pytest.fixture
def use_pipeline(client):
    """Route the API to a given pipeline instance."""

    def _use(pipeline: ImportPipeline) -> None:
        app.dependency_overrides[get_import_pipeline] = lambda: pipeline

    return _use
