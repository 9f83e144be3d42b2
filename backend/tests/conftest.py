"""Shared fixtures: an app on in-memory SQLite with fake collaborators."""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from itinerary_desk.core.config import Settings
from itinerary_desk.core.errors import TransportError
from itinerary_desk.integrations.resend_mailer import OutgoingEmail
from itinerary_desk.main import create_app
from itinerary_desk.models import Base, UserRole

JWT_SECRET = "test-secret-with-enough-length-for-hs256"


class FakeStorage:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.fail_names: set[str] = set()

    def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        if any(key.endswith(name) for name in self.fail_names):
            raise TransportError("File storage is unreachable.")
        self.objects[key] = data

    def delete(self, key: str) -> None:
        self.objects.pop(key, None)

    def public_url(self, key: str) -> str:
        return f"https://files.test/{key}"


class FakeMailer:
    def __init__(self) -> None:
        self.sent: list[OutgoingEmail] = []
        self.error: Exception | None = None

    def send(self, email: OutgoingEmail) -> str | None:
        if self.error is not None:
            raise self.error
        self.sent.append(email)
        return f"msg-{len(self.sent)}"


class FakePdfRenderer:
    def __init__(self) -> None:
        self.rendered: list[str] = []

    def render(self, html_content: str) -> bytes:
        self.rendered.append(html_content)
        return b"%PDF-1.7 fake"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        AUTH_JWT_SECRET=JWT_SECRET,
        RESEND_API_KEY="re_test",
        APP_URL="https://desk.test",
        BRAND_NAME="Itinerary Desk",
        ICS_UID_DOMAIN="desk.test",
        MAX_UPLOAD_BYTES=1024,
    )


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def pdf_renderer() -> FakePdfRenderer:
    return FakePdfRenderer()


@pytest.fixture()
def app(settings, storage, mailer, pdf_renderer):
    application = create_app(
        settings,
        storage=storage,
        mailer=mailer,
        pdf_renderer=pdf_renderer,
    )
    Base.metadata.create_all(application.state.engine)
    yield application
    Base.metadata.drop_all(application.state.engine)
    application.state.engine.dispose()


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db(app) -> Generator[Session, None, None]:
    session = app.state.context.session_factory()
    try:
        yield session
    finally:
        session.close()


def mint_token(user_id: str, *, secret: str = JWT_SECRET, expires_in: int = 3600) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "aud": "authenticated",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture()
def make_user(db) -> Callable[..., dict[str, str]]:
    """Seed a role row and return request headers for that user."""

    def _make(role: str | None = "coordinator", user_id: str | None = None) -> dict[str, str]:
        user_id = user_id or f"user-{role or 'none'}"
        if role is not None:
            db.add(UserRole(id=user_id, role=role, email=f"{user_id}@example.com"))
            db.commit()
        return {"Authorization": f"Bearer {mint_token(user_id)}"}

    return _make


@pytest.fixture()
def coordinator(make_user) -> dict[str, str]:
    return make_user("coordinator")


@pytest.fixture()
def admin(make_user) -> dict[str, str]:
    return make_user("admin")


def itinerary_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "doc_title": "Hong Kong Supplier Audit",
        "trip_tag": "Q2 Audits",
        "participants": "Jane Tan; Marcus Lee",
        "phones": "+65 5555 0101",
        "purpose": "Annual supplier quality audit",
        "factory": "Acme, Inc.; Plant 2",
        "start_date": "2025-06-01",
        "end_date": "2025-06-05",
        "flights": [
            {
                "flight": "SQ890",
                "airline": "Singapore Airlines",
                "date": "2025-06-01",
                "from": "sin",
                "to": "hkg",
                "dep": "09:00",
                "arr": "11:30",
                "booking_ref": "ABC123",
            }
        ],
        "visits": [
            {
                "date": "2025-06-02",
                "activity": "Line audit",
                "facility": "Acme, Inc.; Plant 2",
                "address": "1 Harbour Rd",
            }
        ],
        "accommodation": [
            {
                "hotel_name": "Harbour View Hotel",
                "checkin": "2025-06-01",
                "checkout": "2025-06-05",
                "confirmation": "HV-7781",
            }
        ],
        "ground_transport": [
            {"type": "Taxi", "company": "City Cabs", "pickup_time": "07:00"},
        ],
        "travel_docs": {"visa_number": "V-1234", "emergency_contact": "Ops desk"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def create_itinerary(client, coordinator) -> Callable[..., dict[str, Any]]:
    def _create(**overrides: Any) -> dict[str, Any]:
        response = client.post(
            "/api/itineraries",
            json=itinerary_payload(**overrides),
            headers=coordinator,
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create
