from __future__ import annotations

import re

from fastapi.testclient import TestClient

from itinerary_desk.main import create_app
from itinerary_desk.models import Base, UserRole
from tests.conftest import itinerary_payload, mint_token


def upload(client, headers, itinerary_id: str, *files):
    return client.post(
        f"/api/itineraries/{itinerary_id}/documents",
        files=[("files", file) for file in files],
        headers=headers,
    )


def test_upload_and_list(client, coordinator, create_itinerary, storage) -> None:
    created = create_itinerary()
    response = upload(
        client,
        coordinator,
        created["id"],
        ("visa.pdf", b"%PDF visa", "application/pdf"),
        ("hotel voucher.png", b"\x89PNG", "image/png"),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["uploaded"] == 2
    assert body["failed"] == 0
    assert [r["status"] for r in body["results"]] == ["uploaded", "uploaded"]
    assert len(storage.objects) == 2

    document = body["results"][1]["document"]
    assert document["file_name"] == "hotel voucher.png"
    assert re.fullmatch(rf"{created['id']}/\d{{13}}_hotel_voucher\.png", document["file_path"])
    assert document["file_url"] == f"https://files.test/{document['file_path']}"
    assert document["file_size"] == 4

    listed = client.get(f"/api/itineraries/{created['id']}/documents", headers=coordinator).json()
    assert sorted(d["file_name"] for d in listed) == ["hotel voucher.png", "visa.pdf"]

    public = client.get(f"/api/lookup/{created['code']}").json()
    assert len(public["documents"]) == 2


def test_partial_failure_keeps_earlier_uploads(client, coordinator, create_itinerary, storage) -> None:
    created = create_itinerary()
    storage.fail_names = {"broken.pdf"}
    response = upload(
        client,
        coordinator,
        created["id"],
        ("first.pdf", b"one", "application/pdf"),
        ("broken.pdf", b"two", "application/pdf"),
        ("empty.pdf", b"", "application/pdf"),
        ("huge.pdf", b"x" * 2048, "application/pdf"),
        ("last.pdf", b"three", "application/pdf"),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["uploaded"] == 2
    assert body["failed"] == 3
    statuses = {r["file_name"]: r["status"] for r in body["results"]}
    assert statuses == {
        "first.pdf": "uploaded",
        "broken.pdf": "failed",
        "empty.pdf": "failed",
        "huge.pdf": "failed",
        "last.pdf": "uploaded",
    }
    errors = {r["file_name"]: r["error"] for r in body["results"]}
    assert errors["broken.pdf"] == "File storage is unreachable."
    assert errors["huge.pdf"] == "File is larger than the upload limit."

    listed = client.get(f"/api/itineraries/{created['id']}/documents", headers=coordinator).json()
    assert sorted(d["file_name"] for d in listed) == ["first.pdf", "last.pdf"]


def test_upload_rejected_for_terminal_itinerary(client, coordinator, create_itinerary, storage) -> None:
    created = create_itinerary()
    client.post(
        f"/api/itineraries/{created['id']}/status",
        json={"status": "cancelled"},
        headers=coordinator,
    )
    response = upload(client, coordinator, created["id"], ("late.pdf", b"late", "application/pdf"))
    assert response.status_code == 409
    assert storage.objects == {}


def test_delete_document(client, coordinator, create_itinerary, storage) -> None:
    created = create_itinerary()
    body = upload(client, coordinator, created["id"], ("visa.pdf", b"visa", "application/pdf")).json()
    document_id = body["results"][0]["document"]["id"]

    response = client.delete(f"/api/documents/{document_id}", headers=coordinator)
    assert response.status_code == 204
    assert storage.objects == {}
    assert client.get(f"/api/itineraries/{created['id']}/documents", headers=coordinator).json() == []
    assert client.delete(f"/api/documents/{document_id}", headers=coordinator).status_code == 404


def test_upload_requires_staff(client, create_itinerary) -> None:
    created = create_itinerary()
    response = upload(client, {}, created["id"], ("visa.pdf", b"visa", "application/pdf"))
    assert response.status_code == 401


def test_local_uploads_are_served(settings, mailer, pdf_renderer, tmp_path) -> None:
    local = settings.model_copy(
        update={
            "storage_backend": "local",
            "local_storage_path": str(tmp_path / "uploads"),
            "local_storage_base_url": "http://testserver/files",
        }
    )
    application = create_app(local, mailer=mailer, pdf_renderer=pdf_renderer)
    Base.metadata.create_all(application.state.engine)
    session = application.state.context.session_factory()
    session.add(UserRole(id="local-user", role="coordinator", email="local@example.com"))
    session.commit()
    session.close()
    headers = {"Authorization": f"Bearer {mint_token('local-user')}"}

    try:
        with TestClient(application) as client:
            created = client.post("/api/itineraries", json=itinerary_payload(), headers=headers).json()
            body = upload(client, headers, created["id"], ("visa.pdf", b"%PDF visa", "application/pdf")).json()
            document = body["results"][0]["document"]
            assert document["file_url"].startswith(f"http://testserver/files/{created['id']}/")

            served = client.get(document["file_url"])
            assert served.status_code == 200
            assert served.content == b"%PDF visa"

            lookup = client.get(f"/api/lookup/{created['code']}").json()
            assert lookup["documents"][0]["file_url"] == document["file_url"]

            client.delete(f"/api/documents/{document['id']}", headers=headers)
            assert client.get(document["file_url"]).status_code == 404
    finally:
        Base.metadata.drop_all(application.state.engine)
        application.state.engine.dispose()
