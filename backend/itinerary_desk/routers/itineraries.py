from __future__ import annotations

from collections.abc import Iterator

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from itinerary_desk.core.config import Settings
from itinerary_desk.core.context import Mailer, get_app_settings, get_mailer, get_storage
from itinerary_desk.core.db import get_db
from itinerary_desk.core.deps import CurrentUser, require_staff
from itinerary_desk.core.errors import ItineraryDeskError, to_http_exception
from itinerary_desk.integrations.storage import ObjectStorage
from itinerary_desk.schemas.itinerary import (
    DocumentOut,
    ItineraryCreateIn,
    ItineraryOut,
    ItineraryStatus,
    ItinerarySummaryOut,
    ItineraryUpdateIn,
    SendItineraryIn,
    SendItineraryResponse,
    StatusChangeIn,
    UploadResponse,
    UploadResultOut,
)
from itinerary_desk.services import document_service, itinerary_service
from itinerary_desk.services.document_service import IncomingFile
from itinerary_desk.services.notification_service import send_itinerary

router = APIRouter()


@router.post("/itineraries", response_model=ItineraryOut, status_code=status.HTTP_201_CREATED)
def create_itinerary(
    payload: ItineraryCreateIn,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_staff),
) -> ItineraryOut:
    try:
        row = itinerary_service.create_itinerary(db, payload, user.id)
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc
    return ItineraryOut.model_validate(row)


@router.get("/itineraries", response_model=list[ItinerarySummaryOut])
def list_itineraries(
    status_filter: ItineraryStatus | None = Query(None, alias="status"),
    mine: bool = Query(False),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_staff),
) -> list[ItinerarySummaryOut]:
    rows = itinerary_service.list_itineraries(
        db,
        status=status_filter,
        created_by=user.id if mine else None,
    )
    return [ItinerarySummaryOut.model_validate(row) for row in rows]


@router.get("/itineraries/{itinerary_id}", response_model=ItineraryOut)
def get_itinerary(
    itinerary_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_staff),
) -> ItineraryOut:
    try:
        row = itinerary_service.get_itinerary(db, itinerary_id)
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc
    return ItineraryOut.model_validate(row)


@router.put("/itineraries/{itinerary_id}", response_model=ItineraryOut)
def update_itinerary(
    itinerary_id: str,
    payload: ItineraryUpdateIn,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_staff),
) -> ItineraryOut:
    try:
        row = itinerary_service.update_itinerary(db, itinerary_id, payload)
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc
    return ItineraryOut.model_validate(row)


@router.post("/itineraries/{itinerary_id}/status", response_model=ItineraryOut)
def change_status(
    itinerary_id: str,
    payload: StatusChangeIn,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_staff),
) -> ItineraryOut:
    try:
        row = itinerary_service.change_status(db, itinerary_id, payload.status)
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc
    return ItineraryOut.model_validate(row)


@router.post("/itineraries/{itinerary_id}/send", response_model=SendItineraryResponse)
def send_itinerary_email(
    itinerary_id: str,
    payload: SendItineraryIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    mailer: Mailer = Depends(get_mailer),
    user: CurrentUser = Depends(require_staff),
) -> SendItineraryResponse:
    try:
        row, message_id = send_itinerary(
            db,
            itinerary_id,
            payload,
            mailer=mailer,
            settings=settings,
        )
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc
    return SendItineraryResponse(
        success=True,
        message_id=message_id,
        itinerary=ItineraryOut.model_validate(row),
    )


@router.get("/itineraries/{itinerary_id}/documents", response_model=list[DocumentOut])
def list_documents(
    itinerary_id: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_staff),
) -> list[DocumentOut]:
    try:
        row = itinerary_service.get_itinerary(db, itinerary_id)
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc
    return [DocumentOut.model_validate(doc) for doc in document_service.list_documents(db, row.id)]


@router.post("/itineraries/{itinerary_id}/documents", response_model=UploadResponse)
def upload_documents(
    itinerary_id: str,
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    storage: ObjectStorage = Depends(get_storage),
    user: CurrentUser = Depends(require_staff),
) -> UploadResponse:
    try:
        row = itinerary_service.get_itinerary(db, itinerary_id)
        outcomes = document_service.upload_documents(
            db,
            storage,
            row,
            _read_files(files, settings.max_upload_bytes),
            max_bytes=settings.max_upload_bytes,
        )
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc

    results = [
        UploadResultOut(
            file_name=outcome.file_name,
            status="uploaded" if outcome.ok else "failed",
            document=DocumentOut.model_validate(outcome.document) if outcome.ok else None,
            error=outcome.error,
        )
        for outcome in outcomes
    ]
    uploaded = sum(1 for outcome in outcomes if outcome.ok)
    return UploadResponse(uploaded=uploaded, failed=len(outcomes) - uploaded, results=results)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: str,
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    user: CurrentUser = Depends(require_staff),
) -> Response:
    try:
        document_service.delete_document(db, storage, document_id)
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _read_files(files: list[UploadFile], max_bytes: int) -> Iterator[IncomingFile]:
    # Read one past the limit so oversized files are detected without loading them whole.
    for upload in files:
        yield IncomingFile(
            file_name=upload.filename or "document",
            content_type=upload.content_type,
            data=upload.file.read(max_bytes + 1),
        )
