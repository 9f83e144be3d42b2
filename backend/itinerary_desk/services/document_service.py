from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from itinerary_desk.core.errors import NotFoundError, TransportError
from itinerary_desk.integrations.storage import ObjectStorage
from itinerary_desk.models import Document, Itinerary
from itinerary_desk.services.itinerary_service import ensure_editable

logger = logging.getLogger(__name__)

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass(frozen=True)
class IncomingFile:
    file_name: str
    content_type: str | None
    data: bytes


@dataclass(frozen=True)
class UploadOutcome:
    file_name: str
    document: Document | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.document is not None


def list_documents(db: Session, itinerary_id: str) -> list[Document]:
    query = (
        select(Document)
        .where(Document.itinerary_id == itinerary_id)
        .order_by(Document.uploaded_at, Document.file_name)
    )
    return list(db.execute(query).scalars())


def upload_documents(
    db: Session,
    storage: ObjectStorage,
    itinerary: Itinerary,
    files: Iterable[IncomingFile],
    *,
    max_bytes: int,
) -> list[UploadOutcome]:
    """Store each file and record it, one at a time.

    Every file gets its own outcome; a failure leaves earlier uploads in place.
    """
    ensure_editable(itinerary)
    outcomes: list[UploadOutcome] = []
    for incoming in files:
        outcomes.append(_upload_one(db, storage, itinerary, incoming, max_bytes=max_bytes))
    return outcomes


def _upload_one(
    db: Session,
    storage: ObjectStorage,
    itinerary: Itinerary,
    incoming: IncomingFile,
    *,
    max_bytes: int,
) -> UploadOutcome:
    name = incoming.file_name or "document"
    if not incoming.data:
        return UploadOutcome(file_name=name, error="File is empty.")
    if len(incoming.data) > max_bytes:
        return UploadOutcome(file_name=name, error="File is larger than the upload limit.")

    key = f"{itinerary.id}/{time.time_ns() // 1_000_000}_{safe_file_name(name)}"
    try:
        storage.put(key, incoming.data, incoming.content_type)
    except TransportError as exc:
        logger.warning("Upload failed: itinerary=%s key=%s", itinerary.id, key)
        return UploadOutcome(file_name=name, error=exc.message)

    document = Document(
        itinerary_id=itinerary.id,
        file_name=name,
        file_path=key,
        file_type=incoming.content_type,
        file_size=len(incoming.data),
        file_url=storage.public_url(key),
    )
    db.add(document)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Document row insert failed, removing stored object: key=%s", key)
        try:
            storage.delete(key)
        except TransportError:
            logger.warning("Orphaned storage object left behind: key=%s", key)
        return UploadOutcome(file_name=name, error="Could not save the file record.")

    db.refresh(document)
    logger.info("Document uploaded: itinerary=%s document=%s", itinerary.id, document.id)
    return UploadOutcome(file_name=name, document=document)


def delete_document(db: Session, storage: ObjectStorage, document_id: str) -> None:
    document = db.get(Document, document_id)
    if document is None:
        raise NotFoundError("Document not found.")
    storage.delete(document.file_path)
    db.delete(document)
    db.commit()
    logger.info("Document deleted: id=%s", document_id)


def safe_file_name(name: str) -> str:
    cleaned = _UNSAFE_NAME.sub("_", name.rsplit("/", 1)[-1]).strip("._")
    return cleaned or "document"
