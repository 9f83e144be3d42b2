from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from itinerary_desk.core.errors import (
    CodeCollisionError,
    ConcurrencyConflictError,
    InvalidItineraryError,
    InvalidTransitionError,
    NotFoundError,
)
from itinerary_desk.models import Itinerary
from itinerary_desk.schemas.itinerary import (
    ItineraryCreateIn,
    ItineraryFieldsIn,
    ItineraryUpdateIn,
)
from itinerary_desk.services.codes import generate_itinerary_code, is_valid_code, normalize_code

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 5
TERMINAL_STATUSES = frozenset({"completed", "cancelled"})
EDITABLE_STATUSES = frozenset({"draft", "sent"})
COLLECTION_FIELDS = ("flights", "visits", "accommodation", "transport", "travel_docs")
REQUIRED_FIELDS = ("doc_title", "participants", "purpose", "start_date", "end_date")

# Manual transitions only; draft -> sent happens through a successful send.
MANUAL_TRANSITIONS: dict[str, frozenset[str]] = {
    "draft": frozenset({"cancelled"}),
    "sent": frozenset({"completed", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}


def create_itinerary(
    db: Session,
    payload: ItineraryCreateIn,
    created_by: str,
    *,
    code_factory: Callable[[], str] = generate_itinerary_code,
) -> Itinerary:
    values = _field_values(payload)
    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        row = Itinerary(
            code=code_factory(),
            created_by=created_by,
            status="draft",
            **values,
        )
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning("Itinerary code collision on attempt %s/%s", attempt, MAX_CODE_ATTEMPTS)
            continue
        db.refresh(row)
        logger.info("Itinerary created: id=%s code=%s", row.id, row.code)
        return row

    raise CodeCollisionError("Could not allocate an itinerary code. Please try again.")


def get_itinerary(db: Session, itinerary_id: str) -> Itinerary:
    row = db.get(Itinerary, itinerary_id)
    if row is None:
        raise NotFoundError("Itinerary not found.")
    return row


def lookup_by_code(db: Session, raw_code: str) -> Itinerary:
    """Find an itinerary by its lookup code, ignoring case and surrounding blanks."""
    code = normalize_code(raw_code or "")
    if not is_valid_code(code):
        raise NotFoundError("Itinerary not found. Please check your code.")
    row = db.execute(select(Itinerary).where(Itinerary.code == code)).scalar_one_or_none()
    if row is None:
        raise NotFoundError("Itinerary not found. Please check your code.")
    return row


def list_itineraries(
    db: Session,
    *,
    status: str | None = None,
    created_by: str | None = None,
) -> list[Itinerary]:
    query = select(Itinerary)
    if status:
        query = query.where(Itinerary.status == status)
    if created_by:
        query = query.where(Itinerary.created_by == created_by)
    query = query.order_by(Itinerary.created_at.desc(), Itinerary.code)
    return list(db.execute(query).scalars())


def update_itinerary(db: Session, itinerary_id: str, payload: ItineraryUpdateIn) -> Itinerary:
    row = get_itinerary(db, itinerary_id)
    if row.status in TERMINAL_STATUSES:
        raise InvalidTransitionError(f"A {row.status} itinerary can no longer be edited.")
    if payload.expected_version is not None and payload.expected_version != row.version:
        raise ConcurrencyConflictError(
            "This itinerary was changed by someone else. Reload it and try again."
        )

    fields = payload.model_fields_set - {"expected_version"}
    values = _field_values(payload, fields)
    missing = [name for name in REQUIRED_FIELDS if name in values and values[name] is None]
    if missing:
        raise InvalidItineraryError(f"Required fields cannot be cleared: {', '.join(missing)}.")

    start_date = values.get("start_date", row.start_date)
    end_date = values.get("end_date", row.end_date)
    if start_date and end_date and end_date < start_date:
        raise InvalidItineraryError("end_date must be on or after start_date.")

    for name, value in values.items():
        setattr(row, name, value)
    commit_versioned(db)
    db.refresh(row)
    logger.info("Itinerary updated: id=%s version=%s", row.id, row.version)
    return row


def change_status(db: Session, itinerary_id: str, new_status: str) -> Itinerary:
    row = get_itinerary(db, itinerary_id)
    allowed = MANUAL_TRANSITIONS.get(row.status, frozenset())
    if new_status not in allowed:
        raise InvalidTransitionError(
            f"Cannot change status from {row.status} to {new_status}."
        )
    previous = row.status
    row.status = new_status
    commit_versioned(db)
    db.refresh(row)
    logger.info("Itinerary status changed: id=%s %s -> %s", row.id, previous, new_status)
    return row


def commit_versioned(db: Session) -> None:
    """Commit pending changes to versioned rows, turning a lost race into a conflict.

    The UPDATE only matches the version this session loaded, so a write that
    landed in between makes the flush fail instead of being overwritten.
    """
    try:
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning("Itinerary write lost a concurrent update race")
        raise ConcurrencyConflictError(
            "This itinerary was changed by someone else. Reload it and try again."
        ) from exc


def ensure_editable(row: Itinerary) -> None:
    if row.status not in EDITABLE_STATUSES:
        raise InvalidTransitionError(f"A {row.status} itinerary can no longer be changed.")


def _field_values(payload: ItineraryFieldsIn, fields: set[str] | None = None) -> dict[str, Any]:
    values = payload.model_dump(include=fields, exclude={"expected_version"})
    # Nested entries are stored as JSON with their wire names ("from") and HH:MM times.
    stored = payload.model_dump(
        mode="json",
        by_alias=True,
        exclude_none=True,
        include=set(COLLECTION_FIELDS),
    )
    for name in COLLECTION_FIELDS:
        if name in values:
            values[name] = stored.get(name, {} if name == "travel_docs" else [])
    return values
