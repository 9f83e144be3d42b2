"""Normalize a stored itinerary into the shape every output format consumes.

Stored nested collections are loosely typed JSON. Everything here is lenient:
a value that cannot be read as a date or clock time becomes ``None`` and the
formatters decide whether the entry can still be shown. Nothing in this module
raises on bad entry data.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FlightView:
    index: int
    flight: str | None
    airline: str | None
    date: date | None
    origin: str | None
    destination: str | None
    dep: time | None
    arr: time | None
    pnr: str | None
    eticket: str | None
    date_label: str | None
    dep_label: str | None
    arr_label: str | None

    @property
    def departure(self) -> datetime | None:
        if self.date is None or self.dep is None:
            return None
        return datetime.combine(self.date, self.dep)

    @property
    def arrival(self) -> datetime | None:
        departure = self.departure
        if departure is None or self.arr is None:
            return None
        arrival = datetime.combine(self.date, self.arr)
        if arrival < departure:
            # Overnight flight landing the next day.
            arrival += timedelta(days=1)
        return arrival


@dataclass(frozen=True)
class VisitView:
    index: int
    date: date | None
    activity: str | None
    facility: str | None
    address: str | None
    transport: str | None
    date_label: str | None


@dataclass(frozen=True)
class StayView:
    index: int
    hotel_name: str | None
    checkin: date | None
    checkout: date | None
    confirmation: str | None
    address: str | None
    phone: str | None
    checkin_label: str | None
    checkout_label: str | None

    @property
    def span_end(self) -> date | None:
        """Exclusive end of the all-day span (the day after checkout)."""
        if self.checkout is None:
            return None
        return self.checkout + timedelta(days=1)

    @property
    def nights(self) -> int | None:
        if self.checkin is None or self.checkout is None:
            return None
        return max((self.checkout - self.checkin).days, 0)


@dataclass(frozen=True)
class TransferView:
    index: int
    type: str | None
    company: str | None
    confirmation: str | None
    pickup_date: date | None
    pickup_time: time | None
    pickup_location: str | None
    notes: str | None
    pickup_date_label: str | None
    pickup_time_label: str | None


@dataclass(frozen=True)
class TravelDocsView:
    visa_number: str | None = None
    visa_expiry: str | None = None
    insurance_policy: str | None = None
    insurance_provider: str | None = None
    emergency_contact: str | None = None

    def is_empty(self) -> bool:
        return not any(
            (
                self.visa_number,
                self.visa_expiry,
                self.insurance_policy,
                self.insurance_provider,
                self.emergency_contact,
            )
        )


@dataclass(frozen=True)
class AttachmentView:
    file_name: str
    file_url: str | None
    file_type: str | None
    file_size: int | None


@dataclass(frozen=True)
class ItineraryView:
    code: str
    status: str
    doc_title: str | None
    trip_tag: str | None
    participants: str | None
    phones: str | None
    purpose: str | None
    factory: str | None
    start_date: date | None
    end_date: date | None
    flights: tuple[FlightView, ...]
    visits: tuple[VisitView, ...]
    stays: tuple[StayView, ...]
    transfers: tuple[TransferView, ...]
    travel_docs: TravelDocsView
    attachments: tuple[AttachmentView, ...]

    @property
    def traveler_names(self) -> list[str]:
        if not self.participants:
            return []
        return [name.strip() for name in self.participants.split(";") if name.strip()]


def build_view(source: Any, documents: Sequence[Any] = ()) -> ItineraryView:
    """Build the render model from an ORM row or a plain mapping."""
    transport = _get(source, "transport")
    if not transport:
        transport = _get(source, "ground_transport")

    return ItineraryView(
        code=_text(_get(source, "code")) or "",
        status=_text(_get(source, "status")) or "draft",
        doc_title=_text(_get(source, "doc_title")),
        trip_tag=_text(_get(source, "trip_tag")),
        participants=_text(_get(source, "participants")),
        phones=_text(_get(source, "phones")),
        purpose=_text(_get(source, "purpose")),
        factory=_text(_get(source, "factory")),
        start_date=parse_date(_get(source, "start_date")),
        end_date=parse_date(_get(source, "end_date")),
        flights=tuple(
            _flight(index, entry) for index, entry in _entries(_get(source, "flights"))
        ),
        visits=tuple(
            _visit(index, entry) for index, entry in _entries(_get(source, "visits"))
        ),
        stays=tuple(
            _stay(index, entry) for index, entry in _entries(_get(source, "accommodation"))
        ),
        transfers=tuple(_transfer(index, entry) for index, entry in _entries(transport)),
        travel_docs=_travel_docs(_get(source, "travel_docs")),
        attachments=tuple(_attachment(document) for document in documents),
    )


def parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_clock(value: Any) -> time | None:
    if value is None:
        return None
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    text = str(value).strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def _flight(index: int, entry: Mapping[str, Any]) -> FlightView:
    return FlightView(
        index=index,
        flight=_text(entry.get("flight")),
        airline=_text(entry.get("airline")),
        date=parse_date(entry.get("date")),
        origin=_text(entry.get("from")),
        destination=_text(entry.get("to")),
        dep=parse_clock(entry.get("dep")),
        arr=parse_clock(entry.get("arr")),
        pnr=_text(entry.get("pnr")) or _text(entry.get("booking_ref")),
        eticket=_text(entry.get("eticket")),
        date_label=_text(entry.get("date")),
        dep_label=_clock_label(entry.get("dep")),
        arr_label=_clock_label(entry.get("arr")),
    )


def _visit(index: int, entry: Mapping[str, Any]) -> VisitView:
    return VisitView(
        index=index,
        date=parse_date(entry.get("date")),
        activity=_text(entry.get("activity")),
        facility=_text(entry.get("facility")),
        address=_text(entry.get("address")),
        transport=_text(entry.get("transport")),
        date_label=_text(entry.get("date")),
    )


def _stay(index: int, entry: Mapping[str, Any]) -> StayView:
    return StayView(
        index=index,
        hotel_name=_text(entry.get("hotel_name")),
        checkin=parse_date(entry.get("checkin")),
        checkout=parse_date(entry.get("checkout")),
        confirmation=_text(entry.get("confirmation")),
        address=_text(entry.get("address")),
        phone=_text(entry.get("phone")),
        checkin_label=_text(entry.get("checkin")),
        checkout_label=_text(entry.get("checkout")),
    )


def _transfer(index: int, entry: Mapping[str, Any]) -> TransferView:
    return TransferView(
        index=index,
        type=_text(entry.get("type")),
        company=_text(entry.get("company")),
        confirmation=_text(entry.get("confirmation")),
        pickup_date=parse_date(entry.get("pickup_date")),
        pickup_time=parse_clock(entry.get("pickup_time")),
        pickup_location=_text(entry.get("pickup_location")),
        notes=_text(entry.get("notes")),
        pickup_date_label=_text(entry.get("pickup_date")),
        pickup_time_label=_clock_label(entry.get("pickup_time")),
    )


def _travel_docs(value: Any) -> TravelDocsView:
    if not isinstance(value, Mapping):
        return TravelDocsView()
    return TravelDocsView(
        visa_number=_text(value.get("visa_number")),
        visa_expiry=_text(value.get("visa_expiry")),
        insurance_policy=_text(value.get("insurance_policy")),
        insurance_provider=_text(value.get("insurance_provider")),
        emergency_contact=_text(value.get("emergency_contact")),
    )


def _attachment(document: Any) -> AttachmentView:
    size = _get(document, "file_size")
    return AttachmentView(
        file_name=_text(_get(document, "file_name")) or "document",
        file_url=_text(_get(document, "file_url")),
        file_type=_text(_get(document, "file_type")),
        file_size=size if isinstance(size, int) else None,
    )


def _entries(value: Any) -> list[tuple[int, Mapping[str, Any]]]:
    if not isinstance(value, list):
        return []
    rows: list[tuple[int, Mapping[str, Any]]] = []
    for index, entry in enumerate(value):
        # Position is the entry's identity, so non-mapping slots keep their index.
        if isinstance(entry, Mapping):
            rows.append((index, entry))
        else:
            logger.debug("Ignoring non-object entry at position %s", index)
    return rows


def _get(source: Any, key: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(key)
    return getattr(source, key, None)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (date, time)):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def _clock_label(value: Any) -> str | None:
    parsed = parse_clock(value)
    if parsed is not None:
        return parsed.strftime("%H:%M")
    return _text(value)
