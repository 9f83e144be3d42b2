from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)

ItineraryStatus = Literal["draft", "sent", "completed", "cancelled"]

ClockTime = Annotated[
    dt.time,
    PlainSerializer(lambda value: value.strftime("%H:%M"), return_type=str),
]


def _blank_to_none(data: Any) -> Any:
    if isinstance(data, dict):
        return {
            key: (None if isinstance(value, str) and not value.strip() else value)
            for key, value in data.items()
        }
    return data


def _rename_legacy_transport(data: Any) -> Any:
    if isinstance(data, dict) and "ground_transport" in data:
        data = dict(data)
        legacy = data.pop("ground_transport")
        data.setdefault("transport", legacy)
    return data


class EntryIn(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def _blank_fields(cls, data: Any) -> Any:
        return _blank_to_none(data)


class FlightIn(EntryIn):
    flight: str | None = None
    airline: str | None = None
    date: dt.date | None = None
    from_: str | None = Field(None, alias="from")
    to: str | None = None
    dep: ClockTime | None = None
    arr: ClockTime | None = None
    pnr: str | None = Field(None, validation_alias=AliasChoices("pnr", "booking_ref"))
    eticket: str | None = None

    @field_validator("from_", "to", mode="before")
    @classmethod
    def _upper_airport(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class VisitIn(EntryIn):
    date: dt.date | None = None
    activity: str | None = None
    facility: str | None = None
    address: str | None = None
    transport: str | None = None


class AccommodationIn(EntryIn):
    hotel_name: str | None = None
    checkin: dt.date | None = None
    checkout: dt.date | None = None
    confirmation: str | None = None
    address: str | None = None
    phone: str | None = None

    @model_validator(mode="after")
    def _validate_stay(self) -> "AccommodationIn":
        if self.checkin and self.checkout and self.checkout < self.checkin:
            raise ValueError("checkout must be on or after checkin.")
        return self


class TransportIn(EntryIn):
    type: str | None = None
    company: str | None = None
    confirmation: str | None = None
    pickup_date: dt.date | None = None
    pickup_time: ClockTime | None = None
    pickup_location: str | None = None
    notes: str | None = None


class TravelDocsIn(EntryIn):
    visa_number: str | None = None
    visa_expiry: dt.date | None = None
    insurance_policy: str | None = None
    insurance_provider: str | None = None
    emergency_contact: str | None = None


class ItineraryFieldsIn(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    trip_tag: str | None = Field(None, max_length=120)
    phones: str | None = None
    factory: str | None = Field(None, max_length=255)
    flights: list[FlightIn] = Field(default_factory=list)
    visits: list[VisitIn] = Field(default_factory=list)
    accommodation: list[AccommodationIn] = Field(default_factory=list)
    transport: list[TransportIn] = Field(default_factory=list)
    travel_docs: TravelDocsIn = Field(default_factory=TravelDocsIn)

    @model_validator(mode="before")
    @classmethod
    def _legacy_keys(cls, data: Any) -> Any:
        return _rename_legacy_transport(data)

    @field_validator("travel_docs", mode="before")
    @classmethod
    def _empty_docs(cls, value: Any) -> Any:
        return {} if value is None else value


class ItineraryCreateIn(ItineraryFieldsIn):
    doc_title: str = Field(..., min_length=1, max_length=255)
    participants: str = Field(..., min_length=1)
    purpose: str = Field(..., min_length=1)
    start_date: dt.date
    end_date: dt.date

    @model_validator(mode="after")
    def _validate_dates(self) -> "ItineraryCreateIn":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date.")
        return self


class ItineraryUpdateIn(ItineraryFieldsIn):
    """Partial update; only fields present in the request are written."""

    doc_title: str | None = Field(None, min_length=1, max_length=255)
    participants: str | None = Field(None, min_length=1)
    purpose: str | None = Field(None, min_length=1)
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    expected_version: int | None = Field(None, ge=1)


class StatusChangeIn(BaseModel):
    status: ItineraryStatus


class SendItineraryIn(BaseModel):
    recipient_email: EmailStr = Field(
        ..., validation_alias=AliasChoices("recipient_email", "email")
    )
    custom_message: str | None = Field(None, max_length=5000)


class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    itinerary_id: str
    file_name: str
    file_path: str
    file_type: str | None = None
    file_size: int | None = None
    file_url: str | None = None
    uploaded_at: dt.datetime | None = None


class ItineraryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    created_by: str
    status: ItineraryStatus
    doc_title: str | None = None
    trip_tag: str | None = None
    participants: str | None = None
    phones: str | None = None
    purpose: str | None = None
    factory: str | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    flights: list[dict[str, Any]]
    visits: list[dict[str, Any]]
    accommodation: list[dict[str, Any]]
    transport: list[dict[str, Any]]
    travel_docs: dict[str, Any]
    sent_to: str | None = None
    sent_at: dt.datetime | None = None
    version: int
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None


class ItinerarySummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    status: ItineraryStatus
    doc_title: str | None = None
    participants: str | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    created_by: str
    created_at: dt.datetime | None = None


class PublicItineraryResponse(BaseModel):
    itinerary: ItineraryOut
    documents: list[DocumentOut]


class UploadResultOut(BaseModel):
    file_name: str
    status: Literal["uploaded", "failed"]
    document: DocumentOut | None = None
    error: str | None = None


class UploadResponse(BaseModel):
    uploaded: int
    failed: int
    results: list[UploadResultOut]


class SendItineraryResponse(BaseModel):
    success: bool
    message_id: str | None = None
    itinerary: ItineraryOut
