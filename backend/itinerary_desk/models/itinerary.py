import uuid
from datetime import date, datetime

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from itinerary_desk.models.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Itinerary(Base):
    __tablename__ = "itineraries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    code: Mapped[str] = mapped_column(String(14), nullable=False, unique=True, index=True)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft", server_default="draft"
    )
    doc_title: Mapped[str] = mapped_column(String(255), nullable=True)
    trip_tag: Mapped[str] = mapped_column(String(120), nullable=True)
    participants: Mapped[str] = mapped_column(Text, nullable=True)
    phones: Mapped[str] = mapped_column(Text, nullable=True)
    purpose: Mapped[str] = mapped_column(Text, nullable=True)
    factory: Mapped[str] = mapped_column(String(255), nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=True)
    flights: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    visits: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    accommodation: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    transport: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    travel_docs: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    sent_to: Mapped[str] = mapped_column(String(320), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}


class Document(Base):
    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    itinerary_id: Mapped[str] = mapped_column(
        ForeignKey("itineraries.id"), nullable=False, index=True
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(512), nullable=False)
    file_type: Mapped[str] = mapped_column(String(120), nullable=True)
    file_size: Mapped[int] = mapped_column(Integer, nullable=True)
    file_url: Mapped[str] = mapped_column(Text, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
