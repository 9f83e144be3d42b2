from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from fastapi import Request
from sqlalchemy.orm import Session, sessionmaker

from itinerary_desk.core.config import Settings
from itinerary_desk.integrations.resend_mailer import OutgoingEmail
from itinerary_desk.integrations.storage import ObjectStorage


class Mailer(Protocol):
    def send(self, email: OutgoingEmail) -> str | None: ...


class PdfRenderer(Protocol):
    def render(self, html_content: str) -> bytes: ...


@dataclass
class AppContext:
    """Collaborators shared by every request of one application instance."""

    settings: Settings
    session_factory: sessionmaker[Session]
    storage: ObjectStorage
    mailer: Mailer
    pdf_renderer: PdfRenderer


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_app_settings(request: Request) -> Settings:
    return get_context(request).settings


def get_storage(request: Request) -> ObjectStorage:
    return get_context(request).storage


def get_mailer(request: Request) -> Mailer:
    return get_context(request).mailer


def get_pdf_renderer(request: Request) -> PdfRenderer:
    return get_context(request).pdf_renderer
