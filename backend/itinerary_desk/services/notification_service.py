from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from itinerary_desk.core.config import Settings
from itinerary_desk.core.context import Mailer
from itinerary_desk.core.errors import ItineraryDeskError
from itinerary_desk.integrations.resend_mailer import EmailAttachment, OutgoingEmail
from itinerary_desk.models import Itinerary
from itinerary_desk.schemas.itinerary import SendItineraryIn
from itinerary_desk.services.calendar_export import build_ics
from itinerary_desk.services.document_service import list_documents
from itinerary_desk.services.itinerary_service import (
    commit_versioned,
    ensure_editable,
    get_itinerary,
)
from itinerary_desk.services.render_model import build_view
from itinerary_desk.services.renderers import email_subject, html_to_text, render_email_html

logger = logging.getLogger(__name__)


def send_itinerary(
    db: Session,
    itinerary_id: str,
    payload: SendItineraryIn,
    *,
    mailer: Mailer,
    settings: Settings,
    now: datetime | None = None,
) -> tuple[Itinerary, str | None]:
    """Email the itinerary and mark it sent.

    The status is only written after the provider accepted the message, so a
    failed send leaves the itinerary exactly as it was.
    """
    row = get_itinerary(db, itinerary_id)
    ensure_editable(row)

    view = build_view(row, list_documents(db, row.id))
    html = render_email_html(
        view,
        brand_name=settings.brand_name,
        app_url=settings.app_url,
        custom_message=payload.custom_message,
    )
    calendar = build_ics(view, prodid=settings.ics_prodid, uid_domain=settings.ics_uid_domain)
    email = OutgoingEmail(
        to=str(payload.recipient_email),
        subject=email_subject(view),
        html=html,
        text=html_to_text(html),
        attachments=[
            EmailAttachment(
                filename=f"{row.code}.ics",
                content=calendar.encode("utf-8"),
                content_type="text/calendar",
            )
        ],
    )

    try:
        message_id = mailer.send(email)
    except ItineraryDeskError:
        logger.warning("Itinerary email failed: id=%s code=%s", row.id, row.code)
        raise

    row.status = "sent"
    row.sent_to = email.to
    row.sent_at = now or datetime.now(timezone.utc)
    try:
        commit_versioned(db)
    except ItineraryDeskError:
        logger.warning(
            "Itinerary changed while its email was in flight, status left as is: id=%s message=%s",
            itinerary_id,
            message_id,
        )
        raise
    db.refresh(row)
    logger.info("Itinerary email sent: id=%s code=%s message=%s", row.id, row.code, message_id)
    return row, message_id
