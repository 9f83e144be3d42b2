from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from itinerary_desk.core.config import Settings
from itinerary_desk.core.context import PdfRenderer, get_app_settings, get_pdf_renderer
from itinerary_desk.core.db import get_db
from itinerary_desk.core.errors import ItineraryDeskError, to_http_exception
from itinerary_desk.models import Itinerary
from itinerary_desk.schemas.itinerary import DocumentOut, ItineraryOut, PublicItineraryResponse
from itinerary_desk.services.calendar_export import build_ics
from itinerary_desk.services.document_service import list_documents
from itinerary_desk.services.itinerary_service import lookup_by_code
from itinerary_desk.services.render_model import ItineraryView, build_view
from itinerary_desk.services.renderers import render_print_html

router = APIRouter()


@router.get("/lookup/{code}", response_model=PublicItineraryResponse)
def lookup_itinerary(code: str, db: Session = Depends(get_db)) -> PublicItineraryResponse:
    row = _find(db, code)
    return PublicItineraryResponse(
        itinerary=ItineraryOut.model_validate(row),
        documents=[DocumentOut.model_validate(doc) for doc in list_documents(db, row.id)],
    )


@router.get("/itinerary/{code}/ics")
def download_calendar(
    code: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    row, view = _view(db, code)
    content = build_ics(view, prodid=settings.ics_prodid, uid_domain=settings.ics_uid_domain)
    return Response(
        content=content,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{row.code}.ics"',
            "Cache-Control": "no-cache",
        },
    )


@router.get("/itinerary/{code}/print", response_class=HTMLResponse)
def print_itinerary(
    code: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> HTMLResponse:
    _, view = _view(db, code)
    return HTMLResponse(render_print_html(view, brand_name=settings.brand_name))


@router.get("/itinerary/{code}/pdf")
def download_pdf(
    code: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    pdf_renderer: PdfRenderer = Depends(get_pdf_renderer),
) -> Response:
    row, view = _view(db, code)
    try:
        content = pdf_renderer.render(render_print_html(view, brand_name=settings.brand_name))
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{row.code}.pdf"'},
    )


def _find(db: Session, code: str) -> Itinerary:
    try:
        return lookup_by_code(db, code)
    except ItineraryDeskError as exc:
        raise to_http_exception(exc) from exc


def _view(db: Session, code: str) -> tuple[Itinerary, ItineraryView]:
    row = _find(db, code)
    return row, build_view(row, list_documents(db, row.id))
