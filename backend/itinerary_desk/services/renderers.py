"""HTML formatters for the print page and the itinerary email.

Both read the shared ``ItineraryView`` and escape every interpolated value.
"""

from __future__ import annotations

import html
import json
import re
from datetime import date, datetime, timezone
from typing import Any

from itinerary_desk.services.render_model import (
    AttachmentView,
    FlightView,
    ItineraryView,
    StayView,
    TransferView,
    VisitView,
)

PLACEHOLDER = "N/A"
ACCENT = "#62BBC1"

PRINT_CSS = """
body { font-family: Arial, Helvetica, sans-serif; color: #1f2933; margin: 0; }
.page { max-width: 800px; margin: 0 auto; padding: 24px; }
header { border-bottom: 3px solid %(accent)s; padding-bottom: 12px; margin-bottom: 20px; }
h1 { margin: 0; font-size: 24px; }
h2 { font-size: 17px; border-bottom: 1px solid #d9e2ec; padding-bottom: 4px; margin-top: 24px; }
.code { font-family: monospace; color: %(accent)s; }
table { width: 100%%; border-collapse: collapse; font-size: 13px; }
th, td { text-align: left; padding: 6px 8px; border-bottom: 1px solid #e4e7eb; vertical-align: top; }
th { background: #f5f7fa; }
dl.summary { display: grid; grid-template-columns: 140px 1fr; gap: 4px 12px; font-size: 14px; }
dl.summary dt { font-weight: bold; color: #52606d; }
footer { margin-top: 32px; font-size: 11px; color: #7b8794; text-align: center; }
@media print {
  .page { padding: 0; }
  h2 { break-after: avoid; }
  tr { break-inside: avoid; }
}
""" % {"accent": ACCENT}


def esc(value: Any) -> str:
    """Escape for HTML text and attribute context; absent values become N/A."""
    if value is None:
        return PLACEHOLDER
    text = str(value).strip()
    if not text:
        return PLACEHOLDER
    return html.escape(text, quote=True)


def format_file_size(size: int | None) -> str:
    if not size:
        return ""
    return f"{size / 1024:.1f} KB"


def format_long_date(value: date | None) -> str | None:
    if value is None:
        return None
    return f"{value.strftime('%A, %B')} {value.day}, {value.year}"


def date_range_label(view: ItineraryView) -> str:
    start = view.start_date.isoformat() if view.start_date else None
    end = view.end_date.isoformat() if view.end_date else None
    if start and end:
        return f"{start} to {end}"
    return start or end or PLACEHOLDER


def _generated_label(generated_at: datetime | None) -> str:
    stamp = (generated_at or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return stamp.strftime("%Y-%m-%d %H:%M UTC")


# ---------------------------------------------------------------------------
# Print view
# ---------------------------------------------------------------------------


def render_print_html(
    view: ItineraryView,
    *,
    brand_name: str,
    generated_at: datetime | None = None,
) -> str:
    sections = [
        _print_flights(view.flights),
        _print_stays(view.stays),
        _print_visits(view.visits),
        _print_transfers(view.transfers),
        _print_travel_docs(view),
        _print_attachments(view.attachments),
    ]
    body = "".join(section for section in sections if section)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{esc(view.doc_title or "Travel Itinerary")} - {esc(view.code)}</title>
<style>{PRINT_CSS}</style>
</head>
<body>
<div class="page">
<header>
<h1>{esc(view.doc_title or "Business Trip")}</h1>
<div>Itinerary code: <span class="code">{esc(view.code)}</span>{_print_tag(view)}</div>
</header>
<dl class="summary">
<dt>Travelers</dt><dd>{esc(view.participants)}</dd>
<dt>Purpose</dt><dd>{esc(view.purpose)}</dd>
<dt>Facility</dt><dd>{esc(view.factory)}</dd>
<dt>Dates</dt><dd>{esc(date_range_label(view))}</dd>
<dt>Contact</dt><dd>{esc(view.phones)}</dd>
</dl>
{body}
<footer>{esc(brand_name)} &middot; Generated at {esc(_generated_label(generated_at))}</footer>
</div>
</body>
</html>
"""


def _print_tag(view: ItineraryView) -> str:
    if not view.trip_tag:
        return ""
    return f" &middot; {esc(view.trip_tag)}"


def _print_table(title: str, headers: list[str], rows: list[list[str]]) -> str:
    head = "".join(f"<th>{header}</th>" for header in headers)
    body = "".join("<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows)
    table = f"<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>"
    return f"<section><h2>{title}</h2>{table}</section>\n"


def _print_flights(flights: tuple[FlightView, ...]) -> str:
    if not flights:
        return ""
    rows = [
        [
            esc(f.date_label),
            esc(" ".join(part for part in (f.airline, f.flight) if part) or None),
            f"{esc(f.origin)} &rarr; {esc(f.destination)}",
            esc(f.dep_label),
            esc(f.arr_label),
            esc(f.pnr),
            esc(f.eticket),
        ]
        for f in flights
    ]
    return _print_table(
        "Flights",
        ["Date", "Flight", "Route", "Departs", "Arrives", "PNR", "E-ticket"],
        rows,
    )


def _print_stays(stays: tuple[StayView, ...]) -> str:
    if not stays:
        return ""
    rows = [
        [
            esc(s.hotel_name),
            esc(s.checkin_label),
            esc(s.checkout_label),
            esc(s.nights),
            esc(s.confirmation),
            esc(s.address),
            esc(s.phone),
        ]
        for s in stays
    ]
    return _print_table(
        "Accommodation",
        ["Hotel", "Check-in", "Check-out", "Nights", "Confirmation", "Address", "Phone"],
        rows,
    )


def _print_visits(visits: tuple[VisitView, ...]) -> str:
    if not visits:
        return ""
    rows = [
        [esc(v.date_label), esc(v.activity), esc(v.facility), esc(v.address), esc(v.transport)]
        for v in visits
    ]
    return _print_table(
        "Site Visits",
        ["Date", "Activity", "Facility", "Address", "Transport"],
        rows,
    )


def _print_transfers(transfers: tuple[TransferView, ...]) -> str:
    if not transfers:
        return ""
    rows = [
        [
            esc(t.type),
            esc(t.company),
            esc(t.pickup_date_label),
            esc(t.pickup_time_label),
            esc(t.pickup_location),
            esc(t.confirmation),
            esc(t.notes),
        ]
        for t in transfers
    ]
    return _print_table(
        "Ground Transport",
        [
            "Type",
            "Company",
            "Pickup date",
            "Pickup time",
            "Pickup location",
            "Confirmation",
            "Notes",
        ],
        rows,
    )


def _print_travel_docs(view: ItineraryView) -> str:
    docs = view.travel_docs
    if docs.is_empty():
        return ""
    rows = [
        ["Visa number", esc(docs.visa_number)],
        ["Visa expiry", esc(docs.visa_expiry)],
        ["Insurance policy", esc(docs.insurance_policy)],
        ["Insurance provider", esc(docs.insurance_provider)],
        ["Emergency contact", esc(docs.emergency_contact)],
    ]
    return _print_table("Travel Documents", ["Item", "Details"], rows)


def _print_attachments(attachments: tuple[AttachmentView, ...]) -> str:
    if not attachments:
        return ""
    rows = [
        [_link(a), esc(a.file_type), esc(format_file_size(a.file_size) or None)]
        for a in attachments
    ]
    return _print_table("Attached Files", ["File", "Type", "Size"], rows)


def _link(attachment: AttachmentView, style: str = "") -> str:
    name = esc(attachment.file_name)
    if not attachment.file_url:
        return name
    style_attr = f' style="{style}"' if style else ""
    return f'<a href="{esc(attachment.file_url)}"{style_attr}>{name}</a>'


# ---------------------------------------------------------------------------
# Email view
# ---------------------------------------------------------------------------

_CELL = "color: #333; font-size: 14px;"
_MUTED = "color: #666; font-size: 13px;"
_SECTION_TD = 'style="padding: 0 30px 20px 30px;"'
_MONO = "font-family: monospace;"
_ATTACHMENT_LINK = f"color: {ACCENT}; text-decoration: none; font-size: 14px; font-weight: 600;"
_NOTE = f"color: {ACCENT}; font-size: 12px;"
_BOX = (
    'width="100%" cellpadding="10" cellspacing="0" border="0" '
    'style="background-color: #f8f9fa; border-radius: 6px;"'
)


def lookup_url(app_url: str, code: str) -> str:
    return f"{app_url.rstrip('/')}/?code={code}"


def email_subject(view: ItineraryView) -> str:
    return f"Your Travel Itinerary: {view.doc_title or view.code}"


def render_email_html(
    view: ItineraryView,
    *,
    brand_name: str,
    app_url: str,
    custom_message: str | None = None,
    generated_at: datetime | None = None,
) -> str:
    url = lookup_url(app_url, view.code)
    sections = [
        _email_section("Flight Schedule", [_email_flight(f) for f in view.flights]),
        _email_section("Accommodation", [_email_stay(s) for s in view.stays]),
        _email_section("Site Visits", [_email_visit(v) for v in view.visits]),
        _email_section("Ground Transportation", [_email_transfer(t) for t in view.transfers]),
        _email_travel_docs(view),
        _email_section("Attached Documents", [_email_attachment(a) for a in view.attachments]),
    ]
    body = "".join(section for section in sections if section)
    structured = _structured_data(view)
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Travel Itinerary</title>
{structured}
</head>
<body style="margin: 0; padding: 0; background-color: #f5f5f5; font-family: Arial, sans-serif;">
<table width="100%" cellpadding="0" cellspacing="0" border="0" style="background-color: #f5f5f5; padding: 20px;">
<tr><td align="center">
<table width="600" cellpadding="0" cellspacing="0" border="0" style="background-color: white; border-radius: 8px;">
<tr><td style="background-color: {ACCENT}; padding: 30px; text-align: center;">
<h1 style="margin: 0; color: white; font-size: 28px;">Your Travel Itinerary</h1>
<p style="margin: 10px 0 0 0; color: white; font-size: 14px;">Reference Code: <strong>{esc(view.code)}</strong></p>
</td></tr>
<tr><td style="padding: 30px; background-color: #f8f9fa; border-left: 4px solid {ACCENT};">
{_email_greeting(view, brand_name, custom_message)}
</td></tr>
<tr><td style="padding: 30px;">
<h2 style="margin: 0 0 20px 0; color: #333; font-size: 22px; border-bottom: 2px solid {ACCENT}; padding-bottom: 10px;">{esc(view.doc_title or "Business Trip")}</h2>
<table width="100%" cellpadding="8" cellspacing="0" border="0">
<tr><td style="{_MUTED} width: 150px;"><strong>Travelers:</strong></td><td style="{_CELL}">{esc(view.participants)}</td></tr>
<tr><td style="{_MUTED}"><strong>Purpose:</strong></td><td style="{_CELL}">{esc(view.purpose)}</td></tr>
<tr><td style="{_MUTED}"><strong>Dates:</strong></td><td style="{_CELL}">{esc(date_range_label(view))}</td></tr>
<tr><td style="{_MUTED}"><strong>Contact:</strong></td><td style="{_CELL}">{esc(view.phones)}</td></tr>
</table>
<div style="text-align: center; margin: 30px 0;">
<a href="{esc(url)}" style="display: inline-block; background-color: {ACCENT}; color: white; padding: 15px 40px; text-decoration: none; border-radius: 6px; font-size: 16px; font-weight: bold;">View Full Itinerary Online</a>
<p style="margin: 10px 0 0 0; color: #666; font-size: 12px;">Or visit: {esc(url)}</p>
</div>
</td></tr>
{body}
<tr><td style="background-color: #f8f9fa; padding: 30px; text-align: center; border-top: 1px solid #e0e0e0;">
<p style="margin: 0 0 10px 0; color: #666; font-size: 12px;">This itinerary was sent by <strong>{esc(brand_name)}</strong></p>
<p style="margin: 0; color: #999; font-size: 11px;">For questions or changes, please contact your travel coordinator. Generated at {esc(_generated_label(generated_at))}.</p>
</td></tr>
</table>
</td></tr>
</table>
</body>
</html>
"""


def _email_greeting(view: ItineraryView, brand_name: str, custom_message: str | None) -> str:
    paragraph = 'style="margin: 0 0 15px 0; color: #333; font-size: 15px; line-height: 1.6;"'
    sign_off = (
        f'<p style="margin: 15px 0 0 0; color: #666; font-size: 14px;">'
        f"<strong>Best regards,</strong><br/>{esc(brand_name)} Travel Team</p>"
    )
    if custom_message and custom_message.strip():
        message = esc(custom_message).replace("\n", "<br/>")
        return f"<p {paragraph}>{message}</p>{sign_off}"

    starts = format_long_date(view.start_date)
    begins = f"Your journey begins on <strong>{esc(starts)}</strong>. " if starts else ""
    return (
        f"<p {paragraph}>Dear {esc(view.participants or 'Traveler')},</p>"
        f"<p {paragraph}>Your complete travel itinerary for "
        f"<strong>{esc(view.doc_title or 'your upcoming trip')}</strong> is ready. "
        "It contains flights, accommodation, site visits and important contact details.</p>"
        f"<p {paragraph}>{begins}Please review all details carefully and contact us if "
        "anything needs to change.</p>"
        f"<p {paragraph}>Have a safe and productive journey!</p>"
        f"{sign_off}"
    )


def _email_section(title: str, rows: list[str]) -> str:
    if not rows:
        return ""
    return (
        f"<tr><td {_SECTION_TD}>"
        f'<h3 style="margin: 0 0 15px 0; color: #333; font-size: 18px;">{title}</h3>'
        f"<table {_BOX}>{''.join(rows)}</table>"
        "</td></tr>\n"
    )


def _email_row(lines: list[str]) -> str:
    return f'<tr><td style="border-bottom: 1px solid #e0e0e0;">{"".join(lines)}</td></tr>'


def _email_flight(f: FlightView) -> str:
    lines = [
        f'<div style="{_CELL} font-weight: bold;">'
        f"{esc(f.airline or 'Airline')} {esc(f.flight)} - {esc(f.date_label)}</div>",
        f'<div style="{_MUTED}">{esc(f.origin)} &rarr; {esc(f.destination)} | '
        f"Dep: {esc(f.dep_label)} | Arr: {esc(f.arr_label)}</div>",
    ]
    if f.pnr:
        lines.append(f'<div style="{_MUTED}">PNR: <span style="{_MONO}">{esc(f.pnr)}</span></div>')
    if f.eticket:
        lines.append(
            f'<div style="{_MUTED}">E-ticket: <span style="{_MONO}">{esc(f.eticket)}</span></div>'
        )
    return _email_row(lines)


def _email_stay(s: StayView) -> str:
    lines = [
        f'<div style="{_CELL} font-weight: bold;">{esc(s.hotel_name)}</div>',
        f'<div style="{_MUTED}">Check-in: {esc(s.checkin_label)} | '
        f"Check-out: {esc(s.checkout_label)}</div>",
        f'<div style="{_MUTED}">{esc(s.address)} | Phone: {esc(s.phone)}</div>',
    ]
    if s.confirmation:
        lines.append(f'<div style="{_NOTE}">Confirmation: {esc(s.confirmation)}</div>')
    return _email_row(lines)


def _email_visit(v: VisitView) -> str:
    lines = [
        f'<div style="{_CELL} font-weight: bold;">{esc(v.date_label)} - {esc(v.activity)}</div>',
        f'<div style="{_MUTED}">{esc(v.facility)} | {esc(v.address)}</div>',
    ]
    if v.transport:
        lines.append(f'<div style="{_MUTED}">Transport: {esc(v.transport)}</div>')
    return _email_row(lines)


def _email_transfer(t: TransferView) -> str:
    when = esc(t.pickup_time_label)
    if t.pickup_date_label:
        when = f"{esc(t.pickup_date_label)} {when}"
    lines = [
        f'<div style="{_CELL} font-weight: bold;">{esc(t.type)} - {esc(t.company)}</div>',
        f'<div style="{_MUTED}">Pickup: {when} at {esc(t.pickup_location)}</div>',
    ]
    if t.confirmation:
        lines.append(f'<div style="{_NOTE}">Confirmation: {esc(t.confirmation)}</div>')
    if t.notes:
        lines.append(f'<div style="{_MUTED} font-style: italic;">{esc(t.notes)}</div>')
    return _email_row(lines)


def _email_travel_docs(view: ItineraryView) -> str:
    docs = view.travel_docs
    if docs.is_empty():
        return ""
    items = [
        ("Visa number", docs.visa_number),
        ("Visa expiry", docs.visa_expiry),
        ("Insurance policy", docs.insurance_policy),
        ("Insurance provider", docs.insurance_provider),
        ("Emergency contact", docs.emergency_contact),
    ]
    rows = [
        _email_row([f'<div style="{_MUTED}"><strong>{label}:</strong> {esc(value)}</div>'])
        for label, value in items
    ]
    return _email_section("Travel Documents", rows)


def _email_attachment(a: AttachmentView) -> str:
    size = format_file_size(a.file_size)
    meta = f"{esc(size)} &bull; Click to download" if size else "Click to download"
    return _email_row(
        [
            _link(a, style=_ATTACHMENT_LINK),
            f'<div style="color: #666; font-size: 11px; margin-top: 4px;">{meta}</div>',
        ]
    )


# ---------------------------------------------------------------------------
# schema.org reservations for mail clients that surface trips
# ---------------------------------------------------------------------------


def reservation_markup(view: ItineraryView) -> list[dict[str, Any]]:
    under_name = {"@type": "Person", "name": view.participants or "Traveler"}
    blocks: list[dict[str, Any]] = []
    for f in view.flights:
        if f.departure is None or not (f.origin and f.destination):
            continue
        flight: dict[str, Any] = {
            "@type": "Flight",
            "flightNumber": f.flight or "",
            "departureAirport": {"@type": "Airport", "iataCode": f.origin},
            "arrivalAirport": {"@type": "Airport", "iataCode": f.destination},
            "departureTime": f.departure.isoformat(),
        }
        if f.airline:
            flight["airline"] = {"@type": "Airline", "name": f.airline}
        if f.arrival is not None:
            flight["arrivalTime"] = f.arrival.isoformat()
        blocks.append(
            {
                "@context": "http://schema.org",
                "@type": "FlightReservation",
                "reservationNumber": f.pnr or view.code,
                "reservationStatus": "http://schema.org/ReservationConfirmed",
                "underName": under_name,
                "reservationFor": flight,
            }
        )
    for s in view.stays:
        if s.checkin is None or s.checkout is None or not s.hotel_name:
            continue
        lodging: dict[str, Any] = {"@type": "LodgingBusiness", "name": s.hotel_name}
        if s.address:
            lodging["address"] = s.address
        if s.phone:
            lodging["telephone"] = s.phone
        blocks.append(
            {
                "@context": "http://schema.org",
                "@type": "LodgingReservation",
                "reservationNumber": s.confirmation or view.code,
                "reservationStatus": "http://schema.org/ReservationConfirmed",
                "underName": under_name,
                "reservationFor": lodging,
                "checkinDate": s.checkin.isoformat(),
                "checkoutDate": s.checkout.isoformat(),
            }
        )
    return blocks


def _structured_data(view: ItineraryView) -> str:
    blocks = reservation_markup(view)
    if not blocks:
        return ""
    payload = json.dumps(blocks, ensure_ascii=False, sort_keys=True)
    # Neutralize "</script>" and friends inside user-provided strings.
    payload = payload.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")
    return f'<script type="application/ld+json">{payload}</script>'


def html_to_text(content: str) -> str:
    """Plain-text alternative for email clients that do not render HTML."""
    text = re.sub(r"<(script|style)[^>]*>.*?</\1>", "", content, flags=re.DOTALL | re.I)
    text = re.sub(r"<br\s*/?>|</(p|div|tr|h[1-6])>", "\n", text, flags=re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    text = html.unescape(text)
    lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)
