"""iCalendar (RFC 5545) export of an itinerary.

Clock times on entries carry no zone. They are written as UTC wall-clock
values (``...Z``) without conversion, so a 09:00 departure shows as 09:00 UTC.
Calendar clients that already imported earlier exports rely on that.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone

from itinerary_desk.services.render_model import ItineraryView

CRLF = "\r\n"
MAX_LINE_OCTETS = 75
# Arrival time is often unknown when a flight is first entered.
DEFAULT_FLIGHT_DURATION = timedelta(hours=2)
VISIT_START = time(9, 0)
VISIT_END = time(17, 0)

_ESCAPED = re.compile(r"\\([\\;,nN])")


def escape_ics_text(value: object) -> str:
    text = "" if value is None else str(value)
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\r", "\\n")
        .replace("\n", "\\n")
    )


def unescape_ics_text(value: str) -> str:
    return _ESCAPED.sub(lambda m: "\n" if m.group(1) in "nN" else m.group(1), value)


def fold_line(line: str) -> str:
    """Fold a content line to 75 octets without splitting UTF-8 sequences."""
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line
    parts: list[str] = []
    current = ""
    current_octets = 0
    limit = MAX_LINE_OCTETS
    for char in line:
        size = len(char.encode("utf-8"))
        if current_octets + size > limit:
            parts.append(current)
            current = ""
            current_octets = 0
            # Continuation lines start with a space that counts toward the limit.
            limit = MAX_LINE_OCTETS - 1
        current += char
        current_octets += size
    parts.append(current)
    return (CRLF + " ").join(parts)


def unfold_lines(text: str) -> list[str]:
    return text.replace(CRLF + " ", "").split(CRLF)


def format_utc(value: datetime) -> str:
    return value.strftime("%Y%m%dT%H%M%SZ")


def format_date(value: date) -> str:
    return value.strftime("%Y%m%d")


def build_ics(
    view: ItineraryView,
    *,
    prodid: str,
    uid_domain: str,
    now: datetime | None = None,
) -> str:
    stamp = format_utc((now or datetime.now(timezone.utc)).astimezone(timezone.utc))
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{prodid}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]

    def uid(*parts: object) -> str:
        local = "-".join(str(part) for part in (view.code, *parts))
        return f"{escape_ics_text(local)}@{uid_domain}"

    def event(props: list[tuple[str, str | None]]) -> None:
        lines.append("BEGIN:VEVENT")
        for name, value in props:
            if value is not None:
                lines.append(f"{name}:{value}")
        lines.append("END:VEVENT")

    if view.start_date and view.end_date:
        description = "\n".join(
            [
                view.purpose or "Business travel",
                f"Code: {view.code}",
                f"Traveler: {view.participants or ''}",
            ]
        )
        event(
            [
                ("UID", uid("trip")),
                ("DTSTAMP", stamp),
                ("DTSTART;VALUE=DATE", format_date(view.start_date)),
                ("DTEND;VALUE=DATE", format_date(view.end_date + timedelta(days=1))),
                ("SUMMARY", escape_ics_text(view.doc_title or "Business Trip")),
                ("DESCRIPTION", escape_ics_text(description)),
            ]
        )

    for flight in view.flights:
        departure = flight.departure
        if departure is None:
            continue
        arrival = flight.arrival or departure + DEFAULT_FLIGHT_DURATION
        route = f"{flight.origin or ''} → {flight.destination or ''}"
        location = f"{flight.origin} Airport" if flight.origin else None
        label = f"Flight {flight.flight}" if flight.flight else "Flight"
        details = []
        if flight.pnr:
            details.append(f"PNR: {flight.pnr}")
        if flight.eticket:
            details.append(f"E-ticket: {flight.eticket}")
        if flight.airline:
            details.append(f"Airline: {flight.airline}")
        event(
            [
                ("UID", uid("flight", flight.index)),
                ("DTSTAMP", stamp),
                ("DTSTART", format_utc(departure)),
                ("DTEND", format_utc(arrival)),
                ("SUMMARY", escape_ics_text(f"{label}: {route}")),
                ("DESCRIPTION", escape_ics_text("\n".join(details)) if details else None),
                ("LOCATION", escape_ics_text(location) if location else None),
            ]
        )

    for visit in view.visits:
        if visit.date is None:
            continue
        description = None
        if visit.activity:
            description = visit.activity
            if visit.transport:
                description += f"\nTransport: {visit.transport}"
        event(
            [
                ("UID", uid("visit", visit.index)),
                ("DTSTAMP", stamp),
                ("DTSTART", format_utc(datetime.combine(visit.date, VISIT_START))),
                ("DTEND", format_utc(datetime.combine(visit.date, VISIT_END))),
                (
                    "SUMMARY",
                    escape_ics_text(f"Visit: {visit.facility or visit.activity or 'Site Visit'}"),
                ),
                ("DESCRIPTION", escape_ics_text(description) if description else None),
                ("LOCATION", escape_ics_text(visit.address) if visit.address else None),
            ]
        )

    for stay in view.stays:
        if stay.checkin is None or stay.checkout is None or stay.span_end is None:
            continue
        details = []
        if stay.confirmation:
            details.append(f"Confirmation: {stay.confirmation}")
        if stay.phone:
            details.append(f"Phone: {stay.phone}")
        event(
            [
                ("UID", uid("hotel", stay.index)),
                ("DTSTAMP", stamp),
                ("DTSTART;VALUE=DATE", format_date(stay.checkin)),
                ("DTEND;VALUE=DATE", format_date(stay.span_end)),
                ("SUMMARY", escape_ics_text(stay.hotel_name or "Hotel")),
                ("DESCRIPTION", escape_ics_text("\n".join(details)) if details else None),
                ("LOCATION", escape_ics_text(stay.address) if stay.address else None),
            ]
        )

    for transfer in view.transfers:
        if transfer.pickup_date_label and transfer.pickup_date is None:
            continue
        pickup_date = transfer.pickup_date or view.start_date
        if transfer.pickup_time is None or pickup_date is None:
            continue
        # A pickup is a reminder at a point in time, so start and end coincide.
        pickup = format_utc(datetime.combine(pickup_date, transfer.pickup_time))
        details = []
        if transfer.confirmation:
            details.append(f"Confirmation: {transfer.confirmation}")
        if transfer.notes:
            details.append(transfer.notes)
        summary = f"{transfer.type or 'Transport'} - {transfer.company or 'Pickup'}"
        event(
            [
                ("UID", uid("transport", transfer.index)),
                ("DTSTAMP", stamp),
                ("DTSTART", pickup),
                ("DTEND", pickup),
                ("SUMMARY", escape_ics_text(summary)),
                ("DESCRIPTION", escape_ics_text("\n".join(details)) if details else None),
                (
                    "LOCATION",
                    escape_ics_text(transfer.pickup_location) if transfer.pickup_location else None,
                ),
            ]
        )

    lines.append("END:VCALENDAR")
    return CRLF.join(fold_line(line) for line in lines) + CRLF
