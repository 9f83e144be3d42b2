from __future__ import annotations

from datetime import datetime, timezone

from itinerary_desk.services.calendar_export import (
    MAX_LINE_OCTETS,
    build_ics,
    escape_ics_text,
    fold_line,
    unescape_ics_text,
    unfold_lines,
)
from itinerary_desk.services.render_model import build_view

NOW = datetime(2025, 5, 20, 8, 0, tzinfo=timezone.utc)


def export(record: dict, **kwargs) -> str:
    return build_ics(
        build_view(record),
        prodid="-//Test//Itinerary//EN",
        uid_domain="desk.test",
        now=kwargs.get("now", NOW),
    )


def events(ics: str) -> list[dict[str, str]]:
    found: list[dict[str, str]] = []
    current: dict[str, str] | None = None
    for line in unfold_lines(ics):
        if line == "BEGIN:VEVENT":
            current = {}
        elif line == "END:VEVENT":
            found.append(current or {})
            current = None
        elif current is not None and ":" in line:
            name, _, value = line.partition(":")
            current[name] = value
    return found


FLIGHT = {
    "flight": "SQ890",
    "date": "2025-06-01",
    "from": "SIN",
    "to": "HKG",
    "dep": "09:00",
    "arr": "11:30",
    "pnr": "ABC123",
}


def test_calendar_envelope() -> None:
    ics = export({"code": "IT-2025-A7X9B2"})
    lines = ics.split("\r\n")
    assert lines[:5] == [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//Test//Itinerary//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    assert ics.endswith("END:VCALENDAR\r\n")
    assert events(ics) == []


def test_single_flight_event() -> None:
    found = events(export({"code": "IT-2025-A7X9B2", "flights": [FLIGHT]}))
    assert len(found) == 1
    event = found[0]
    assert event["DTSTART"] == "20250601T090000Z"
    assert event["DTEND"] == "20250601T113000Z"
    assert "SIN" in event["SUMMARY"] and "HKG" in event["SUMMARY"]
    assert event["LOCATION"] == "SIN Airport"
    assert event["UID"] == "IT-2025-A7X9B2-flight-0@desk.test"
    assert event["DTSTAMP"] == "20250520T080000Z"
    assert "PNR: ABC123" in unescape_ics_text(event["DESCRIPTION"])


def test_missing_arrival_defaults_to_two_hours() -> None:
    flight = dict(FLIGHT, arr=None)
    (event,) = events(export({"code": "IT-2025-A7X9B2", "flights": [flight]}))
    assert event["DTSTART"] == "20250601T090000Z"
    assert event["DTEND"] == "20250601T110000Z"


def test_overnight_arrival_rolls_to_next_day() -> None:
    flight = dict(FLIGHT, dep="23:10", arr="05:45")
    (event,) = events(export({"code": "IT-2025-A7X9B2", "flights": [flight]}))
    assert event["DTEND"] == "20250602T054500Z"


def test_uids_are_stable_across_exports() -> None:
    record = {
        "code": "IT-2025-A7X9B2",
        "start_date": "2025-06-01",
        "end_date": "2025-06-05",
        "flights": [FLIGHT],
        "visits": [{"date": "2025-06-02", "facility": "Plant 2"}],
    }
    first = [e["UID"] for e in events(export(record))]
    second = [e["UID"] for e in events(export(record, now=datetime(2025, 6, 1, tzinfo=timezone.utc)))]
    assert first == second
    assert first == [
        "IT-2025-A7X9B2-trip@desk.test",
        "IT-2025-A7X9B2-flight-0@desk.test",
        "IT-2025-A7X9B2-visit-0@desk.test",
    ]


def test_text_escaping_round_trip() -> None:
    raw = "Acme, Inc.; Plant 2"
    escaped = escape_ics_text(raw)
    assert escaped == "Acme\\, Inc.\\; Plant 2"
    assert unescape_ics_text(escaped) == raw
    assert escape_ics_text("a\\b\nc") == "a\\\\b\\nc"
    assert unescape_ics_text(escape_ics_text("a\\b\nc")) == "a\\b\nc"

    (event,) = events(
        export({"code": "IT-2025-A7X9B2", "visits": [{"date": "2025-06-02", "facility": raw}]})
    )
    assert event["SUMMARY"] == "Visit: Acme\\, Inc.\\; Plant 2"


def test_visit_without_date_is_skipped() -> None:
    record = {
        "code": "IT-2025-A7X9B2",
        "visits": [
            {"date": "2025-06-02", "activity": "Audit"},
            {"activity": "No date yet"},
            {"date": "2025-06-03", "activity": "Review"},
        ],
    }
    found = events(export(record))
    assert [e["UID"] for e in found] == [
        "IT-2025-A7X9B2-visit-0@desk.test",
        "IT-2025-A7X9B2-visit-2@desk.test",
    ]
    assert found[0]["DTSTART"] == "20250602T090000Z"
    assert found[0]["DTEND"] == "20250602T170000Z"
    assert found[1]["SUMMARY"] == "Visit: Review"


def test_hotel_is_all_day_with_exclusive_end() -> None:
    record = {
        "code": "IT-2025-A7X9B2",
        "accommodation": [
            {"hotel_name": "Harbour View", "checkin": "2025-07-01", "checkout": "2025-07-03"}
        ],
    }
    (event,) = events(export(record))
    assert event["DTSTART;VALUE=DATE"] == "20250701"
    assert event["DTEND;VALUE=DATE"] == "20250704"
    assert event["SUMMARY"] == "Harbour View"


def test_trip_window_and_description() -> None:
    record = {
        "code": "IT-2025-A7X9B2",
        "doc_title": "Supplier Audit",
        "participants": "Jane Tan",
        "start_date": "2025-06-01",
        "end_date": "2025-06-05",
    }
    (event,) = events(export(record))
    assert event["DTSTART;VALUE=DATE"] == "20250601"
    assert event["DTEND;VALUE=DATE"] == "20250606"
    assert unescape_ics_text(event["DESCRIPTION"]).split("\n") == [
        "Business travel",
        "Code: IT-2025-A7X9B2",
        "Traveler: Jane Tan",
    ]


def test_transport_pickup_date_falls_back_to_trip_start() -> None:
    record = {
        "code": "IT-2025-A7X9B2",
        "transport": [
            {"type": "Taxi", "company": "City Cabs", "pickup_time": "07:00"},
            {"type": "Shuttle", "pickup_date": "2025-06-03", "pickup_time": "18:30"},
            {"type": "Bus", "pickup_date": "someday", "pickup_time": "10:00"},
        ],
    }
    without_trip = events(export(record))
    assert [e["UID"] for e in without_trip] == ["IT-2025-A7X9B2-transport-1@desk.test"]

    found = events(export(dict(record, start_date="2025-06-01", end_date="2025-06-05")))
    transfers = [e for e in found if "-transport-" in e["UID"]]
    assert [e["UID"] for e in transfers] == [
        "IT-2025-A7X9B2-transport-0@desk.test",
        "IT-2025-A7X9B2-transport-1@desk.test",
    ]
    assert transfers[0]["DTSTART"] == transfers[0]["DTEND"] == "20250601T070000Z"
    assert transfers[0]["SUMMARY"] == "Taxi - City Cabs"
    assert transfers[1]["DTSTART"] == "20250603T183000Z"


def test_legacy_ground_transport_key_is_read() -> None:
    record = {
        "code": "IT-2025-A7X9B2",
        "start_date": "2025-06-01",
        "end_date": "2025-06-01",
        "ground_transport": [{"type": "Taxi", "pickup_time": "07:00"}],
    }
    uids = [e["UID"] for e in events(export(record))]
    assert "IT-2025-A7X9B2-transport-0@desk.test" in uids


def test_malformed_entries_never_raise() -> None:
    record = {
        "code": "IT-2025-A7X9B2",
        "flights": [{"date": "not-a-date", "dep": "09:00"}, "garbage", {"date": "2025-06-01", "dep": "9am"}],
        "accommodation": [{"checkin": "2025-07-01"}],
        "visits": None,
        "travel_docs": "nope",
    }
    assert events(export(record)) == []


def test_long_lines_are_folded() -> None:
    title = " ".join(["Quarterly supplier quality review →"] * 4)
    ics = export({"code": "IT-2025-A7X9B2", "start_date": "2025-06-01", "end_date": "2025-06-02", "doc_title": title})
    for line in ics.split("\r\n"):
        assert len(line.encode("utf-8")) <= MAX_LINE_OCTETS
    (event,) = events(ics)
    assert event["SUMMARY"] == escape_ics_text(title)


def test_fold_line_keeps_multibyte_characters_whole() -> None:
    line = "SUMMARY:" + "→" * 60
    folded = fold_line(line)
    for part in folded.split("\r\n"):
        assert len(part.encode("utf-8")) <= MAX_LINE_OCTETS
    assert unfold_lines(folded) == [line]
