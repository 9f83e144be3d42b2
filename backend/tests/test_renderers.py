from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from types import SimpleNamespace

from itinerary_desk.services.render_model import build_view
from itinerary_desk.services.renderers import (
    email_subject,
    esc,
    html_to_text,
    render_email_html,
    render_print_html,
    reservation_markup,
)

GENERATED = datetime(2025, 5, 20, 8, 0, tzinfo=timezone.utc)

RECORD = {
    "code": "IT-2025-A7X9B2",
    "doc_title": "Hong Kong Supplier Audit",
    "participants": "Jane Tan; Marcus Lee",
    "purpose": "Annual audit",
    "factory": "Acme, Inc.; Plant 2",
    "start_date": "2025-07-01",
    "end_date": "2025-07-03",
    "flights": [
        {
            "flight": "SQ890",
            "airline": "Singapore Airlines",
            "date": "2025-07-01",
            "from": "SIN",
            "to": "HKG",
            "dep": "09:00",
            "arr": "11:30",
            "pnr": "ABC123",
        }
    ],
    "accommodation": [
        {
            "hotel_name": "Harbour View",
            "checkin": "2025-07-01",
            "checkout": "2025-07-03",
            "confirmation": "HV-7781",
        }
    ],
}


def print_page(record: dict, documents=()) -> str:
    return render_print_html(
        build_view(record, documents),
        brand_name="Itinerary Desk",
        generated_at=GENERATED,
    )


def email_page(record: dict, custom_message: str | None = None) -> str:
    return render_email_html(
        build_view(record),
        brand_name="Itinerary Desk",
        app_url="https://desk.test/",
        custom_message=custom_message,
        generated_at=GENERATED,
    )


def test_esc_escapes_markup_and_fills_placeholder() -> None:
    assert esc("<b>\"Tom's\" & co</b>") == "&lt;b&gt;&quot;Tom&#x27;s&quot; &amp; co&lt;/b&gt;"
    assert esc(None) == "N/A"
    assert esc("   ") == "N/A"
    assert esc("Acme, Inc.; Plant 2") == "Acme, Inc.; Plant 2"


def test_print_shows_only_non_empty_sections() -> None:
    page = print_page(RECORD)
    assert "<h2>Flights</h2>" in page
    assert "<h2>Accommodation</h2>" in page
    for missing in ("Site Visits", "Ground Transport", "Travel Documents", "Attached Files"):
        assert f"<h2>{missing}</h2>" not in page


def test_print_accommodation_labels_and_nights() -> None:
    page = print_page(RECORD)
    row = re.search(r"<td>Harbour View</td>(.*?)</tr>", page).group(1)
    assert "<td>2025-07-01</td><td>2025-07-03</td><td>2</td>" in row
    assert "<td>N/A</td>" in row


def test_print_escapes_user_content() -> None:
    record = dict(RECORD, doc_title="<script>alert('x')</script>")
    page = print_page(record)
    assert "<script>alert" not in page
    assert "&lt;script&gt;alert(&#x27;x&#x27;)&lt;/script&gt;" in page


def test_print_is_deterministic_for_a_fixed_clock() -> None:
    assert print_page(RECORD) == print_page(RECORD)
    assert "Generated at 2025-05-20 08:00 UTC" in print_page(RECORD)


def test_print_lists_attachments() -> None:
    document = SimpleNamespace(
        file_name="visa <scan>.pdf",
        file_url="https://files.test/a?x=1&y=2",
        file_type="application/pdf",
        file_size=2048,
    )
    page = print_page(RECORD, [document])
    assert "<h2>Attached Files</h2>" in page
    assert '<a href="https://files.test/a?x=1&amp;y=2">visa &lt;scan&gt;.pdf</a>' in page
    assert "2.0 KB" in page


def test_email_links_lookup_page() -> None:
    page = email_page(RECORD)
    assert 'href="https://desk.test/?code=IT-2025-A7X9B2"' in page
    assert "Dear Jane Tan; Marcus Lee," in page
    assert "Tuesday, July 1, 2025" in page


def test_email_custom_message_replaces_greeting() -> None:
    page = email_page(RECORD, custom_message="Hi team,\n<b>bring</b> your badges")
    assert "Dear Jane Tan" not in page
    assert "Hi team,<br/>&lt;b&gt;bring&lt;/b&gt; your badges" in page


def test_email_subject_prefers_title() -> None:
    assert email_subject(build_view(RECORD)) == "Your Travel Itinerary: Hong Kong Supplier Audit"
    untitled = dict(RECORD, doc_title=None)
    assert email_subject(build_view(untitled)) == "Your Travel Itinerary: IT-2025-A7X9B2"


def test_reservation_markup() -> None:
    flight, stay = reservation_markup(build_view(RECORD))
    assert flight["@type"] == "FlightReservation"
    assert flight["reservationNumber"] == "ABC123"
    assert flight["reservationFor"]["departureAirport"]["iataCode"] == "SIN"
    assert flight["reservationFor"]["departureTime"] == "2025-07-01T09:00:00"
    assert stay["@type"] == "LodgingReservation"
    assert stay["checkoutDate"] == "2025-07-03"


def test_structured_data_cannot_close_script_tag() -> None:
    record = dict(RECORD)
    record["accommodation"] = [
        dict(RECORD["accommodation"][0], hotel_name="</script><script>alert(1)</script>")
    ]
    page = email_page(record)
    script = re.search(r'<script type="application/ld\+json">(.*?)</script>', page, re.S).group(1)
    assert "<" not in script
    blocks = json.loads(script)
    assert blocks[1]["reservationFor"]["name"] == "</script><script>alert(1)</script>"


def test_html_to_text() -> None:
    text = html_to_text(email_page(RECORD))
    assert "<" not in text
    assert "IT-2025-A7X9B2" in text
    assert "SIN → HKG" in text
    assert "LodgingReservation" not in text
