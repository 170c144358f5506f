import json
from datetime import timedelta

import pytest
from pydantic import ValidationError

from leavetime.schemas.flight import (
    DetectionSource,
    FlightStatus,
    departing_within,
    most_imminent,
    upcoming_flights,
)

from tests.conftest import NOW, TOMORROW_1730, make_flight


def test_airport_codes_resolve_through_directory():
    flight = make_flight(departure="dmk", arrival="bkk")
    assert flight.departure_airport.code == "DMK"
    assert flight.arrival_airport.code == "BKK"


def test_unknown_airport_code_is_rejected():
    with pytest.raises(ValidationError):
        make_flight(departure="ZZZ")


def test_flight_number_is_canonical():
    assert make_flight(flight_number=" tg100 ").flight_number == "TG100"
    assert make_flight(flight_number="  ").flight_number is None


@pytest.mark.parametrize("departure,arrival,expected", [
    ("DMK", "CNX", False),
    ("DMK", "BKK", False),
    ("DMK", "SIN", True),
    ("MAD", "SVQ", False),
    ("MAD", "CDG", True),
    ("DMK", None, True),
    ("CNX", None, False),
    ("OAK", None, False),
])
def test_is_international(departure, arrival, expected):
    assert make_flight(departure=departure, arrival=arrival).is_international is expected


def test_confidence_follows_detection_source():
    assert make_flight(source=DetectionSource.MANUAL_ENTRY).confidence == 1.0
    assert make_flight(source=DetectionSource.GOOGLE_CALENDAR).confidence == 0.90
    assert make_flight(source=DetectionSource.LOCAL_CALENDAR).confidence == 0.70


def test_deduplication_key():
    assert make_flight().deduplication_key == "TG100_2025-03-02T17:30:00Z"
    assert make_flight(flight_number=None).deduplication_key == "unknown_2025-03-02T17:30:00Z"


def test_display_title():
    assert make_flight().display_title == "TG100"
    assert make_flight(flight_number=None, arrival="CNX").display_title == "DMK → CNX"
    assert make_flight(flight_number=None).display_title == "Flight from Bangkok"


def test_status_at():
    flight = make_flight()
    assert flight.status_at(NOW) == FlightStatus.UPCOMING
    assert flight.status_at(TOMORROW_1730 + timedelta(hours=1)) == FlightStatus.DEPARTED
    assert flight.status_at(TOMORROW_1730 + timedelta(hours=3)) == FlightStatus.UNKNOWN


def test_is_imminent():
    assert make_flight(departure_time=NOW + timedelta(hours=5)).is_imminent(NOW)
    assert not make_flight(departure_time=NOW + timedelta(hours=30)).is_imminent(NOW)
    assert not make_flight(departure_time=NOW - timedelta(hours=1)).is_imminent(NOW)


def test_is_more_urgent_than():
    soon = make_flight(departure_time=NOW + timedelta(hours=2))
    later = make_flight(departure_time=NOW + timedelta(hours=8))
    assert soon.is_more_urgent_than(later)
    assert not later.is_more_urgent_than(soon)


def test_local_departure_time_uses_airport_timezone():
    local = make_flight().local_departure_time()
    assert (local.hour, local.minute) == (0, 30)
    assert local.utcoffset() == timedelta(hours=7)


def test_recommended_airport_arrival_time():
    assert make_flight(arrival="CNX").recommended_airport_arrival_time() == TOMORROW_1730 - timedelta(minutes=90)
    assert make_flight(arrival="SIN").recommended_airport_arrival_time() == TOMORROW_1730 - timedelta(minutes=180)


def test_with_source_keeps_identity():
    flight = make_flight()
    retagged = flight.with_source(DetectionSource.GOOGLE_CALENDAR)
    assert retagged.id == flight.id
    assert retagged.detection_source == DetectionSource.GOOGLE_CALENDAR
    assert flight.detection_source == DetectionSource.STRUCTURED_EVENT


def test_json_uses_utc_timestamps_and_enum_tags():
    payload = json.loads(make_flight().model_dump_json())
    assert payload["departure_time"] == "2025-03-02T17:30:00Z"
    assert payload["detection_source"] == "structuredEvent"
    assert payload["departure_airport"]["code"] == "DMK"


def test_collection_helpers():
    past = make_flight(flight_number="AA1", departure_time=NOW - timedelta(hours=1))
    soon = make_flight(flight_number="AA2", departure_time=NOW + timedelta(hours=2))
    later = make_flight(flight_number="AA3", departure_time=NOW + timedelta(days=3))

    assert upcoming_flights([later, past, soon], NOW) == [soon, later]
    assert most_imminent([later, past, soon], NOW) == soon
    assert most_imminent([past], NOW) is None
    assert departing_within([later, soon], timedelta(hours=24), NOW) == [soon]
