"""
Deep links that open a ride-hailing or maps app for a trip to the airport.

Maps links always work, so every option carries one as its fallback.
"""
from typing import NamedTuple, Optional
from urllib.parse import quote, urlencode

from leavetime.schemas.airport import Airport
from leavetime.schemas.leave_time import Coordinate, TransportMode

APPLE_MAPS_BASE_URL = "http://maps.apple.com/"

UBER_APP_ID = "com.uber.UberClient"
GRAB_APP_ID = "com.grabtaxi.GrabTaxiClient"

# Markets where ride-hailing goes through Grab instead of Uber
GRAB_COUNTRIES = frozenset({"TH", "SG", "MY", "ID", "PH", "VN", "KH", "MM"})

# Apple Maps direction flags
DRIVING = "d"
TRANSIT = "r"
WALKING = "w"


class DeepLinks(NamedTuple):
    deep_link: Optional[str]
    requires_app: Optional[str]
    fallback: Optional[str]


def apple_maps_url(airport: Airport, direction_flag: str = DRIVING) -> str:
    return f"{APPLE_MAPS_BASE_URL}?daddr={airport.latitude},{airport.longitude}&dirflg={direction_flag}"


def uber_url(origin: Coordinate, airport: Airport) -> str:
    params = [
        ("action", "setPickup"),
        ("pickup[latitude]", str(origin.latitude)),
        ("pickup[longitude]", str(origin.longitude)),
        ("dropoff[latitude]", str(airport.latitude)),
        ("dropoff[longitude]", str(airport.longitude)),
        ("dropoff[nickname]", airport.name),
    ]
    return "uber://?" + urlencode(params, safe="[]", quote_via=quote)


def grab_url() -> str:
    # Grab's scheme takes no trip parameters; it only opens the app
    return "grab://"


def deep_links_for(mode: TransportMode, origin: Coordinate, airport: Airport) -> DeepLinks:
    """
    Primary link, the app it needs (bundle id) and the maps fallback.

    Taxi opens Uber, or Grab where Grab is the local ride-hailing app.
    Public transit opens transit directions, every other mode driving or
    walking directions.
    """
    fallback = apple_maps_url(airport)

    if mode == TransportMode.TAXI:
        if airport.country_code in GRAB_COUNTRIES:
            return DeepLinks(grab_url(), GRAB_APP_ID, fallback)
        return DeepLinks(uber_url(origin, airport), UBER_APP_ID, fallback)
    if mode == TransportMode.PUBLIC_TRANSIT:
        return DeepLinks(apple_maps_url(airport, TRANSIT), None, fallback)
    if mode == TransportMode.WALKING:
        return DeepLinks(apple_maps_url(airport, WALKING), None, fallback)
    return DeepLinks(fallback, None, fallback)
