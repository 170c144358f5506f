"""
Google Calendar flight source (Calendar API v3).

OAuth sign-in and token refresh live outside this service; it only needs an
async callable returning a current access token.
"""
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional

import httpx
from dateutil import parser as date_parser

from leavetime.core.config import Settings, get_settings
from leavetime.exceptions import (
    CalendarAccessDeniedException,
    CalendarAPIException,
    NoEventsFoundException,
)
from leavetime.schemas.calendar import AuthorizationStatus, CalendarEvent
from leavetime.schemas.flight import DetectionSource, Flight, utc_now
from leavetime.services.detection.flight_detector import FlightDetector
from leavetime.services.sources.base import FlightSource
from leavetime.utils.decorators import retry_with_backoff
from leavetime.utils.single_flight import SingleFlight

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Awaitable[Optional[str]]]

# Cap on pages per fetch; 250 events per page is plenty for a 90 day window
MAX_PAGES = 20


def _format_rfc3339(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_google_event(item: Dict) -> Optional[CalendarEvent]:
    """
    Map a Calendar API event resource to a CalendarEvent.

    Timed events carry ``dateTime``; all-day events only a ``date``, which is
    taken as midnight UTC. Cancelled or undated items are dropped.
    """
    if item.get("status") == "cancelled":
        return None

    def _parse(when: Optional[Dict]) -> Optional[datetime]:
        if not when:
            return None
        raw = when.get("dateTime") or when.get("date")
        if not raw:
            return None
        return date_parser.isoparse(raw)

    try:
        start = _parse(item.get("start"))
        if start is None or not item.get("id"):
            return None
        return CalendarEvent(
            id=item["id"],
            title=item.get("summary"),
            notes=item.get("description"),
            location=item.get("location"),
            start=start,
            end=_parse(item.get("end"))
        )
    except (TypeError, ValueError) as e:
        logger.warning(f"Skipping unparseable Google Calendar event {item.get('id')}: {str(e)}")
        return None


class GoogleCalendarFlightSource(FlightSource):
    """
    Primary flight source reading the user's primary Google calendar.
    """

    source_name = "Google Calendar"
    requires_auth = True

    def __init__(
        self,
        detector: FlightDetector,
        token_provider: Optional[TokenProvider] = None,
        access_token: Optional[str] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        settings = settings or get_settings()
        self.detector = detector
        self.api_base_url = settings.GOOGLE_CALENDAR_API_BASE_URL.rstrip("/")
        self.timeout = settings.GOOGLE_CALENDAR_TIMEOUT
        self.max_results = settings.GOOGLE_CALENDAR_MAX_RESULTS
        self.scan_days_ahead = settings.SCAN_DAYS_AHEAD
        self.clock = clock

        self._token_provider = token_provider
        self._access_token = access_token
        self._transport = transport
        self._token_flight = SingleFlight()
        self._last_sync_time: Optional[datetime] = None

    @property
    def is_available(self) -> bool:
        return self._access_token is not None or self._token_provider is not None

    @property
    def last_sync_time(self) -> Optional[datetime]:
        return self._last_sync_time

    async def _get_access_token(self) -> str:
        """Cached token, or one fresh token shared by all concurrent callers"""
        if self._access_token:
            return self._access_token
        if self._token_provider is None:
            raise CalendarAccessDeniedException("Not signed in to Google Calendar.")

        token = await self._token_flight.do("access_token", self._token_provider)
        if not token:
            raise CalendarAccessDeniedException("Google Calendar did not provide an access token.")
        self._access_token = token
        return token

    @retry_with_backoff(max_retries=2, initial_delay=1.0, retry_on=(httpx.TransportError,))
    async def _fetch_page(
        self,
        client: httpx.AsyncClient,
        params: Dict[str, str],
        access_token: str
    ) -> Dict:
        response = await client.get(
            "/calendars/primary/events",
            params=params,
            headers={"Authorization": f"Bearer {access_token}"}
        )

        if response.status_code == 401:
            logger.warning("Google Calendar rejected the access token, signing out")
            self._access_token = None
            raise CalendarAccessDeniedException("Google Calendar authorization expired. Please sign in again.")

        if response.status_code != 200:
            logger.error(f"Google Calendar API error: {response.status_code} - {response.text}")
            raise CalendarAPIException(
                f"Google Calendar API returned {response.status_code}",
                status_code=response.status_code
            )

        return response.json()

    async def list_events(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        """
        List events in [start, end) across all result pages.

        Raises:
            CalendarAccessDeniedException: No token, or the token was rejected
            CalendarAPIException: Any other API error
        """
        access_token = await self._get_access_token()
        params = {
            "timeMin": _format_rfc3339(start),
            "timeMax": _format_rfc3339(end),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": str(self.max_results),
        }

        events: List[CalendarEvent] = []
        async with httpx.AsyncClient(
            base_url=self.api_base_url,
            timeout=self.timeout,
            transport=self._transport
        ) as client:
            for _ in range(MAX_PAGES):
                try:
                    payload = await self._fetch_page(client, params, access_token)
                except httpx.TransportError as e:
                    raise CalendarAPIException(f"Google Calendar unreachable: {str(e)}") from e

                for item in payload.get("items", []):
                    event = parse_google_event(item)
                    if event is not None:
                        events.append(event)

                page_token = payload.get("nextPageToken")
                if not page_token:
                    break
                params = {**params, "pageToken": page_token}
            else:
                logger.warning(f"Stopped paging Google Calendar after {MAX_PAGES} pages")

        return events

    async def fetch_flights(self) -> List[Flight]:
        now = self.clock()
        events = await self.list_events(now, now + timedelta(days=self.scan_days_ahead))

        try:
            flights = self.detector.detect_flights(events, AuthorizationStatus.AUTHORIZED)
        except NoEventsFoundException:
            flights = []

        self._last_sync_time = self.clock()
        logger.info(f"Google Calendar: {len(events)} events, {len(flights)} flights")
        return [flight.with_source(DetectionSource.GOOGLE_CALENDAR) for flight in flights]

    async def disconnect(self) -> None:
        self._access_token = None
        self._token_provider = None
        self._last_sync_time = None
        logger.info("Google Calendar disconnected")
