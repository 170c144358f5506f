"""
Flight display stage, urgency and refresh cadence.

Everything here is a pure function of the inputs and the given time; nothing
is stored between calls.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from leavetime.core.config import Settings, get_settings
from leavetime.schemas.display import FlightState, Timeline, TimelineEntry, UrgencyLevel
from leavetime.schemas.flight import DetectionSource, Flight, ensure_utc, utc_now
from leavetime.schemas.leave_time import LeaveTimeCalculation, format_countdown

logger = logging.getLogger(__name__)

URGENT_THRESHOLD = timedelta(minutes=30)
SOON_THRESHOLD = timedelta(minutes=90)

STATE_LABELS: Dict[FlightState, str] = {
    FlightState.UPCOMING: "Upcoming",
    FlightState.PREPARE: "Get ready",
    FlightState.GO_MODE: "Time to go",
}


def classify_state(
    flight: Flight,
    calculation: Optional[LeaveTimeCalculation] = None,
    time_until_departure: Optional[timedelta] = None,
    now: Optional[datetime] = None,
    prepare_window: timedelta = timedelta(hours=24)
) -> FlightState:
    """
    Display stage for a flight.

    Go mode wins whenever the time left before leaving is within transport
    plus buffer, however far away departure is; the 24h window is only
    checked afterwards.
    """
    now = ensure_utc(now) if now else utc_now()
    if time_until_departure is None:
        time_until_departure = flight.time_until_departure(now)

    if calculation is not None:
        if calculation.time_until_leave_at(now) <= calculation.go_mode_threshold:
            return FlightState.GO_MODE

    if time_until_departure <= prepare_window:
        return FlightState.PREPARE
    return FlightState.UPCOMING


def classify_urgency(time_until_leave: Optional[timedelta]) -> UrgencyLevel:
    """
    Urgency from time left before leaving.

    No leave time means relaxed. An overdue (negative) leave time is under
    every threshold and therefore urgent.
    """
    if time_until_leave is None:
        return UrgencyLevel.RELAXED
    if time_until_leave < URGENT_THRESHOLD:
        return UrgencyLevel.URGENT
    if time_until_leave < SOON_THRESHOLD:
        return UrgencyLevel.SOON
    return UrgencyLevel.RELAXED


def state_label(state: Optional[FlightState]) -> str:
    if state is None:
        return "No upcoming flights"
    return STATE_LABELS[state]


class FlightStateEngine:
    """
    Refresh cadence and timeline generation for the glanceable display.

    Cadence is keyed by flight state only: go mode refreshes every minute,
    prepare every five, upcoming (and no flight) every fifteen.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def prepare_window(self) -> timedelta:
        return timedelta(hours=self.settings.PREPARE_WINDOW_HOURS)

    @property
    def lookahead(self) -> timedelta:
        return timedelta(hours=self.settings.TIMELINE_LOOKAHEAD_HOURS)

    def classify_state(
        self,
        flight: Flight,
        calculation: Optional[LeaveTimeCalculation] = None,
        now: Optional[datetime] = None
    ) -> FlightState:
        return classify_state(flight, calculation, now=now, prepare_window=self.prepare_window)

    def refresh_interval(self, state: Optional[FlightState]) -> timedelta:
        if state == FlightState.GO_MODE:
            return timedelta(seconds=self.settings.GO_MODE_REFRESH_SECONDS)
        if state == FlightState.PREPARE:
            return timedelta(seconds=self.settings.PREPARE_REFRESH_SECONDS)
        return timedelta(seconds=self.settings.UPCOMING_REFRESH_SECONDS)

    def entry_count(self, state: Optional[FlightState], has_flight: bool = True) -> int:
        """Entries to precompute: lookahead / refresh interval, or 1 with no flight"""
        if not has_flight:
            return 1
        interval = self.refresh_interval(state)
        return max(1, int(self.lookahead / interval))

    def build_entry(
        self,
        date: datetime,
        flight: Optional[Flight],
        calculation: Optional[LeaveTimeCalculation] = None
    ) -> TimelineEntry:
        if flight is None:
            return TimelineEntry(date=date)

        state = self.classify_state(flight, calculation, now=date)
        is_mock = flight.detection_source == DetectionSource.MANUAL_ENTRY
        if calculation is None:
            return TimelineEntry(date=date, flight=flight, state=state, is_mock_data=is_mock)

        remaining = calculation.time_until_leave_at(date)
        return TimelineEntry(
            date=date,
            flight=flight,
            leave_time=calculation.leave_time,
            time_until_leave=remaining,
            state=state,
            urgency=classify_urgency(remaining),
            is_overdue=remaining < timedelta(0),
            countdown=format_countdown(remaining),
            is_mock_data=is_mock
        )

    def build_timeline(
        self,
        flight: Optional[Flight],
        calculation: Optional[LeaveTimeCalculation] = None,
        now: Optional[datetime] = None
    ) -> Timeline:
        """
        Entries at now, now + interval, ... across the lookahead window.

        The interval comes from the flight's state at ``now``; the display is
        expected to ask again at ``refresh_at``.
        """
        now = ensure_utc(now) if now else utc_now()
        state = self.classify_state(flight, calculation, now=now) if flight is not None else None
        interval = self.refresh_interval(state)
        count = self.entry_count(state, has_flight=flight is not None)

        entries: List[TimelineEntry] = [
            self.build_entry(now + i * interval, flight, calculation)
            for i in range(count)
        ]

        logger.debug(
            f"Built timeline with {len(entries)} entries",
            extra={"state": state.value if state else None, "interval_seconds": interval.total_seconds()}
        )
        return Timeline(entries=entries, refresh_interval=interval, refresh_at=now + interval)
