import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Set, Tuple, Union

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError
from django.utils import timezone

from .constants import TIME_SLOTS
from .models import Appointment

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]

VERSION_CACHE_KEY = "availability:version"

POLICY_DAY = "day"
POLICY_SLOT = "slot"


def to_calendar_date(value: DateLike) -> Optional[date]:
    """
    Strip any time-of-day component so date-only values and timestamps
    compare equal. Accepts date, datetime or ISO strings like
    '2025-06-10' / '2025-06-10T00:00:00Z'.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def cache_version() -> str:
    version = cache.get(VERSION_CACHE_KEY)
    if version is None:
        version = uuid.uuid4().hex
        cache.set(VERSION_CACHE_KEY, version, None)
    return version


def invalidate_cache():
    """Called whenever appointments change, so cached windows are dropped."""
    cache.set(VERSION_CACHE_KEY, uuid.uuid4().hex, None)


class AvailabilityCalculator:
    """
    Decides which dates / time slots can be offered to a new booker.

    Occupancy comes from appointments whose status is pending, confirmed or
    rescheduled and whose date falls within [start, start + days]. Until
    refresh() has run nothing is reported booked, and a failed fetch leaves
    the window with zero occupied slots rather than blocking every date.
    """

    def __init__(self, start: Optional[date] = None, days: Optional[int] = None, policy: Optional[str] = None):
        self.start = to_calendar_date(start) if start else timezone.localdate()
        self.days = settings.BOOKING_WINDOW_DAYS if days is None else days
        self.end = self.start + timedelta(days=self.days)
        self.policy = policy or settings.BOOKING_OCCUPANCY_POLICY
        self._occupied: Set[Tuple[date, str]] = set()
        self.is_loaded = False

    @property
    def cache_key(self) -> str:
        return f"availability:{cache_version()}:{self.start.isoformat()}:{self.end.isoformat()}"

    def refresh(self) -> "AvailabilityCalculator":
        key = self.cache_key
        rows = cache.get(key)

        if rows is None:
            try:
                rows = list(
                    Appointment.objects
                    .filter(
                        appointment_date__gte=self.start,
                        appointment_date__lte=self.end,
                        status__in=Appointment.ACTIVE_STATUSES,
                    )
                    .values_list("appointment_date", "appointment_time")
                )
            except DatabaseError:
                # fail open: nothing occupied, nothing cached
                logger.exception(
                    "Could not fetch booked appointments for %s..%s", self.start, self.end
                )
                self._occupied = set()
                self.is_loaded = True
                return self
            cache.set(key, rows, settings.AVAILABILITY_CACHE_TTL)

        occupied = set()
        for appt_date, appt_time in rows:
            d = to_calendar_date(appt_date)
            if d is not None:
                occupied.add((d, (appt_time or "").strip()))

        self._occupied = occupied
        self.is_loaded = True
        logger.debug("Fetched %d booked slots for %s..%s", len(occupied), self.start, self.end)
        return self

    # --- raw occupancy

    def is_date_booked(self, value: DateLike) -> bool:
        if not self.is_loaded:
            return False
        d = to_calendar_date(value)
        return any(occupied_date == d for occupied_date, _ in self._occupied)

    def is_time_slot_booked(self, value: DateLike, time: str) -> bool:
        if not self.is_loaded:
            return False
        return (to_calendar_date(value), (time or "").strip()) in self._occupied

    def booked_slots_for(self, value: DateLike) -> List[str]:
        d = to_calendar_date(value)
        return sorted(t for occupied_date, t in self._occupied if occupied_date == d)

    # --- what can be offered

    def is_past(self, value: DateLike) -> bool:
        d = to_calendar_date(value)
        return d is None or d < timezone.localdate()

    def is_fully_booked(self, value: DateLike) -> bool:
        if not self.is_loaded:
            return False
        booked = set(self.booked_slots_for(value))
        return all(slot in booked for slot in TIME_SLOTS)

    def is_date_available(self, value: DateLike) -> bool:
        if self.is_past(value):
            return False
        if self.policy == POLICY_SLOT:
            return not self.is_fully_booked(value)
        return not self.is_date_booked(value)

    def is_time_slot_available(self, value: DateLike, time: str) -> bool:
        if self.is_past(value) or time not in TIME_SLOTS:
            return False
        return not self.is_time_slot_booked(value, time)

    def available_dates(self, offer_days: Optional[int] = None) -> List[Dict]:
        """Dates shown by the booking wizard: tomorrow onwards, with a flag each."""
        offer_days = settings.BOOKING_OFFER_DAYS if offer_days is None else offer_days
        today = timezone.localdate()
        dates = []
        for i in range(1, offer_days + 1):
            d = today + timedelta(days=i)
            dates.append({
                "date": d,
                "available": self.is_date_available(d),
                "booked_slots": len(self.booked_slots_for(d)),
            })
        return dates

    def time_slots_for(self, value: DateLike) -> List[Dict]:
        return [
            {"time": slot, "available": self.is_time_slot_available(value, slot)}
            for slot in TIME_SLOTS
        ]


def load_availability(start: Optional[date] = None, days: Optional[int] = None) -> AvailabilityCalculator:
    return AvailabilityCalculator(start=start, days=days).refresh()


def slot_conflict(value: DateLike, time: str, exclude_pk=None, policy: Optional[str] = None) -> bool:
    """
    True when an active appointment already blocks (value, time) under the
    occupancy policy: any booking on the day for "day", the same slot for
    "slot". Reads the table directly, not the cached window.
    """
    policy = policy or settings.BOOKING_OCCUPANCY_POLICY
    qs = Appointment.objects.filter(
        appointment_date=to_calendar_date(value),
        status__in=Appointment.ACTIVE_STATUSES,
    )
    if policy != POLICY_DAY:
        qs = qs.filter(appointment_time=(time or "").strip())
    if exclude_pk:
        qs = qs.exclude(pk=exclude_pk)
    return qs.exists()
