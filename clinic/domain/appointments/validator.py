"""Appointment time rules shared by patient booking and staff walk-ins"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from ...config import CLINIC_TIMEZONE

MIN_LEAD_TIME = timedelta(minutes=30)
MAX_BOOKING_HORIZON = timedelta(days=15)
OPENING_HOUR = 8
CLOSING_HOUR = 20  # exclusive
SLOT_MINUTES = (0, 15, 30, 45)


@dataclass(frozen=True)
class TimeCheck:
    valid: bool
    reason: Optional[str] = None


@lru_cache(maxsize=None)
def get_clinic_timezone(name: str = CLINIC_TIMEZONE) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def to_clinic_time(value: datetime, clinic_tz: Optional[tzinfo] = None) -> datetime:
    """Aware datetime in the clinic's timezone. Naive input is taken as clinic-local."""
    clinic_tz = clinic_tz or get_clinic_timezone()
    if value.tzinfo is None:
        return value.replace(tzinfo=clinic_tz)
    return value.astimezone(clinic_tz)


def to_storage_time(value: datetime, clinic_tz: Optional[tzinfo] = None) -> datetime:
    """Naive UTC, the form appointment times are stored in"""
    return to_clinic_time(value, clinic_tz).astimezone(timezone.utc).replace(tzinfo=None)


def check_appointment_time(
    appointment_time: datetime, now: datetime, clinic_tz: Optional[tzinfo] = None
) -> TimeCheck:
    """
    Check a proposed appointment time. Rules are checked in order and the
    first failure is reported.
    """
    when = to_clinic_time(appointment_time, clinic_tz)
    # Elapsed-time rules compare instants; same-zone aware datetimes compare by wall clock
    when_utc = when.astimezone(timezone.utc)
    current_utc = to_clinic_time(now, clinic_tz).astimezone(timezone.utc)

    if when_utc < current_utc:
        return TimeCheck(False, "Appointment time cannot be in the past.")
    if when_utc < current_utc + MIN_LEAD_TIME:
        return TimeCheck(False, "Appointment must be at least 30 minutes from now.")
    if when_utc > current_utc + MAX_BOOKING_HORIZON:
        return TimeCheck(False, "Appointment cannot be more than 15 days in the future.")
    if not OPENING_HOUR <= when.hour < CLOSING_HOUR:
        return TimeCheck(False, "Appointments are only available between 8:00 AM and 8:00 PM.")
    if when.minute not in SLOT_MINUTES:
        return TimeCheck(
            False,
            "Appointment time must be in 15-minute intervals (e.g., XX:00, XX:15, XX:30, XX:45).",
        )
    return TimeCheck(True)
