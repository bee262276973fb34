from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from clinic.domain.appointments.validator import check_appointment_time, to_storage_time

NOW = datetime(2030, 1, 8, 9, 0, tzinfo=timezone.utc)


def at(day: int, hour: int, minute: int) -> datetime:
    return datetime(2030, 1, day, hour, minute, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "when",
    [
        at(8, 9, 30),  # exactly 30 minutes ahead
        at(8, 19, 45),  # last slot of the day
        at(9, 8, 0),  # opening time
        at(23, 9, 0),  # exactly 15 days ahead
    ],
)
def test_accepts_valid_times(when):
    check = check_appointment_time(when, NOW)
    assert check.valid
    assert check.reason is None


def test_rejects_past_time():
    check = check_appointment_time(at(8, 8, 45), NOW)
    assert not check.valid
    assert check.reason == "Appointment time cannot be in the past."


def test_rejects_less_than_thirty_minutes_ahead():
    now = datetime(2030, 1, 8, 9, 1, tzinfo=timezone.utc)
    check = check_appointment_time(at(8, 9, 30), now)
    assert not check.valid
    assert check.reason == "Appointment must be at least 30 minutes from now."


def test_rejects_more_than_fifteen_days_ahead():
    check = check_appointment_time(at(23, 9, 15), NOW)
    assert not check.valid
    assert check.reason == "Appointment cannot be more than 15 days in the future."


@pytest.mark.parametrize("when", [at(9, 7, 45), at(9, 20, 0), at(9, 22, 30)])
def test_rejects_outside_opening_hours(when):
    check = check_appointment_time(when, NOW)
    assert not check.valid
    assert check.reason == "Appointments are only available between 8:00 AM and 8:00 PM."


@pytest.mark.parametrize("minute", [5, 10, 20, 59])
def test_rejects_off_grid_minutes(minute):
    check = check_appointment_time(at(9, 10, minute), NOW)
    assert not check.valid
    assert "15-minute intervals" in check.reason


def test_reports_first_failing_rule():
    # In the past and off the 15 minute grid: the past rule wins
    check = check_appointment_time(at(7, 10, 10), NOW)
    assert check.reason == "Appointment time cannot be in the past."


def test_opening_hours_follow_clinic_timezone():
    new_york = ZoneInfo("America/New_York")
    now = datetime(2030, 1, 8, 12, 0, tzinfo=timezone.utc)  # 07:00 in New York

    # 14:00 UTC is 09:00 EST
    assert check_appointment_time(datetime(2030, 1, 8, 14, 0, tzinfo=timezone.utc), now, new_york).valid
    # 02:00 UTC next day is 21:00 EST
    late = check_appointment_time(datetime(2030, 1, 9, 2, 0, tzinfo=timezone.utc), now, new_york)
    assert not late.valid


def test_naive_times_are_clinic_local():
    new_york = ZoneInfo("America/New_York")
    assert to_storage_time(datetime(2030, 1, 9, 9, 0), new_york) == datetime(2030, 1, 9, 14, 0)
    assert to_storage_time(datetime(2030, 1, 9, 9, 0, tzinfo=timezone.utc)) == datetime(2030, 1, 9, 9, 0)


def test_booking_horizon_measures_real_time_across_dst_change():
    new_york = ZoneInfo("America/New_York")
    now = datetime(2031, 3, 1, 15, 0, tzinfo=timezone.utc)  # 10:00 EST

    # 10:30 EDT on March 16th is 14 days 23:30 later; clocks sprang forward on March 9th
    inside = check_appointment_time(datetime(2031, 3, 16, 14, 30, tzinfo=timezone.utc), now, new_york)
    assert inside.valid

    beyond = check_appointment_time(datetime(2031, 3, 16, 15, 15, tzinfo=timezone.utc), now, new_york)
    assert beyond.reason == "Appointment cannot be more than 15 days in the future."
