"""Tests for recurrence arithmetic, expansion and scheduling."""
from contextlib import contextmanager
from datetime import datetime, timedelta
from itertools import islice

import pytest

from exceptions import InvalidDurationUnit, ValidationError
from models import Booking, RecurrencePlan
from services.recurrence import (
    RecurrenceScheduler,
    calculate_end_date,
    expand,
    expand_recurrence_in_background,
    occurrence_dates,
    parse_duration,
)


START = datetime(2024, 1, 15)


class TestCalculateEndDate:
    """End date = start + duration."""

    def test_months_are_calendar_aware(self):
        assert calculate_end_date(START, "3 months") == datetime(2024, 4, 15)

    def test_weeks_are_fixed_hours(self):
        assert calculate_end_date(START, "2 weeks") == START + timedelta(days=14)

    def test_one_year(self):
        assert calculate_end_date(START, "1 year") == datetime(2025, 1, 15)

    def test_singular_and_plural_units(self):
        assert calculate_end_date(START, "1 month") == datetime(2024, 2, 15)
        assert calculate_end_date(START, "1 week") == datetime(2024, 1, 22)
        assert calculate_end_date(START, "2 years") == datetime(2026, 1, 15)

    def test_month_end_is_clamped(self):
        assert calculate_end_date(datetime(2024, 1, 31), "1 month") == datetime(2024, 2, 29)

    def test_time_of_day_preserved(self):
        start = datetime(2024, 1, 15, 6, 45)
        assert calculate_end_date(start, "1 month") == datetime(2024, 2, 15, 6, 45)

    def test_unknown_unit(self):
        with pytest.raises(InvalidDurationUnit) as exc_info:
            calculate_end_date(START, "3 days")
        assert exc_info.value.offending == ["days"]

    @pytest.mark.parametrize("duration", ["three months", "months", "", "0 weeks"])
    def test_malformed_duration(self, duration):
        with pytest.raises(ValidationError):
            calculate_end_date(START, duration)


def test_parse_duration_normalizes_unit():
    """Units are case-insensitive and canonicalized."""
    assert parse_duration("4 Weeks") == (4, "weeks")


def _plan(frequency, duration, interval=1):
    return RecurrencePlan(
        is_recurring=True,
        frequency=frequency,
        time_frame="morning",
        duration=duration,
        start_date=START,
        end_date=calculate_end_date(START, duration),
        interval=interval,
    )


class TestOccurrenceDates:
    """Cadence between start (exclusive) and end (inclusive)."""

    def test_weekly(self):
        dates = list(occurrence_dates(_plan("weekly", "1 month")))
        assert dates == [
            datetime(2024, 1, 22),
            datetime(2024, 1, 29),
            datetime(2024, 2, 5),
            datetime(2024, 2, 12),
        ]

    def test_daily_with_interval(self):
        dates = list(occurrence_dates(_plan("daily", "1 week", interval=2)))
        assert dates == [
            datetime(2024, 1, 17),
            datetime(2024, 1, 19),
            datetime(2024, 1, 21),
        ]

    def test_monthly_includes_end_date(self):
        dates = list(occurrence_dates(_plan("monthly", "3 months")))
        assert dates == [datetime(2024, 2, 15), datetime(2024, 3, 15), datetime(2024, 4, 15)]

    def test_monthly_does_not_drift_after_short_month(self):
        plan = RecurrencePlan(
            is_recurring=True,
            frequency="monthly",
            duration="3 months",
            start_date=datetime(2024, 1, 31),
            end_date=datetime(2024, 4, 30),
        )
        assert list(occurrence_dates(plan)) == [
            datetime(2024, 2, 29),
            datetime(2024, 3, 31),
            datetime(2024, 4, 30),
        ]

    def test_lazy(self):
        plan = _plan("daily", "10 years")
        assert list(islice(occurrence_dates(plan), 2)) == [datetime(2024, 1, 16), datetime(2024, 1, 17)]


@pytest.fixture
def base_booking(make_booking):
    plan = _plan("weekly", "1 month")
    return make_booking(
        booking_mode="booking",
        pick_up_date=START,
        weight_kg=2500.0,
        needs_refrigeration=True,
        recurrence=plan.to_dict(),
    )


def test_expand_yields_independent_bookings(base_booking):
    """Each occurrence is a full scheduled booking referencing the base."""
    occurrences = list(expand(base_booking.recurrence_plan, base_booking))

    assert len(occurrences) == 4
    assert all(isinstance(o, Booking) for o in occurrences)
    assert [o.pick_up_date for o in occurrences] == list(occurrence_dates(base_booking.recurrence_plan))

    first = occurrences[0]
    assert first.base_booking_id == base_booking.id
    assert first.is_recurrence_instance is True
    assert first.booking_mode == "booking"
    assert first.status == "pending"
    assert first.weight_kg == 2500.0
    assert first.needs_refrigeration is True
    assert first.recurrence["isRecurring"] is False
    assert first.recurrence["baseBookingId"] == base_booking.id

    assert len({o.request_id for o in occurrences}) == 4
    assert len({o.id for o in occurrences}) == 4


def test_expand_respects_cap(base_booking):
    """Expansion stops at the configured maximum."""
    assert len(list(expand(base_booking.recurrence_plan, base_booking, max_occurrences=2))) == 2


def test_scheduler_persists_occurrences(db_session, base_booking):
    """Occurrences are stored and recorded on the base plan."""
    created = RecurrenceScheduler(db_session).schedule(base_booking.id)

    assert len(created) == 4
    stored = db_session.query(Booking).filter(Booking.base_booking_id == base_booking.id).all()
    assert {b.id for b in stored} == set(created)

    db_session.expire_all()
    base = db_session.get(Booking, base_booking.id)
    assert base.recurrence_plan.occurrences == created
    assert base.recurrence_plan.is_recurring is True


def test_scheduler_isolates_failures(db_session, base_booking, monkeypatch):
    """A failing occurrence is skipped; the rest and the base booking survive."""
    from exceptions import DownstreamError

    scheduler = RecurrenceScheduler(db_session)
    original = scheduler.bookings.add

    def flaky_add(booking):
        if booking.pick_up_date == datetime(2024, 1, 29):
            raise DownstreamError("store unavailable")
        return original(booking)

    monkeypatch.setattr(scheduler.bookings, "add", flaky_add)
    monkeypatch.setattr("utils.retry.time.sleep", lambda seconds: None)

    created = scheduler.schedule(base_booking.id)

    assert len(created) == 3
    assert db_session.get(Booking, base_booking.id) is not None


def test_scheduler_ignores_one_off_booking(db_session, make_booking):
    """Bookings without a plan produce nothing."""
    booking = make_booking()
    assert RecurrenceScheduler(db_session).schedule(booking.id) == []


def test_scheduler_survives_invalid_plan(db_session, make_booking):
    """A stored plan with an unknown unit is logged, not raised."""
    booking = make_booking(recurrence={
        "isRecurring": True,
        "frequency": "daily",
        "timeFrame": "morning",
        "duration": "3 fortnights",
        "startDate": "2024-01-15T00:00:00Z",
    })

    assert RecurrenceScheduler(db_session).schedule(booking.id) == []


def test_series_sharing_a_pickup_time_all_persist(db_session, make_booking):
    """Request IDs do not collide across series that start at the same time."""
    start = datetime(2030, 3, 4, 8, 0)
    plan = RecurrencePlan(
        is_recurring=True,
        frequency="weekly",
        time_frame="morning",
        duration="1 month",
        start_date=start,
        end_date=calculate_end_date(start, "1 month"),
    )
    scheduler = RecurrenceScheduler(db_session)

    created = []
    for _ in range(80):
        base = make_booking(booking_mode="booking", pick_up_date=start, recurrence=plan.to_dict())
        created.extend(scheduler.schedule(base.id))

    assert len(created) == 320
    occurrences = db_session.query(Booking).filter(Booking.is_recurrence_instance.is_(True)).all()
    assert len({o.request_id for o in occurrences}) == 320


def test_colliding_request_id_is_regenerated(db_session, base_booking, make_booking, monkeypatch):
    """A request ID already in the store gets a fresh one instead of dropping the occurrence."""
    taken = make_booking().request_id
    monkeypatch.setattr("services.recurrence.generate_request_id", lambda booking_type: taken)

    created = RecurrenceScheduler(db_session, max_occurrences=1).schedule(base_booking.id)

    assert len(created) == 1
    assert db_session.get(Booking, created[0]).request_id != taken


class TestBackgroundExpansion:
    """Entry point used by the background task and the worker."""

    @pytest.fixture
    def test_session(self, db_session, monkeypatch):
        @contextmanager
        def session_scope():
            yield db_session

        monkeypatch.setattr("models.database.db_session", session_scope)

    def test_creates_occurrences(self, test_session, base_booking):
        assert len(expand_recurrence_in_background(base_booking.id)) == 4

    def test_unknown_booking_returns_nothing(self, test_session):
        assert expand_recurrence_in_background("missing") == []

    def test_unexpected_error_is_swallowed(self, test_session, base_booking, monkeypatch):
        def broken(self, base_booking_id):
            raise RuntimeError("worker lost its connection")

        monkeypatch.setattr(RecurrenceScheduler, "schedule", broken)

        assert expand_recurrence_in_background(base_booking.id) == []
