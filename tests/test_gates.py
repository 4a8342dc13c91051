"""Tests for main gate and Geopic transitions."""

from datetime import UTC, date, datetime, timedelta

import pytest
from sqlmodel import Session, select

from gatepass.config import settings
from gatepass.errors import DuplicateCheckInError, LocationNotFoundError
from gatepass.registry.store import to_ref
from gatepass.tracking.gates import (
    check_in,
    geopic_check_in,
    geopic_check_out,
    main_gate_check_out,
)
from gatepass.tracking.ledger import as_utc
from gatepass.tracking.models import LocationState, StudentLocation, VisitorLocation

T0 = datetime(2025, 3, 10, 9, 0, tzinfo=UTC)


class TestCheckIn:
    def test_visitor_check_in(self, session: Session, visitor):
        record = check_in(session, to_ref(visitor), now=T0)
        assert isinstance(record, VisitorLocation)
        assert record.visitor_id == visitor.id
        assert record.location == LocationState.main_gate
        assert as_utc(record.date) == T0
        assert record.visiting_employee == "R. Menon"
        assert record.photo_url == visitor.photo_url
        assert record.out_time is None
        assert record.geopic_in_time is None

    def test_visitor_second_check_in_conflicts_any_day(self, session: Session, visitor):
        check_in(session, to_ref(visitor), now=T0)
        with pytest.raises(DuplicateCheckInError):
            check_in(session, to_ref(visitor), now=T0 + timedelta(days=3))

    def test_intern_check_in(self, session: Session, intern):
        record = check_in(session, to_ref(intern), now=T0)
        assert isinstance(record, StudentLocation)
        assert record.student_id == intern.id
        assert record.day == T0.date()
        assert record.coordinator == "P. Nair"

    def test_intern_second_check_in_same_day_conflicts(self, session: Session, intern):
        check_in(session, to_ref(intern), now=T0)
        with pytest.raises(DuplicateCheckInError):
            check_in(session, to_ref(intern), now=T0 + timedelta(hours=4))

    def test_intern_next_day_creates_new_record(self, session: Session, intern):
        check_in(session, to_ref(intern), now=T0)
        check_in(session, to_ref(intern), now=T0 + timedelta(days=1))
        records = session.exec(select(StudentLocation)).all()
        assert len(records) == 2


class TestMainGateCheckOut:
    def test_check_out(self, session: Session, visitor):
        check_in(session, to_ref(visitor), now=T0)
        record = main_gate_check_out(session, to_ref(visitor), now=T0 + timedelta(hours=2))
        assert record.location == LocationState.out_of_main_gate
        assert as_utc(record.out_time) == T0 + timedelta(hours=2)

    def test_matches_by_description_not_id(self, session: Session, visitor):
        """A record with the same name, phone and host is found even without visitor_id."""
        session.add(
            VisitorLocation(
                name=visitor.name,
                phone=visitor.phone,
                visiting_employee=visitor.visiting,
                date=T0,
            )
        )
        session.commit()
        record = main_gate_check_out(session, to_ref(visitor), now=T0)
        assert record.visitor_id is None
        assert record.location == LocationState.out_of_main_gate

    def test_no_record(self, session: Session, visitor):
        with pytest.raises(LocationNotFoundError):
            main_gate_check_out(session, to_ref(visitor))

    def test_repeated_check_out_overwrites_time(self, session: Session, visitor):
        check_in(session, to_ref(visitor), now=T0)
        main_gate_check_out(session, to_ref(visitor), now=T0 + timedelta(hours=1))
        record = main_gate_check_out(session, to_ref(visitor), now=T0 + timedelta(hours=2))
        assert as_utc(record.out_time) == T0 + timedelta(hours=2)

    def test_intern_check_out(self, session: Session, intern):
        check_in(session, to_ref(intern), now=T0)
        record = main_gate_check_out(session, to_ref(intern), now=T0 + timedelta(hours=8))
        assert isinstance(record, StudentLocation)
        assert record.location == LocationState.out_of_main_gate


class TestGeopic:
    def test_visitor_geopic_in_and_out(self, session: Session, foreign_visitor):
        person = to_ref(foreign_visitor)
        check_in(session, person, now=T0)

        record = geopic_check_in(session, person, now=T0 + timedelta(minutes=15))
        assert record.location == LocationState.geopic
        assert as_utc(record.geopic_in_time) == T0 + timedelta(minutes=15)

        record = geopic_check_out(session, person, now=T0 + timedelta(hours=1))
        assert record.location == LocationState.out_of_geopic
        assert as_utc(record.geopic_out_time) == T0 + timedelta(hours=1)

    def test_geopic_in_without_record(self, session: Session, visitor):
        with pytest.raises(LocationNotFoundError):
            geopic_check_in(session, to_ref(visitor))

    def test_geopic_out_without_prior_entry_is_allowed(self, session: Session, visitor):
        check_in(session, to_ref(visitor), now=T0)
        record = geopic_check_out(session, to_ref(visitor), now=T0 + timedelta(minutes=5))
        assert record.geopic_in_time is None
        assert record.location == LocationState.out_of_geopic

    def test_geopic_in_after_main_gate_exit_is_allowed(self, session: Session, visitor):
        check_in(session, to_ref(visitor), now=T0)
        main_gate_check_out(session, to_ref(visitor), now=T0 + timedelta(hours=1))
        record = geopic_check_in(session, to_ref(visitor), now=T0 + timedelta(hours=2))
        assert record.location == LocationState.geopic

    def test_intern_geopic_in_is_scoped_to_today(self, session: Session, intern):
        check_in(session, to_ref(intern), now=T0)
        with pytest.raises(LocationNotFoundError):
            geopic_check_in(session, to_ref(intern), now=T0 + timedelta(days=1))

    def test_intern_geopic_out_is_not_day_scoped(self, session: Session, intern):
        check_in(session, to_ref(intern), now=T0)
        record = geopic_check_out(session, to_ref(intern), now=T0 + timedelta(days=1))
        assert record.location == LocationState.out_of_geopic

    def test_intern_geopic_out_uses_latest_record(self, session: Session, intern):
        check_in(session, to_ref(intern), now=T0)
        latest = check_in(session, to_ref(intern), now=T0 + timedelta(days=1))
        record = geopic_check_out(session, to_ref(intern), now=T0 + timedelta(days=1, hours=3))
        assert record.id == latest.id


class TestFacilityDay:
    """Intern days follow the facility wall clock, not the UTC calendar."""

    @pytest.fixture(autouse=True)
    def _ist(self, monkeypatch):
        monkeypatch.setattr(settings, "facility_timezone", "Asia/Kolkata")

    def test_day_rolls_over_at_local_midnight(self, session: Session, intern):
        # 20:00 UTC is 01:30 the next morning in IST
        record = check_in(session, to_ref(intern), now=datetime(2025, 3, 10, 20, 0, tzinfo=UTC))
        assert record.day == date(2025, 3, 11)

    def test_same_utc_day_two_local_days(self, session: Session, intern):
        check_in(session, to_ref(intern), now=datetime(2025, 3, 10, 17, 0, tzinfo=UTC))
        check_in(session, to_ref(intern), now=datetime(2025, 3, 10, 19, 0, tzinfo=UTC))
        assert len(session.exec(select(StudentLocation)).all()) == 2

    def test_geopic_entry_within_local_day(self, session: Session, intern):
        check_in(session, to_ref(intern), now=datetime(2025, 3, 10, 20, 0, tzinfo=UTC))
        record = geopic_check_in(
            session, to_ref(intern), now=datetime(2025, 3, 11, 3, 0, tzinfo=UTC)
        )
        assert record.location == LocationState.geopic

    def test_geopic_entry_after_local_midnight(self, session: Session, intern):
        # 17:00 UTC is 22:30 IST; 19:00 UTC is already the next local day
        check_in(session, to_ref(intern), now=datetime(2025, 3, 10, 17, 0, tzinfo=UTC))
        with pytest.raises(LocationNotFoundError):
            geopic_check_in(session, to_ref(intern), now=datetime(2025, 3, 10, 19, 0, tzinfo=UTC))


def test_full_visit_scenario(session: Session, visitor):
    person = to_ref(visitor)
    check_in(session, person, now=T0)
    geopic_check_in(session, person, now=T0 + timedelta(minutes=20))
    geopic_check_out(session, person, now=T0 + timedelta(hours=2))
    record = main_gate_check_out(session, person, now=T0 + timedelta(hours=2, minutes=15))

    assert record.location == LocationState.out_of_main_gate
    stamps = (record.date, record.geopic_in_time, record.geopic_out_time, record.out_time)
    entered, geopic_in, geopic_out, left = (as_utc(t) for t in stamps)
    assert entered < geopic_in < geopic_out < left
