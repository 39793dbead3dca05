import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date, datetime, time  # noqa: E402
from typing import Iterable, List, Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from courtplan.database import get_session  # noqa: E402
from courtplan.main import app  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables dropped after every test so ids and rows never leak between tests
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    import courtplan.models  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the
    entire duration so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Scenario builder
# ============================================================================

EVENT_DAY = date(2026, 5, 2)


def at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    """Datetime on event day `day` (day 1 = EVENT_DAY)."""
    return datetime.combine(date.fromordinal(EVENT_DAY.toordinal() + day - 1), time(hour, minute))


class ScheduleBuilder:
    """Creates and commits domain rows with sensible defaults."""

    def __init__(self, session: Session):
        self.session = session

    def _save(self, row):
        self.session.add(row)
        self.session.commit()
        self.session.refresh(row)
        return row

    def event(self, name: str = "Spring Open", days: int = 1):
        from courtplan.models import Event

        end = date.fromordinal(EVENT_DAY.toordinal() + days - 1)
        return self._save(Event(name=name, start_date=EVENT_DAY, end_date=end))

    def court(self, event, label: str, sort_order: int = 0, is_active: bool = True):
        from courtplan.models import Court

        return self._save(Court(event_id=event.id, label=label, sort_order=sort_order, is_active=is_active))

    def courts(self, event, count: int) -> List:
        return [self.court(event, str(i), sort_order=i) for i in range(1, count + 1)]

    def group(self, event, name: str, courts: Iterable, priority: int = 0, code: Optional[str] = None):
        from courtplan.models import CourtGroup

        group = CourtGroup(event_id=event.id, name=name, code=code, priority=priority)
        group.courts = list(courts)
        return self._save(group)

    def division(self, event, name: str = "Open", match_minutes: Optional[int] = 30, rest_minutes: Optional[int] = 15, sort_order: int = 0):
        from courtplan.models import Division

        return self._save(Division(
            event_id=event.id,
            name=name,
            estimated_match_minutes=match_minutes,
            min_rest_minutes=rest_minutes,
            sort_order=sort_order,
        ))

    def phase(self, division, name: str = "Pool", order: int = 1, match_minutes: Optional[int] = None):
        from courtplan.models import Phase

        return self._save(Phase(
            division_id=division.id, name=name, phase_order=order, estimated_match_minutes=match_minutes
        ))

    def unit(self, division, name: str, members: Iterable[int] = ()):
        from courtplan.models import Unit, UnitMember

        unit = self._save(Unit(event_id=division.event_id, division_id=division.id, name=name))
        for user_id in members:
            self.session.add(UnitMember(unit_id=unit.id, user_id=user_id))
        self.session.commit()
        self.session.refresh(unit)
        return unit

    def units(self, division, count: int) -> List:
        return [self.unit(division, f"{division.name} Team {i}") for i in range(1, count + 1)]

    def encounter(
        self,
        division,
        unit1=None,
        unit2=None,
        phase=None,
        round_number: int = 1,
        number: int = 1,
        sources: Iterable = (),
        court=None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
        duration_minutes: Optional[int] = None,
    ):
        from courtplan.models import Encounter, EncounterStatus

        sources = list(sources)
        encounter = Encounter(
            event_id=division.event_id,
            division_id=division.id,
            phase_id=phase.id if phase else None,
            unit1_id=unit1.id if unit1 else None,
            unit2_id=unit2.id if unit2 else None,
            round_number=round_number,
            encounter_number=number,
            source_encounter_1_id=sources[0].id if len(sources) > 0 else None,
            source_encounter_2_id=sources[1].id if len(sources) > 1 else None,
            court_id=court.id if court else None,
            estimated_start_time=start,
            estimated_end_time=end,
            duration_minutes=duration_minutes,
        )
        if status is not None:
            encounter.status = status
        elif court is not None and start is not None:
            encounter.status = EncounterStatus.scheduled.value
        return self._save(encounter)

    def default_hours(self, event, day: int = 1, start: time = time(8, 0), end: time = time(18, 0)):
        from courtplan.models import CourtAvailability

        return self._save(CourtAvailability(
            event_id=event.id, court_id=None, day_number=day, available_from=start, available_to=end
        ))

    def court_hours(self, court, day: int, start: time, end: time):
        from courtplan.models import CourtAvailability

        return self._save(CourtAvailability(
            event_id=court.event_id, court_id=court.id, day_number=day, available_from=start, available_to=end
        ))

    def block(
        self,
        division,
        group,
        phase=None,
        priority: int = 0,
        valid_from: Optional[time] = None,
        valid_to: Optional[time] = None,
        depends_on=None,
        buffer_minutes: int = 0,
    ):
        from courtplan.models import BlockAssignment

        return self._save(BlockAssignment(
            event_id=division.event_id,
            division_id=division.id,
            phase_id=phase.id if phase else None,
            court_group_id=group.id,
            priority=priority,
            valid_from=valid_from,
            valid_to=valid_to,
            depends_on_block_id=depends_on.id if depends_on else None,
            dependency_buffer_minutes=buffer_minutes,
        ))


@pytest.fixture(name="builder")
def builder_fixture(session: Session) -> ScheduleBuilder:
    return ScheduleBuilder(session)
