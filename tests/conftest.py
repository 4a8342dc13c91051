"""Shared test fixtures."""

from collections.abc import Generator
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import gatepass.database as db_module
from gatepass.database import get_session
from gatepass.main import app
from gatepass.registry.models import ForeignVisitor, Intern, Visitor
from gatepass.registry.store import register_foreign_visitor, register_intern, register_visitor


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created.

    StaticPool ensures every session uses the same connection,
    so the in-memory database is shared across the test.
    """
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine where each session gets its own connection.

    Used to interleave writes from two sessions the way two requests would.
    """
    eng = create_engine(
        f"sqlite:///{tmp_path / 'gatepass.db'}",
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine) -> Generator[Session, None, None]:
    with Session(engine) as s:
        yield s


@pytest.fixture
def client(engine) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with overridden DB engine and session."""
    # Patch the module-level engine so lifespan's init_db() uses the test engine.
    original_engine = db_module.engine
    db_module.engine = engine

    def _override_session() -> Generator[Session, None, None]:
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = _override_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    db_module.engine = original_engine


@pytest.fixture
def visitor(session: Session) -> Visitor:
    return register_visitor(
        session,
        name="Asha Rao",
        dob=date(1990, 4, 12),
        aadhar="1234-5678-9012",
        email="asha@example.com",
        phone="9800000001",
        visiting="R. Menon",
        employee_email="menon@example.com",
        photo_url="https://img.example.com/asha.png",
        aadhar_photo_url="https://img.example.com/asha-aadhar.png",
    )


@pytest.fixture
def foreign_visitor(session: Session) -> ForeignVisitor:
    return register_foreign_visitor(
        session,
        name="Lena Fischer",
        dob=date(1985, 9, 3),
        passport="C01X00T47",
        country="Germany",
        email="lena@example.com",
        phone="4915100000",
        visiting="S. Iyer",
        employee_email="iyer@example.com",
        photo_url="https://img.example.com/lena.png",
        passport_photo_url="https://img.example.com/lena-passport.png",
    )


@pytest.fixture
def intern(session: Session) -> Intern:
    return register_intern(
        session,
        name="Kiran Das",
        dob=date(2002, 1, 20),
        aadhar="5555-6666-7777",
        email="kiran@example.com",
        phone="9800000002",
        coordinator="P. Nair",
        employee_email="nair@example.com",
        photo_url="https://img.example.com/kiran.png",
        aadhar_photo_url="https://img.example.com/kiran-aadhar.png",
        is_intern=True,
        internship_from=date(2025, 3, 1),
        internship_to=date(2025, 5, 31),
    )
