"""Registration, verification and person resolution across the three registries."""

import logging
from typing import Any

from sqlmodel import Session, select

from gatepass.errors import PersonNotFoundError
from gatepass.registry.models import (
    Employee,
    ForeignVisitor,
    Intern,
    PersonKind,
    PersonRecord,
    PersonRef,
    Visitor,
)

logger = logging.getLogger(__name__)

_MODELS: dict[PersonKind, type[PersonRecord]] = {
    PersonKind.domestic: Visitor,
    PersonKind.foreign: ForeignVisitor,
    PersonKind.intern: Intern,
}

_LABELS: dict[PersonKind, str] = {
    PersonKind.domestic: "Visitor",
    PersonKind.foreign: "Foreign visitor",
    PersonKind.intern: "Intern",
}


def kind_from_hints(foreign: bool = False, intern: bool = False) -> PersonKind:
    """Pick the registry a request refers to.

    A passport hint wins over the intern flag; with neither the person is a
    domestic visitor.
    """
    if foreign:
        return PersonKind.foreign
    if intern:
        return PersonKind.intern
    return PersonKind.domestic


def to_ref(record: PersonRecord) -> PersonRef:
    """Project a registry record onto the fields the trackers need."""
    if isinstance(record, Intern):
        return PersonRef(
            id=record.id,
            kind=PersonKind.intern,
            name=record.name,
            phone=record.phone,
            host=record.coordinator,
            photo_url=record.photo_url,
        )
    kind = PersonKind.foreign if isinstance(record, ForeignVisitor) else PersonKind.domestic
    return PersonRef(
        id=record.id,
        kind=kind,
        name=record.name,
        phone=record.phone,
        host=record.visiting,
        photo_url=record.photo_url,
    )


def get_record(session: Session, kind: PersonKind, person_id: str) -> PersonRecord | None:
    return session.get(_MODELS[kind], person_id)


def resolve_person(
    session: Session,
    person_id: str,
    foreign: bool = False,
    intern: bool = False,
) -> PersonRef:
    """Resolve an id to a person in the registry selected by the hints.

    Raises:
        PersonNotFoundError: If the selected registry has no record with that id.
    """
    kind = kind_from_hints(foreign=foreign, intern=intern)
    record = get_record(session, kind, person_id)
    if record is None:
        logger.warning("No %s found with id %s", kind, person_id)
        raise PersonNotFoundError(f"{_LABELS[kind]} not found")
    return to_ref(record)


# --- Registration ---


def _save(session: Session, record: PersonRecord) -> PersonRecord:
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info("Registered %s: %s (id=%s)", type(record).__name__, record.name, record.id)
    return record


def register_visitor(session: Session, **fields: Any) -> Visitor:
    return _save(session, Visitor(**fields, verified=False))  # type: ignore[return-value]


def register_foreign_visitor(session: Session, **fields: Any) -> ForeignVisitor:
    return _save(session, ForeignVisitor(**fields, verified=False))  # type: ignore[return-value]


def register_intern(session: Session, **fields: Any) -> Intern:
    return _save(session, Intern(**fields, verified=False))  # type: ignore[return-value]


def list_visitors(session: Session) -> list[Visitor]:
    stmt = select(Visitor).order_by(Visitor.created_at.desc())  # type: ignore[attr-defined]
    return list(session.exec(stmt).all())


def list_foreign_visitors(session: Session) -> list[ForeignVisitor]:
    stmt = select(ForeignVisitor).order_by(ForeignVisitor.created_at.desc())  # type: ignore[attr-defined]
    return list(session.exec(stmt).all())


def list_interns(session: Session) -> list[Intern]:
    return list(session.exec(select(Intern)).all())


# --- Verification ---


def verify_visitor(session: Session, visitor_id: str) -> Visitor | None:
    """Mark a domestic visitor verified.

    Returns None if the visitor does not exist or was already verified, so a
    pass is only ever issued once per registration.
    """
    visitor = session.get(Visitor, visitor_id)
    if visitor is None or visitor.verified:
        return None
    visitor.verified = True
    session.commit()
    session.refresh(visitor)
    logger.info("Verified visitor %s (id=%s)", visitor.name, visitor.id)
    return visitor


def verify_foreign_visitor(session: Session, visitor_id: str) -> ForeignVisitor | None:
    visitor = session.get(ForeignVisitor, visitor_id)
    if visitor is None:
        return None
    visitor.verified = True
    session.commit()
    session.refresh(visitor)
    logger.info("Verified foreign visitor %s (id=%s)", visitor.name, visitor.id)
    return visitor


def verify_intern(session: Session, intern_id: str) -> Intern | None:
    intern = session.get(Intern, intern_id)
    if intern is None:
        return None
    intern.verified = True
    session.commit()
    session.refresh(intern)
    logger.info("Verified intern %s (id=%s)", intern.name, intern.id)
    return intern


# --- Employee directory ---


def add_employee(
    session: Session, cpf_no: str, name: str, designation: str, email: str
) -> Employee:
    employee = Employee(cpf_no=cpf_no, name=name, designation=designation, email=email)
    session.add(employee)
    session.commit()
    session.refresh(employee)
    return employee


def search_employees(session: Session, name: str) -> list[Employee]:
    """Case-insensitive substring search on employee names."""
    stmt = (
        select(Employee)
        .where(Employee.name.ilike(f"%{name}%"))  # type: ignore[attr-defined]
        .order_by(Employee.name)
    )
    return list(session.exec(stmt).all())
