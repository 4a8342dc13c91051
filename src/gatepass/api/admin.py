"""REST API endpoints for registration, verification and staff administration."""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import model_validator
from sqlmodel import Session

from gatepass.accounts.models import Role, User
from gatepass.accounts.store import create_user, delete_user, list_users, update_role
from gatepass.api.routes import ApiModel, raise_http
from gatepass.database import get_session
from gatepass.errors import NotificationError
from gatepass.notify.mailer import MailMessage, approval_request, pass_mail, send_mail
from gatepass.notify.passes import pass_payload, render_qr_png
from gatepass.registry.models import Employee, ForeignVisitor, Intern, PersonRecord, Visitor
from gatepass.registry.store import (
    list_foreign_visitors,
    list_interns,
    list_visitors,
    register_foreign_visitor,
    register_intern,
    register_visitor,
    search_employees,
    verify_foreign_visitor,
    verify_intern,
    verify_visitor,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# Request models
class RegisterVisitorRequest(ApiModel):
    name: str
    dob: date
    aadhar: str
    email: str
    phone: str
    visiting: str
    employee_email: str
    photo_url: str
    aadhar_photo_url: str


class RegisterForeignVisitorRequest(ApiModel):
    name: str
    dob: date
    passport: str
    country: str
    email: str
    phone: str
    visiting: str
    employee_email: str
    photo_url: str
    passport_photo_url: str


class RegisterInternRequest(ApiModel):
    name: str
    dob: date
    aadhar: str
    email: str
    phone: str
    coordinator: str
    employee_email: str
    photo_url: str
    aadhar_photo_url: str
    is_intern: bool = True
    internship_from: date | None = None
    internship_to: date | None = None

    @model_validator(mode="after")
    def require_internship_period(self) -> "RegisterInternRequest":
        if self.is_intern and (self.internship_from is None or self.internship_to is None):
            raise ValueError("internshipFrom and internshipTo are required for interns")
        return self


class CreateUserRequest(ApiModel):
    username: str
    email: str
    role: Role = Role.employee


class UpdateRoleRequest(ApiModel):
    username: str
    email: str
    new_role: Role


class DeleteUserRequest(ApiModel):
    username: str
    email: str


def _deliver(message: MailMessage) -> None:
    try:
        send_mail(message)
    except NotificationError as e:
        raise_http(e)


def _issue_pass(record: PersonRecord) -> None:
    """Render the QR pass for a verified person and mail it to them."""
    qr_png = render_qr_png(pass_payload(record))
    _deliver(pass_mail(record, qr_png))


# --- Registration ---


@router.post("/visitors", status_code=201)
def register_new_visitor(
    request: RegisterVisitorRequest,
    session: Session = Depends(get_session),
) -> Visitor:
    visitor = register_visitor(session, **request.model_dump())
    _deliver(approval_request(visitor))
    return visitor


@router.get("/visitors")
def all_visitors(
    session: Session = Depends(get_session),
) -> list[Visitor]:
    return list_visitors(session)


@router.post("/foreign-visitors", status_code=201)
def register_new_foreign_visitor(
    request: RegisterForeignVisitorRequest,
    session: Session = Depends(get_session),
) -> ForeignVisitor:
    visitor = register_foreign_visitor(session, **request.model_dump())
    _deliver(approval_request(visitor))
    return visitor


@router.get("/foreign-visitors")
def all_foreign_visitors(
    session: Session = Depends(get_session),
) -> list[ForeignVisitor]:
    return list_foreign_visitors(session)


@router.post("/interns", status_code=201)
def register_new_intern(
    request: RegisterInternRequest,
    session: Session = Depends(get_session),
) -> Intern:
    intern = register_intern(session, **request.model_dump())
    _deliver(approval_request(intern))
    return intern


@router.get("/interns")
def all_interns(
    session: Session = Depends(get_session),
) -> list[Intern]:
    return list_interns(session)


# --- Verification links (clicked from the host employee's mailbox) ---


@router.get("/verify/{visitor_id}")
def verify_domestic_visitor(
    visitor_id: str,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    visitor = verify_visitor(session, visitor_id)
    if visitor is None:
        raise HTTPException(status_code=404, detail="Visitor not found")
    _issue_pass(visitor)
    return {"status": "Email sent successfully"}


@router.get("/verify-foreign/{visitor_id}")
def verify_foreign(
    visitor_id: str,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    visitor = verify_foreign_visitor(session, visitor_id)
    if visitor is None:
        raise HTTPException(status_code=404, detail="Foreign visitor not found")
    _issue_pass(visitor)
    return {"status": "Email sent successfully"}


@router.get("/verify-intern/{intern_id}")
def verify_new_intern(
    intern_id: str,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    intern = verify_intern(session, intern_id)
    if intern is None:
        raise HTTPException(status_code=404, detail="Intern not found")
    _issue_pass(intern)
    return {"status": "Email sent successfully"}


# --- Employee directory ---


@router.get("/employees/search")
def employee_search(
    name: str = "",
    session: Session = Depends(get_session),
) -> list[Employee]:
    return search_employees(session, name)


# --- Staff users ---


@router.get("/users")
def all_users(
    session: Session = Depends(get_session),
) -> list[User]:
    return list_users(session)


@router.post("/users", status_code=201)
def create_new_user(
    request: CreateUserRequest,
    session: Session = Depends(get_session),
) -> User:
    try:
        return create_user(session, request.username, request.email, request.role)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.put("/users/role")
def change_user_role(
    request: UpdateRoleRequest,
    session: Session = Depends(get_session),
) -> User:
    user = update_role(session, request.username, request.email, request.new_role)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.delete("/users")
def delete_existing_user(
    request: DeleteUserRequest,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    if not delete_user(session, request.username, request.email):
        raise HTTPException(status_code=404, detail="User not found")
    return {"status": "deleted"}
