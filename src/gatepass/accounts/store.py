"""User CRUD and role changes."""

import logging

from sqlmodel import Session, select

from gatepass.accounts.models import Role, User

logger = logging.getLogger(__name__)


def list_users(session: Session) -> list[User]:
    stmt = select(User).order_by(User.username)
    return list(session.exec(stmt).all())


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.exec(select(User).where(User.email == email)).first()


def create_user(session: Session, username: str, email: str, role: Role) -> User:
    """Create a user.

    Raises:
        ValueError: If the email is already in use.
    """
    if get_user_by_email(session, email) is not None:
        raise ValueError("Email is already in use")
    user = User(username=username, email=email, role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Created user %s with role %s", username, role)
    return user


def _find(session: Session, username: str, email: str) -> User | None:
    stmt = select(User).where(User.username == username, User.email == email)
    return session.exec(stmt).first()


def update_role(session: Session, username: str, email: str, role: Role) -> User | None:
    """Change a user's role. Return None if no user matches username and email."""
    user = _find(session, username, email)
    if user is None:
        return None
    user.role = role
    session.commit()
    session.refresh(user)
    logger.info("Changed role of %s to %s", username, role)
    return user


def delete_user(session: Session, username: str, email: str) -> bool:
    """Delete a user. Return True if deleted, False if not found."""
    user = _find(session, username, email)
    if user is None:
        return False
    session.delete(user)
    session.commit()
    logger.info("Deleted user %s", username)
    return True
