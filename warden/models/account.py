"""Account model."""

import enum
import uuid

from sqlalchemy import Boolean, Column, DateTime, Enum, String

from warden.database import Base, utcnow


class Role(str, enum.Enum):
    """Account roles. New accounts are always standard."""

    STANDARD = "standard"
    ADMIN = "admin"


def _new_account_id() -> str:
    return uuid.uuid4().hex


class Account(Base):
    """Registered account holder."""

    __tablename__ = "account"

    id = Column(String(32), primary_key=True, default=_new_account_id)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    is_email_confirmed = Column(Boolean, nullable=False, default=False)
    email_confirmation_token = Column(String(128), nullable=True, index=True)
    email_confirmation_expires = Column(DateTime, nullable=True)
    password_reset_token = Column(String(128), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)
    role = Column(
        Enum(Role, name="account_role", values_callable=lambda roles: [r.value for r in roles]),
        nullable=False,
        default=Role.STANDARD,
    )
    profile_picture = Column(String(2048), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Account {self.id} {self.username!r}>"
