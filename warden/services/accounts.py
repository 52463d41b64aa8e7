"""Account persistence."""

import logging
from datetime import datetime

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from warden.database import utcnow
from warden.errors import Conflict, InternalError
from warden.models.account import Account

logger = logging.getLogger("warden")


class AccountStore:
    """Single writer of record for account rows.

    Challenge consumption is done with conditional UPDATE statements so that two
    concurrent attempts against the same token cannot both observe it as active.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict() from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Account store commit failed: %s", e)
            raise InternalError("Account store unavailable") from e

    def create(self, account: Account) -> Account:
        self.db.add(account)
        self._commit()
        self.db.refresh(account)
        return account

    def save(self, account: Account) -> Account:
        """Persist every mutated field of ``account`` in one commit."""
        self._commit()
        self.db.refresh(account)
        return account

    def delete(self, account: Account) -> None:
        self.db.delete(account)
        self._commit()

    def find_by_id(self, account_id: str) -> Account | None:
        return self.db.get(Account, account_id)

    def find_by_email(self, email: str) -> Account | None:
        return self.db.query(Account).filter(Account.email == email.strip().lower()).first()

    def find_by_email_or_username(self, identifier: str) -> Account | None:
        """Look up by email (case-insensitive) or exact username."""
        identifier = identifier.strip()
        return (
            self.db.query(Account)
            .filter(or_(Account.email == identifier.lower(), Account.username == identifier))
            .first()
        )

    def email_or_username_taken(self, email: str, username: str, exclude_id: str | None = None) -> bool:
        query = self.db.query(Account.id).filter(
            or_(Account.email == email.strip().lower(), Account.username == username.strip())
        )
        if exclude_id is not None:
            query = query.filter(Account.id != exclude_id)
        return query.first() is not None

    def username_taken(self, username: str, exclude_id: str | None = None) -> bool:
        query = self.db.query(Account.id).filter(Account.username == username.strip())
        if exclude_id is not None:
            query = query.filter(Account.id != exclude_id)
        return query.first() is not None

    def find_by_confirmation_token(self, token: str, now: datetime | None = None) -> Account | None:
        """Account holding ``token`` as an unexpired confirmation challenge."""
        now = now or utcnow()
        return (
            self.db.query(Account)
            .filter(Account.email_confirmation_token == token, Account.email_confirmation_expires > now)
            .first()
        )

    def find_by_active_reset_token(self, token: str, now: datetime | None = None) -> Account | None:
        """Account holding ``token`` as an unexpired reset challenge."""
        now = now or utcnow()
        return (
            self.db.query(Account)
            .filter(Account.password_reset_token == token, Account.password_reset_expires > now)
            .first()
        )

    def consume_confirmation(self, account_id: str, token: str, now: datetime) -> bool:
        """Compare-and-clear the confirmation challenge, marking the email confirmed.

        Returns False when another request already consumed the token or it expired.
        """
        stmt = (
            update(Account)
            .where(
                Account.id == account_id,
                Account.email_confirmation_token == token,
                Account.email_confirmation_expires > now,
            )
            .values(
                is_email_confirmed=True,
                email_confirmation_token=None,
                email_confirmation_expires=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return self._apply_conditional(stmt)

    def consume_reset(self, account_id: str, token: str, password_hash: str, now: datetime) -> bool:
        """Compare-and-clear the reset challenge while replacing the password hash."""
        stmt = (
            update(Account)
            .where(
                Account.id == account_id,
                Account.password_reset_token == token,
                Account.password_reset_expires > now,
            )
            .values(
                password_hash=password_hash,
                password_reset_token=None,
                password_reset_expires=None,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return self._apply_conditional(stmt)

    def _apply_conditional(self, stmt) -> bool:
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise InternalError("Account store unavailable") from e
        if result.rowcount != 1:
            self.db.rollback()
            return False
        self._commit()
        return True

    def list_paginated(self, page: int, limit: int) -> tuple[list[Account], int]:
        """Return one page of accounts (newest first) and the total count."""
        total = self.db.query(func.count(Account.id)).scalar() or 0
        items = (
            self.db.query(Account)
            .order_by(Account.created_at.desc(), Account.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total
