"""Account lifecycle: registration, confirmation, login, reset and self-service."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from warden.errors import (
    Conflict,
    InternalError,
    NotFound,
    Unauthenticated,
    UnauthenticatedReason,
    ValidationError,
)
from warden.models.account import Account, Role
from warden.services.accounts import AccountStore
from warden.services.credentials import CredentialManager
from warden.services.notifications import NotificationDispatcher
from warden.services.tokens import TokenService

logger = logging.getLogger("warden")


@dataclass
class LoginResult:
    """Outcome of a successful login."""

    account: Account
    token: str


class AuthService:
    """Executes every account state transition.

    Each transition is persisted in a single store write before any message is
    dispatched; a dispatch failure is logged and never undoes the write.
    """

    def __init__(
        self,
        store: AccountStore,
        credentials: CredentialManager,
        tokens: TokenService,
        notifier: NotificationDispatcher,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.tokens = tokens
        self.notifier = notifier

    def _dispatch(self, send: Callable[[str, str], None], email: str, token: str) -> None:
        try:
            send(email, token)
        except InternalError as e:
            logger.error("Notification to %s failed: %s", email, e.__cause__ or e)

    # --- Public flows ---

    def register(self, username: str, email: str, password: str) -> Account:
        """Create an unconfirmed account and send its confirmation challenge."""
        if self.store.email_or_username_taken(email, username):
            raise Conflict()

        account = Account(
            username=username.strip(),
            email=email.strip().lower(),
            password_hash=self.credentials.hash(password),
            is_email_confirmed=False,
            role=Role.STANDARD,
        )
        token = self.tokens.issue_confirmation(account)
        self.store.create(account)
        logger.info("Registered account %s (%s)", account.id, account.username)

        self._dispatch(self.notifier.send_confirmation, account.email, token)
        return account

    def login(self, identifier: str, password: str) -> LoginResult:
        """Check credentials and issue a session token for a confirmed account."""
        account = self.store.find_by_email_or_username(identifier)
        if account is None:
            self.credentials.burn(password)
            raise Unauthenticated(UnauthenticatedReason.BAD_CREDENTIALS)

        if not self.credentials.verify(password, account.password_hash):
            raise Unauthenticated(UnauthenticatedReason.BAD_CREDENTIALS)

        if not account.is_email_confirmed:
            raise Unauthenticated(
                UnauthenticatedReason.EMAIL_NOT_CONFIRMED, "Please confirm your email before logging in"
            )

        logger.info("Login for account %s", account.id)
        return LoginResult(account=account, token=self.tokens.issue_session(account.id))

    def confirm_email(self, token: str) -> Account:
        account = self.tokens.consume_confirmation(self.store, token)
        logger.info("Confirmed email for account %s", account.id)
        return account

    def resend_confirmation(self, email: str) -> None:
        """Replace the confirmation challenge of an unconfirmed account."""
        account = self.store.find_by_email(email)
        if account is None:
            raise NotFound()
        if account.is_email_confirmed:
            raise ValidationError("Email is already confirmed")

        token = self.tokens.issue_confirmation(account)
        self.store.save(account)
        self._dispatch(self.notifier.send_confirmation, account.email, token)

    def request_password_reset(self, email: str) -> None:
        """Issue a reset challenge if ``email`` is registered. Silent either way."""
        account = self.store.find_by_email(email)
        if account is None:
            return

        token = self.tokens.issue_reset(account)
        self.store.save(account)
        logger.info("Password reset requested for account %s", account.id)
        self._dispatch(self.notifier.send_password_reset, account.email, token)

    def reset_password(self, token: str, new_password: str) -> Account:
        password_hash = self.credentials.hash(new_password)
        account = self.tokens.consume_reset(self.store, token, password_hash)
        logger.info("Password reset completed for account %s", account.id)
        return account

    # --- Authenticated self-service ---

    def _load(self, account_id: str) -> Account:
        account = self.store.find_by_id(account_id)
        if account is None:
            raise NotFound()
        return account

    def get_profile(self, account_id: str) -> Account:
        return self._load(account_id)

    def update_profile(
        self, account_id: str, username: str | None = None, profile_picture: str | None = None
    ) -> Account:
        account = self._load(account_id)
        if username is not None and username != account.username:
            if self.store.username_taken(username, exclude_id=account.id):
                raise Conflict("Username is already taken")
            account.username = username
        if profile_picture is not None:
            account.profile_picture = profile_picture
        return self.store.save(account)

    def change_password(self, account_id: str, current_password: str, new_password: str) -> None:
        account = self._load(account_id)
        if not self.credentials.verify(current_password, account.password_hash):
            raise Unauthenticated(UnauthenticatedReason.BAD_CREDENTIALS, "Current password is incorrect")
        if new_password == current_password:
            raise ValidationError("New password must be different from current password")

        account.password_hash = self.credentials.hash(new_password)
        self.store.save(account)
        logger.info("Password changed for account %s", account.id)

    def delete_account(self, account_id: str, password: str) -> None:
        account = self._load(account_id)
        if not self.credentials.verify(password, account.password_hash):
            raise Unauthenticated(UnauthenticatedReason.BAD_CREDENTIALS, "Password is incorrect")
        self.store.delete(account)
        logger.info("Deleted account %s", account_id)

    # --- Administration ---

    def list_accounts(self, page: int, limit: int) -> tuple[list[Account], int]:
        return self.store.list_paginated(page, limit)

    def get_account(self, account_id: str) -> Account:
        return self._load(account_id)
