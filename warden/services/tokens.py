"""Opaque challenge tokens and signed session tokens."""

import secrets
from datetime import UTC, datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt

from warden.config import Settings
from warden.database import utcnow
from warden.errors import TokenExpired, TokenInvalid
from warden.models.account import Account
from warden.services.accounts import AccountStore

# 32 random bytes -> 64 hex characters
OPAQUE_TOKEN_BYTES = 32


class TokenService:
    """Issues and verifies every token the engine hands out.

    Confirmation and reset challenges are opaque random strings stored on the
    account and consumed exactly once. Session tokens are HS256 JWTs carrying
    the account id as ``sub``; anyone holding the secret can verify them without
    a lookup, and they cannot be revoked individually before they expire.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        session_ttl: timedelta = timedelta(days=7),
        reset_ttl: timedelta = timedelta(minutes=10),
        confirmation_ttl: timedelta = timedelta(hours=24),
    ) -> None:
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.session_ttl = session_ttl
        self.reset_ttl = reset_ttl
        self.confirmation_ttl = confirmation_ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret_key=settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            session_ttl=timedelta(days=settings.JWT_EXPIRE_DAYS),
            reset_ttl=timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES),
            confirmation_ttl=timedelta(hours=settings.CONFIRMATION_TOKEN_TTL_HOURS),
        )

    @staticmethod
    def generate_opaque() -> str:
        """Random 256-bit value as 64 lowercase hex characters."""
        return secrets.token_hex(OPAQUE_TOKEN_BYTES)

    # --- Email confirmation ---

    def issue_confirmation(self, account: Account, now: datetime | None = None) -> str:
        """Store a fresh confirmation challenge on ``account``, replacing any prior one.

        The caller persists the account.
        """
        token = self.generate_opaque()
        account.email_confirmation_token = token
        account.email_confirmation_expires = (now or utcnow()) + self.confirmation_ttl
        return token

    def consume_confirmation(self, store: AccountStore, token: str, now: datetime | None = None) -> Account:
        """Confirm the email of the account holding ``token``. Raises TokenInvalid."""
        now = now or utcnow()
        account = store.find_by_confirmation_token(token, now)
        if account is None or not store.consume_confirmation(account.id, token, now):
            raise TokenInvalid("Invalid or expired confirmation token")
        return account

    # --- Password reset ---

    def issue_reset(self, account: Account, now: datetime | None = None) -> str:
        """Store a fresh reset challenge on ``account``. The caller persists the account."""
        token = self.generate_opaque()
        account.password_reset_token = token
        account.password_reset_expires = (now or utcnow()) + self.reset_ttl
        return token

    def consume_reset(
        self, store: AccountStore, token: str, password_hash: str, now: datetime | None = None
    ) -> Account:
        """Replace the password of the account holding ``token`` and clear the challenge.

        Wrong and expired tokens fail identically with TokenInvalid.
        """
        now = now or utcnow()
        account = store.find_by_active_reset_token(token, now)
        if account is None or not store.consume_reset(account.id, token, password_hash, now):
            raise TokenInvalid("Invalid or expired password reset token")
        return account

    # --- Sessions ---

    def issue_session(self, account_id: str, expires_in: timedelta | None = None) -> str:
        """Create a signed session token for ``account_id``."""
        now = datetime.now(UTC)
        payload = {
            "sub": str(account_id),
            "iat": now,
            "exp": now + (expires_in if expires_in is not None else self.session_ttl),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_session(self, token: str) -> str:
        """Return the account id a session token was issued for.

        Raises TokenExpired past expiry, TokenInvalid for bad signatures or structure.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise TokenExpired() from e
        except JWTError as e:
            raise TokenInvalid("Invalid token") from e

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise TokenInvalid("Invalid token")
        return subject
