"""Pytest configuration and fixtures."""

import os

# Must be set before any warden module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from warden.database import Base, get_db
from warden.models.account import Account, Role
from warden.services.accounts import AccountStore
from warden.services.credentials import CredentialManager
from warden.services.notifications import NotificationDispatcher
from warden.services.tokens import TokenService

PASSWORD = "Passw0rd1"


class RecordingNotifier(NotificationDispatcher):
    """Keeps every dispatched token instead of sending it."""

    def __init__(self) -> None:
        super().__init__(frontend_url="http://frontend.test")
        self.confirmations: list[tuple[str, str]] = []
        self.resets: list[tuple[str, str]] = []

    def send_confirmation(self, email: str, token: str) -> None:
        self.confirmations.append((email, token))

    def send_password_reset(self, email: str, token: str) -> None:
        self.resets.append((email, token))

    def last_confirmation(self, email: str) -> str:
        return [t for e, t in self.confirmations if e == email][-1]

    def last_reset(self, email: str) -> str:
        return [t for e, t in self.resets if e == email][-1]


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="store")
def store_fixture(db_session: Session) -> AccountStore:
    return AccountStore(db_session)


@pytest.fixture(name="credentials")
def credentials_fixture() -> CredentialManager:
    return CredentialManager(rounds=4)


@pytest.fixture(name="tokens")
def tokens_fixture() -> TokenService:
    from main import app

    return app.state.token_service


@pytest.fixture(name="outbox")
def outbox_fixture():
    """Swap the app's notifier for a recording one."""
    from main import app

    original = app.state.notifier
    notifier = RecordingNotifier()
    app.state.notifier = notifier
    yield notifier
    app.state.notifier = original


@pytest.fixture(name="client")
def client_fixture(db_session: Session, outbox: RecordingNotifier):
    """Create a test client with overridden DB dependency and disabled rate limiting."""
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    limiter = app.state.rate_limiter
    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    limiter.reset()
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    limiter.reset()
    app.dependency_overrides.clear()


@pytest.fixture(name="make_account")
def make_account_fixture(store: AccountStore, credentials: CredentialManager, tokens: TokenService):
    """Factory persisting an account directly and returning (account, session_token)."""

    def factory(
        username: str = "alice",
        email: str = "alice@x.com",
        password: str = PASSWORD,
        confirmed: bool = True,
        role: Role = Role.STANDARD,
    ) -> tuple[Account, str]:
        account = Account(
            username=username,
            email=email,
            password_hash=credentials.hash(password),
            is_email_confirmed=confirmed,
            role=role,
        )
        if not confirmed:
            tokens.issue_confirmation(account)
        store.create(account)
        return account, tokens.issue_session(account.id)

    return factory


@pytest.fixture(name="test_user")
def test_user_fixture(make_account):
    """A confirmed standard account and its bearer header."""
    account, token = make_account()
    return {
        "id": account.id,
        "username": account.username,
        "email": account.email,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest.fixture(name="admin_user")
def admin_user_fixture(make_account):
    account, token = make_account(username="root", email="root@x.com", role=Role.ADMIN)
    return {"id": account.id, "token": token, "headers": {"Authorization": f"Bearer {token}"}}
