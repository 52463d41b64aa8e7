"""Tests for the authorization chain."""

from datetime import timedelta

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from warden.database import get_db
from warden.dependencies import (
    Principal,
    authenticate,
    optional_authenticate,
    require_ownership_or_role,
    require_role,
    resolve_principal,
)
from warden.errors import Unauthenticated, UnauthenticatedReason, WardenError
from warden.models.account import Role
from warden.services.accounts import AccountStore
from warden.services.tokens import TokenService


class TestResolvePrincipal:
    """Tests for header parsing and subject checks."""

    def _reason(self, header, tokens, store) -> UnauthenticatedReason:
        with pytest.raises(Unauthenticated) as exc_info:
            resolve_principal(header, tokens, store)
        return exc_info.value.reason

    def test_success(self, tokens: TokenService, store: AccountStore, make_account):
        account, token = make_account()
        principal = resolve_principal(f"Bearer {token}", tokens, store)
        assert principal == Principal(id=account.id, username="alice", email="alice@x.com", role=Role.STANDARD)

    def test_missing_header(self, tokens: TokenService, store: AccountStore):
        assert self._reason(None, tokens, store) is UnauthenticatedReason.NO_TOKEN

    def test_wrong_scheme(self, tokens: TokenService, store: AccountStore, make_account):
        _, token = make_account()
        assert self._reason(f"Basic {token}", tokens, store) is UnauthenticatedReason.NO_TOKEN

    def test_empty_bearer(self, tokens: TokenService, store: AccountStore):
        assert self._reason("Bearer ", tokens, store) is UnauthenticatedReason.NO_TOKEN

    def test_invalid_signature(self, tokens: TokenService, store: AccountStore, make_account):
        account, _ = make_account()
        forged = TokenService(secret_key="someone-else").issue_session(account.id)
        assert self._reason(f"Bearer {forged}", tokens, store) is UnauthenticatedReason.INVALID_TOKEN

    def test_expired(self, tokens: TokenService, store: AccountStore, make_account):
        account, _ = make_account()
        token = tokens.issue_session(account.id, expires_in=timedelta(seconds=-5))
        assert self._reason(f"Bearer {token}", tokens, store) is UnauthenticatedReason.EXPIRED_TOKEN

    def test_stale_subject(self, tokens: TokenService, store: AccountStore):
        token = tokens.issue_session("deadbeef")
        assert self._reason(f"Bearer {token}", tokens, store) is UnauthenticatedReason.STALE_TOKEN

    def test_unconfirmed(self, tokens: TokenService, store: AccountStore, make_account):
        _, token = make_account(confirmed=False)
        assert self._reason(f"Bearer {token}", tokens, store) is UnauthenticatedReason.EMAIL_NOT_CONFIRMED


@pytest.fixture(name="guarded_client")
def guarded_client_fixture(db_session: Session, tokens: TokenService):
    """A small app exercising each guard on its own route."""
    app = FastAPI()
    app.state.token_service = tokens

    @app.exception_handler(WardenError)
    async def handle(request: Request, exc: WardenError):
        return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})

    @app.get("/me")
    def me(request: Request, principal: Principal = Depends(authenticate)) -> dict:
        assert request.state.principal == principal
        return {"id": principal.id}

    @app.get("/maybe")
    def maybe(principal: Principal | None = Depends(optional_authenticate)) -> dict:
        return {"id": principal.id if principal else None}

    @app.get("/admin")
    def admin(principal: Principal = Depends(require_role(Role.ADMIN))) -> dict:
        return {"id": principal.id}

    @app.get("/accounts/{account_id}")
    def owned(account_id: str, principal: Principal = Depends(require_ownership_or_role("account_id"))) -> dict:
        return {"id": account_id}

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c


class TestGuards:
    """Tests for the dependency chain on routes."""

    def test_authenticate(self, guarded_client: TestClient, test_user: dict):
        assert guarded_client.get("/me", headers=test_user["headers"]).json() == {"id": test_user["id"]}
        assert guarded_client.get("/me").status_code == 401

    def test_optional_authenticate(self, guarded_client: TestClient, test_user: dict, tokens: TokenService):
        assert guarded_client.get("/maybe", headers=test_user["headers"]).json() == {"id": test_user["id"]}
        assert guarded_client.get("/maybe").json() == {"id": None}
        assert guarded_client.get("/maybe", headers={"Authorization": "Bearer junk"}).json() == {"id": None}
        stale = tokens.issue_session("deadbeef")
        assert guarded_client.get("/maybe", headers={"Authorization": f"Bearer {stale}"}).json() == {"id": None}

    def test_require_role(self, guarded_client: TestClient, test_user: dict, admin_user: dict):
        assert guarded_client.get("/admin", headers=test_user["headers"]).status_code == 403
        assert guarded_client.get("/admin", headers=admin_user["headers"]).status_code == 200
        assert guarded_client.get("/admin").status_code == 401

    def test_ownership(self, guarded_client: TestClient, test_user: dict, admin_user: dict, make_account):
        other, _ = make_account(username="bob", email="bob@x.com")
        own = guarded_client.get(f"/accounts/{test_user['id']}", headers=test_user["headers"])
        assert own.status_code == 200
        foreign = guarded_client.get(f"/accounts/{other.id}", headers=test_user["headers"])
        assert foreign.status_code == 403
        assert foreign.json()["message"] == "Access denied. You can only access your own resources."
        assert guarded_client.get(f"/accounts/{other.id}", headers=admin_user["headers"]).status_code == 200
