"""Service wiring and the authorization chain for FastAPI routes."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from warden.database import get_db
from warden.errors import Forbidden, TokenExpired, TokenInvalid, Unauthenticated, UnauthenticatedReason
from warden.models.account import Account, Role
from warden.services.accounts import AccountStore
from warden.services.auth import AuthService
from warden.services.tokens import TokenService

logger = logging.getLogger("warden")

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Principal:
    """Authenticated identity attached to a request. Nothing else of the account is exposed."""

    id: str
    username: str
    email: str
    role: Role

    @classmethod
    def from_account(cls, account: Account) -> "Principal":
        return cls(id=account.id, username=account.username, email=account.email, role=account.role)


# --- Services (instantiated once in main.py and kept on app.state) ---


def get_account_store(db: Session = Depends(get_db)) -> AccountStore:
    return AccountStore(db)


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_auth_service(request: Request, store: AccountStore = Depends(get_account_store)) -> AuthService:
    state = request.app.state
    return AuthService(
        store=store,
        credentials=state.credential_manager,
        tokens=state.token_service,
        notifier=state.notifier,
    )


# --- Authorization chain ---


def resolve_principal(authorization: str | None, tokens: TokenService, store: AccountStore) -> Principal:
    """Verify a raw Authorization header value and load the account behind it."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated(UnauthenticatedReason.NO_TOKEN)

    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthenticated(UnauthenticatedReason.NO_TOKEN)

    try:
        account_id = tokens.verify_session(token)
    except TokenExpired:
        raise Unauthenticated(UnauthenticatedReason.EXPIRED_TOKEN) from None
    except TokenInvalid:
        raise Unauthenticated(UnauthenticatedReason.INVALID_TOKEN) from None

    account = store.find_by_id(account_id)
    if account is None:
        raise Unauthenticated(UnauthenticatedReason.STALE_TOKEN)
    if not account.is_email_confirmed:
        raise Unauthenticated(UnauthenticatedReason.EMAIL_NOT_CONFIRMED)
    return Principal.from_account(account)


def authenticate(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
    store: AccountStore = Depends(get_account_store),
) -> Principal:
    """Require a valid bearer session for a confirmed, existing account."""
    principal = resolve_principal(request.headers.get("Authorization"), tokens, store)
    request.state.principal = principal
    return principal


def optional_authenticate(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
    store: AccountStore = Depends(get_account_store),
) -> Principal | None:
    """Same checks as ``authenticate`` but any failure continues without a principal."""
    try:
        principal = resolve_principal(request.headers.get("Authorization"), tokens, store)
    except Unauthenticated as e:
        logger.debug("Optional authentication skipped: %s", e.reason.value)
        request.state.principal = None
        return None
    request.state.principal = principal
    return principal


def require_role(role: Role) -> Callable[..., Principal]:
    """Dependency allowing only principals holding ``role``."""

    def dependency(principal: Principal = Depends(authenticate)) -> Principal:
        if principal.role != role:
            raise Forbidden(f"Access denied. {role.value.capitalize()} privileges required.")
        return principal

    return dependency


def require_ownership_or_role(param_name: str = "id", role: Role = Role.ADMIN) -> Callable[..., Principal]:
    """Dependency allowing the owner named by path parameter ``param_name``, or any holder of ``role``."""

    def dependency(request: Request, principal: Principal = Depends(authenticate)) -> Principal:
        if principal.role == role or principal.id == request.path_params.get(param_name):
            return principal
        raise Forbidden("Access denied. You can only access your own resources.")

    return dependency
