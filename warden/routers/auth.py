"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Path

from warden.dependencies import get_auth_service
from warden.rate_limit import RouteClass, rate_limit
from warden.schemas.account import AccountResponse, ApiResponse
from warden.schemas.auth import TOKEN_PATTERN, EmailRequest, LoginRequest, RegisterRequest, ResetPasswordRequest
from warden.services.auth import AuthService

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])

RESET_REQUESTED_MESSAGE = "If an account with that email exists, a password reset link has been sent."


def _account(account) -> dict:
    return AccountResponse.model_validate(account).model_dump(mode="json")


@router.post(
    "/register",
    response_model=ApiResponse,
    status_code=201,
    dependencies=[Depends(rate_limit(RouteClass.AUTH_SENSITIVE))],
)
def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> ApiResponse:
    """Register a new account. It stays unconfirmed until the emailed link is followed."""
    account = auth.register(body.username, body.email, body.password)
    return ApiResponse(
        message="User registered successfully. Please check your email to confirm your account.",
        data={"user": _account(account)},
    )


@router.post("/login", response_model=ApiResponse, dependencies=[Depends(rate_limit(RouteClass.AUTH_SENSITIVE))])
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)) -> ApiResponse:
    """Authenticate with email or username and receive a bearer token."""
    result = auth.login(body.identifier, body.password)
    return ApiResponse(message="Login successful", data={"user": _account(result.account), "token": result.token})


@router.get("/confirm-email/{token}", response_model=ApiResponse)
def confirm_email(
    token: str = Path(pattern=TOKEN_PATTERN),
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse:
    """Confirm an email address. The token is the credential."""
    auth.confirm_email(token)
    return ApiResponse(message="Email confirmed successfully")


@router.post(
    "/resend-confirmation",
    response_model=ApiResponse,
    dependencies=[Depends(rate_limit(RouteClass.EMAIL_TRIGGERING))],
)
def resend_confirmation(body: EmailRequest, auth: AuthService = Depends(get_auth_service)) -> ApiResponse:
    """Replace the outstanding confirmation token and send it again."""
    auth.resend_confirmation(body.email)
    return ApiResponse(message="Confirmation email sent successfully")


@router.post(
    "/request-password-reset",
    response_model=ApiResponse,
    dependencies=[Depends(rate_limit(RouteClass.EMAIL_TRIGGERING))],
)
def request_password_reset(body: EmailRequest, auth: AuthService = Depends(get_auth_service)) -> ApiResponse:
    """Request a reset link. The answer is the same whether or not the email is registered."""
    auth.request_password_reset(body.email)
    return ApiResponse(message=RESET_REQUESTED_MESSAGE)


@router.post(
    "/reset-password/{token}",
    response_model=ApiResponse,
    dependencies=[Depends(rate_limit(RouteClass.AUTH_SENSITIVE))],
)
def reset_password(
    body: ResetPasswordRequest,
    token: str = Path(pattern=TOKEN_PATTERN),
    auth: AuthService = Depends(get_auth_service),
) -> ApiResponse:
    """Set a new password using a reset token."""
    auth.reset_password(token, body.password)
    return ApiResponse(message="Password reset successfully")
