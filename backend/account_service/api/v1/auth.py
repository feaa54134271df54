"""Authentication endpoints.

Endpoints:
- POST /auth/register: create account, send verification link
- POST /auth/login: verify email + password, return bearer token
- POST /auth/logout: audit hook (tokens are stateless)
- POST /auth/forgot-password: request reset link
- POST /auth/reset-password: consume reset token, set new password
- POST /auth/verify-email: consume verification token
- POST /auth/resend-verification: request a new verification link
- GET /auth/me: current account

Security considerations:
- forgot-password / resend-verification: same response for unknown emails
- credential endpoints are rate limited per IP
- request bodies reject unknown fields and trim surrounding whitespace,
  passwords included, so every endpoint hashes and checks the same string
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from account_service.api.deps import (
    AuthServiceDep,
    CurrentUser,
    OptionalClaim,
)
from account_service.core.config import settings
from account_service.core.passwords import validate_password_strength
from account_service.core.rate_limiting import limiter
from account_service.core.responses import DataResponse
from account_service.schemas.user import CurrentUser as CurrentUserSchema

router = APIRouter()


# ===================================================================
# Request models
# ===================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    username: str = Field(min_length=3, max_length=30)
    display_name: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)

    @field_validator("username", "email")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.lower()


class _EmailBody(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    email: EmailStr

    @field_validator("email")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return value.lower()


class LoginRequest(_EmailBody):
    """Request body for POST /auth/login."""

    password: str = Field(min_length=1, max_length=128)


class ForgotPasswordRequest(_EmailBody):
    """Request body for POST /auth/forgot-password."""


class ResendVerificationRequest(_EmailBody):
    """Request body for POST /auth/resend-verification."""


class ResetPasswordRequest(BaseModel):
    """Request body for POST /auth/reset-password."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    token: str = Field(min_length=1, max_length=256)
    password: str = Field(min_length=1, max_length=128)


class VerifyEmailRequest(BaseModel):
    """Request body for POST /auth/verify-email."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    token: str = Field(min_length=1, max_length=256)


# ===================================================================
# Registration and sessions
# ===================================================================


@router.post("/register", status_code=201)
@limiter.limit(settings.rate_limit_register)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    auth_service: AuthServiceDep,
) -> DataResponse[dict]:
    """Register a new account with a password.

    The account starts unverified. If the verification email cannot be
    sent the account still exists; the response reports it and the user
    can request a new link.
    """
    validate_password_strength(body.password)

    result = await auth_service.register(
        username=body.username,
        display_name=body.display_name,
        email=body.email,
        password=body.password,
    )
    return DataResponse(
        data={
            "message": "User created successfully",
            "user": result.user.model_dump(mode="json"),
            "verification_email_sent": result.verification_email_sent,
        }
    )


@router.post("/login")
@limiter.limit(settings.rate_limit_login)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    auth_service: AuthServiceDep,
) -> DataResponse[dict]:
    """Verify email + password and return a bearer token.

    Email verification is not required to log in.
    """
    result = await auth_service.login(email=body.email, password=body.password)
    return DataResponse(
        data={
            "user": result.user.model_dump(mode="json"),
            "token": result.token,
            "token_type": "bearer",
            "expires_in": result.expires_in,
        }
    )


@router.post("/logout")
async def logout(
    claim: OptionalClaim,
    auth_service: AuthServiceDep,
) -> DataResponse[dict]:
    """Log out.

    Tokens are stateless: the client discards its token, which otherwise
    stays valid until it expires.
    """
    await auth_service.logout(claim)
    return DataResponse(data={"message": "User logged out successfully"})


@router.get("/me")
async def get_me(user: CurrentUser) -> DataResponse[CurrentUserSchema]:
    """Return the caller's account, including verification status."""
    return DataResponse(data=CurrentUserSchema.model_validate(user))


# ===================================================================
# Password reset
# ===================================================================


@router.post("/forgot-password")
@limiter.limit(settings.rate_limit_forgot_password)
async def forgot_password(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ForgotPasswordRequest,
    auth_service: AuthServiceDep,
) -> DataResponse[dict]:
    """Request a password reset link.

    Always returns the same message (enumeration defense).
    """
    message = await auth_service.forgot_password(body.email)
    return DataResponse(data={"message": message})


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    auth_service: AuthServiceDep,
) -> DataResponse[dict]:
    """Set a new password using a reset token (single use)."""
    validate_password_strength(body.password)

    await auth_service.reset_password(token=body.token, new_password=body.password)
    return DataResponse(data={"message": "Password has been reset successfully"})


# ===================================================================
# Email verification
# ===================================================================


@router.post("/verify-email")
async def verify_email(
    body: VerifyEmailRequest,
    auth_service: AuthServiceDep,
) -> DataResponse[dict]:
    """Confirm an email address using a verification token (single use)."""
    user = await auth_service.verify_email(body.token)
    return DataResponse(
        data={
            "message": "Email verified successfully",
            "user": user.model_dump(mode="json"),
        }
    )


@router.post("/resend-verification")
@limiter.limit(settings.rate_limit_resend_verification)
async def resend_verification(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: ResendVerificationRequest,
    auth_service: AuthServiceDep,
) -> DataResponse[dict]:
    """Request a new verification link.

    Always returns the same message (enumeration defense).
    """
    message = await auth_service.resend_verification(body.email)
    return DataResponse(data={"message": message})
