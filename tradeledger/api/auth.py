"""Auth routes (signup, login, passcode verify/resend, logout) and the session dependency.

Protected routes depend on require_user, which accepts the session cookie
set by verify-otp or an Authorization: Bearer header.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Request, Response, Security
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from tradeledger.config import settings
from tradeledger.database import get_db
from tradeledger.models.user import User
from tradeledger.services.auth.errors import AuthError, Unauthorized
from tradeledger.services.auth.service import AuthService, OtpIssued
from tradeledger.services.delivery import DeliveryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])

_session_cookie = APIKeyCookie(name=settings.session_cookie_name, auto_error=False)
_bearer = HTTPBearer(auto_error=False)


def get_delivery(request: Request) -> DeliveryService:
    return request.app.state.delivery


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    delivery: DeliveryService = Depends(get_delivery),
) -> AuthService:
    return AuthService(db, delivery)


def _session_token(
    cookie_token: str | None = Security(_session_cookie),
    bearer: HTTPAuthorizationCredentials | None = Security(_bearer),
) -> str | None:
    if bearer is not None:
        return bearer.credentials
    return cookie_token


async def require_user(
    token: str | None = Depends(_session_token),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Dependency that enforces an authenticated session."""
    try:
        return await auth.authenticate(token)
    except Unauthorized as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, max_length=32, pattern=r"^\+?[0-9 ()-]{6,}$")
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    otp_method: Literal["email", "phone"] = "email"


class VerifyOtpRequest(BaseModel):
    user_id: int
    otp: str = Field(..., min_length=1, max_length=12)


class ResendOtpRequest(BaseModel):
    user_id: int
    otp_method: Literal["email", "phone"] = "email"


def _issued_response(issued: OtpIssued) -> dict:
    body = {
        "user_id": issued.user_id,
        "otp_method": issued.delivery_method,
        "destination": issued.destination,
        "expires_at": issued.expires_at.isoformat(),
        "expires_in": issued.expires_in,
        "demo_mode": issued.demo_mode,
    }
    if issued.demo_mode:
        body["demo_otp"] = issued.demo_otp
        body["message"] = "Demo mode: delivery is not configured, the code is returned here"
    return body


@router.post("/signup", status_code=201)
async def signup(req: SignupRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        user = await auth.signup(req.name, req.email, req.phone, req.password)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return {"user": user.to_profile()}


@router.post("/login")
async def login(req: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Check credentials and send a passcode."""
    try:
        issued = await auth.login(req.email, req.password, req.otp_method)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return _issued_response(issued)


@router.post("/resend-otp")
async def resend_otp(req: ResendOtpRequest, auth: AuthService = Depends(get_auth_service)):
    try:
        issued = await auth.resend_otp(req.user_id, req.otp_method)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))
    return _issued_response(issued)


@router.get("/otp-status/{user_id}")
async def otp_status(user_id: int, auth: AuthService = Depends(get_auth_service)):
    """Pending-login state and seconds left, for the countdown display."""
    status = await auth.challenge_status(user_id)
    return {"state": status.state.value, "expires_in": status.expires_in}


@router.post("/verify-otp")
async def verify_otp(
    req: VerifyOtpRequest, response: Response, auth: AuthService = Depends(get_auth_service)
):
    """Exchange the passcode for a session cookie."""
    try:
        session = await auth.verify_otp(req.user_id, req.otp)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        secure=settings.app_env != "development",
        samesite="lax",
    )
    return {
        "user": session.user,
        "token": session.token,
        "expires_at": session.expires_at.isoformat(),
    }


@router.post("/logout")
async def logout(
    response: Response,
    token: str | None = Depends(_session_token),
    auth: AuthService = Depends(get_auth_service),
):
    try:
        await auth.logout(token)
    except Unauthorized:
        logger.info("Logout with an invalid token, clearing cookie only")
    response.delete_cookie(settings.session_cookie_name)
    return {"message": "Logged out"}


@router.get("/me")
async def me(user: User = Depends(require_user)):
    return {"user": user.to_profile()}
