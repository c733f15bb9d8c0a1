from fastapi import APIRouter, Depends, Request

from scholar.db.database import get_user_store
from scholar.core.rate_limit import limiter
from scholar.db.user_store import UserStore
from scholar.schemas.user import (
    EmailRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    VerifyAndLoginRequest,
    VerifyOtpRequest,
)
from scholar.services import auth_service

router = APIRouter(tags=["Authentication"])


def _login_response(result: auth_service.AuthResult) -> LoginResponse:
    return LoginResponse(message=result.message, user=result.user.public())


@router.post("/signup", response_model=MessageResponse)
@limiter.limit("5/minute")
async def signup(body: SignupRequest, request: Request, store: UserStore = Depends(get_user_store)):
    """Create an unverified account and email a 6-digit OTP."""
    result = await auth_service.signup(store, body.name, body.email, body.password)
    return MessageResponse(message=result.message)


@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
async def login(body: LoginRequest, request: Request, store: UserStore = Depends(get_user_store)):
    result = await auth_service.login(store, body.email, body.password)
    return _login_response(result)


@router.post("/verify-otp", response_model=MessageResponse)
@limiter.limit("5/minute")
async def verify_otp(body: VerifyOtpRequest, request: Request, store: UserStore = Depends(get_user_store)):
    result = await auth_service.verify_otp(store, body.email, body.otp)
    return MessageResponse(message=result.message)


@router.post("/resend-otp", response_model=MessageResponse)
@limiter.limit("5/minute")
async def resend_otp(body: EmailRequest, request: Request, store: UserStore = Depends(get_user_store)):
    result = await auth_service.resend_otp(store, body.email)
    return MessageResponse(message=result.message)


@router.post("/verify-and-login", response_model=LoginResponse)
@limiter.limit("5/minute")
async def verify_and_login(body: VerifyAndLoginRequest, request: Request, store: UserStore = Depends(get_user_store)):
    """Verify the signup OTP and log in with one request. The OTP is spent either way."""
    result = await auth_service.verify_and_login(store, body.email, body.otp, body.password)
    return _login_response(result)


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit("5/minute")
async def forgot_password(body: EmailRequest, request: Request, store: UserStore = Depends(get_user_store)):
    result = await auth_service.forgot_password(store, body.email)
    return MessageResponse(message=result.message)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit("5/minute")
async def reset_password(body: ResetPasswordRequest, request: Request, store: UserStore = Depends(get_user_store)):
    result = await auth_service.reset_password(store, body.email, body.otp, body.newPassword)
    return MessageResponse(message=result.message)
