"""
Account lifecycle: signup, OTP email verification, login and password reset.

States: UNVERIFIED (otp set) -> VERIFIED (otp cleared). A pending password
reset (resetOtp set) is tracked independently of verification.

Every OTP-consuming step goes through the store's compare-and-swap, so a code
is accepted at most once. Email delivery failures never undo a state change;
the caller is told to request a resend instead.
"""

import asyncio
from dataclasses import dataclass

from scholar.core.exceptions import (
    DuplicateAccountError,
    InvalidCredentialsError,
    InvalidOtpError,
    NotFoundError,
    UnverifiedAccountError,
)
from scholar.core.logging_config import get_logger
from scholar.core.security import (
    generate_otp,
    get_password_hash,
    otp_expiry,
    utcnow,
    verify_password,
)
from scholar.db.user_store import UserStore
from scholar.models.user import AccountState, UserAccount
from scholar.services.email_service import render_otp_email, send_email

logger = get_logger(__name__)

SIGNUP_SUBJECT = "Verify your Scholar AI account"
RESEND_SUBJECT = "Your verification OTP"
RESET_SUBJECT = "Reset your Scholar AI password"


@dataclass
class AuthResult:
    message: str
    user: UserAccount | None = None
    email_sent: bool = True


async def _send_signup_otp(email: str, otp: str, subject: str) -> bool:
    return await send_email(email, subject, render_otp_email(otp))


async def _reissue_for_unverified(store: UserStore, existing: UserAccount) -> AuthResult:
    if existing.state is AccountState.VERIFIED:
        raise DuplicateAccountError()

    otp = generate_otp()
    await store.set_signup_otp(existing.email, otp, otp_expiry())
    logger.info(f"Signup retry for unverified account, OTP reissued | storage={store.name}")

    if await _send_signup_otp(existing.email, otp, RESEND_SUBJECT):
        return AuthResult("User exists but not verified, OTP resent")
    return AuthResult(
        "User exists but failed to send OTP email. Please request resend.",
        email_sent=False,
    )


async def signup(store: UserStore, name: str, email: str, password: str) -> AuthResult:
    """
    Create an UNVERIFIED account and email its OTP.

    An existing unverified account gets a fresh OTP (the old one stops working);
    an existing verified account is rejected.

    Raises:
        DuplicateAccountError: If a verified account already uses the email
    """
    existing = await store.get_by_email(email)
    if existing:
        return await _reissue_for_unverified(store, existing)

    otp = generate_otp()
    account = UserAccount(
        name=name,
        email=email,
        password_hash=await asyncio.to_thread(get_password_hash, password),
        is_verified=False,
        otp=otp,
        otp_expiry=otp_expiry(),
    )
    if not await store.create(account):
        # Another request created it between the lookup and the insert
        existing = await store.get_by_email(email)
        if existing is None:
            raise RuntimeError("Account insert rejected but no record found")
        return await _reissue_for_unverified(store, existing)

    logger.info(f"Account created | storage={store.name}")

    if await _send_signup_otp(email, otp, SIGNUP_SUBJECT):
        return AuthResult("OTP sent to email")
    return AuthResult(
        "User created but failed to send OTP email. Please request resend.",
        email_sent=False,
    )


async def _consume_signup_otp(store: UserStore, email: str, otp: str) -> UserAccount:
    account = await store.consume_signup_otp(email, otp, utcnow())
    if account is not None:
        return account
    if await store.get_by_email(email) is None:
        raise NotFoundError()
    raise InvalidOtpError()


async def verify_otp(store: UserStore, email: str, otp: str) -> AuthResult:
    """
    Mark the account VERIFIED if ``otp`` is the current, unexpired signup code.

    Raises:
        NotFoundError: If no account uses the email
        InvalidOtpError: If the code is wrong, absent or expired
    """
    account = await _consume_signup_otp(store, email, otp)
    logger.info(f"Account verified | storage={store.name}")
    return AuthResult("Account verified successfully", user=account)


async def resend_otp(store: UserStore, email: str) -> AuthResult:
    """
    Issue a fresh signup OTP regardless of verification state and email it.

    Raises:
        NotFoundError: If no account uses the email
    """
    otp = generate_otp()
    if not await store.set_signup_otp(email, otp, otp_expiry()):
        raise NotFoundError()

    if await _send_signup_otp(email, otp, RESEND_SUBJECT):
        return AuthResult("OTP resent")
    return AuthResult(
        "OTP generated but failed to send email. Please request resend.",
        email_sent=False,
    )


async def verify_and_login(store: UserStore, email: str, otp: str, password: str) -> AuthResult:
    """
    Verify the OTP and check the password in one step.

    The OTP is spent even when the password turns out to be wrong.

    Raises:
        NotFoundError: If no account uses the email
        InvalidOtpError: If the code is wrong, absent or expired
        InvalidCredentialsError: If the password does not match
    """
    account = await _consume_signup_otp(store, email, otp)
    if not await asyncio.to_thread(verify_password, password, account.password_hash):
        logger.info(f"Verify-and-login: OTP accepted but password rejected | storage={store.name}")
        raise InvalidCredentialsError()
    return AuthResult("Login successful", user=account)


async def login(store: UserStore, email: str, password: str) -> AuthResult:
    """
    Raises:
        InvalidCredentialsError: If the account is missing or the password is wrong
        UnverifiedAccountError: If the account has not been verified (checked first)
    """
    account = await store.get_by_email(email)
    if account is None:
        raise InvalidCredentialsError()
    if account.state is AccountState.UNVERIFIED:
        raise UnverifiedAccountError()
    if not await asyncio.to_thread(verify_password, password, account.password_hash):
        raise InvalidCredentialsError()
    return AuthResult("Login successful", user=account)


async def forgot_password(store: UserStore, email: str) -> AuthResult:
    """
    Issue a password-reset OTP and email it.

    Raises:
        NotFoundError: If no account uses the email
    """
    otp = generate_otp()
    if not await store.set_reset_otp(email, otp, otp_expiry()):
        raise NotFoundError()
    logger.info(f"Password reset requested | storage={store.name}")

    sent = await send_email(email, RESET_SUBJECT, render_otp_email(otp, heading="Password Reset OTP"))
    if sent:
        return AuthResult("Reset OTP sent")
    return AuthResult(
        "Reset OTP generated but failed to send email. Please try again.",
        email_sent=False,
    )


async def reset_password(store: UserStore, email: str, otp: str, new_password: str) -> AuthResult:
    """
    Replace the password if ``otp`` is the current, unexpired reset code.

    Raises:
        InvalidOtpError: If the account is missing or the code is wrong, absent or expired
    """
    password_hash = await asyncio.to_thread(get_password_hash, new_password)
    if not await store.consume_reset_otp(email, otp, utcnow(), password_hash):
        raise InvalidOtpError()
    logger.info(f"Password reset completed | storage={store.name}")
    return AuthResult("Password reset successful")
