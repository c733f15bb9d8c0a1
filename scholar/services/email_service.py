"""
OTP email delivery.

SendGrid when ``SENDGRID_API_KEY`` is set, otherwise SMTP (Gmail by default)
with ``SMTP_USER``/``SMTP_PASSWORD``. With neither configured, outside
production, messages are logged instead of sent and count as delivered.

Delivery never raises: callers get ``False`` and decide what to tell the user.
"""

import asyncio
import smtplib
from email.message import EmailMessage

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from scholar.core.config import settings
from scholar.core.logging_config import get_logger

logger = get_logger(__name__)

BACKEND_SENDGRID = "sendgrid"
BACKEND_SMTP = "smtp"
BACKEND_SIMULATED = "simulated"


def mask_address(email: str) -> str:
    """``ana@x.com`` -> ``a***@x.com`` for log lines."""
    local, sep, domain = email.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


def select_backend() -> str | None:
    if settings.sendgrid_api_key:
        return BACKEND_SENDGRID
    if settings.smtp_user and settings.smtp_password:
        return BACKEND_SMTP
    if settings.environment != "production":
        return BACKEND_SIMULATED
    return None


def _send_via_sendgrid(to_email: str, subject: str, html_content: str) -> bool:
    message = Mail(
        from_email=settings.from_email,
        to_emails=to_email,
        subject=subject,
        html_content=html_content,
    )
    response = SendGridAPIClient(settings.sendgrid_api_key).send(message)
    if response.status_code >= 300:
        logger.error(f"SendGrid rejected email | to={mask_address(to_email)} | status={response.status_code}")
        return False
    return True


def _send_via_smtp(to_email: str, subject: str, html_content: str) -> bool:
    msg = EmailMessage()
    msg["From"] = f'"{settings.app_name}" <{settings.smtp_user}>'
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content("Open this message in an HTML-capable mail client to see your code.")
    msg.add_alternative(html_content, subtype="html")

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_password)
        server.send_message(msg)
    return True


def send_email_sync(to_email: str, subject: str, html_content: str) -> bool:
    """Deliver one message through the configured backend. Returns False on any failure."""
    backend = select_backend()
    if backend is None:
        logger.warning("No email provider configured (set SENDGRID_API_KEY or SMTP_USER+SMTP_PASSWORD)")
        return False

    if backend == BACKEND_SIMULATED:
        logger.info(f"Email simulated | to={mask_address(to_email)} | subject={subject}")
        return True

    try:
        if backend == BACKEND_SENDGRID:
            sent = _send_via_sendgrid(to_email, subject, html_content)
        else:
            sent = _send_via_smtp(to_email, subject, html_content)
    except Exception as e:
        logger.error(f"Email delivery failed | backend={backend} | to={mask_address(to_email)} | error={e}")
        return False

    if sent:
        logger.info(f"Email sent | backend={backend} | to={mask_address(to_email)} | subject={subject}")
    return sent


async def send_email(to_email: str, subject: str, html_content: str) -> bool:
    """Run the blocking send in a worker thread."""
    return await asyncio.to_thread(send_email_sync, to_email, subject, html_content)


def render_otp_email(otp: str, heading: str = "Your OTP") -> str:
    return (
        f"<h2>{heading}</h2>"
        f"<h1>{otp}</h1>"
        f"<p>Valid for {settings.otp_ttl_minutes} minutes</p>"
    )
