"""Account emails: verification and password reset links.

Providers are picked by ``EMAIL_PROVIDER``:
- console: writes the message to the log (development, tests)
- smtp: delivers through the configured SMTP server

Sending is fire-and-forget with no retry. A failed send raises
EmailDeliveryException to the caller; whatever the caller already committed
stays committed.
"""

import html
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import formataddr
from typing import Callable, Optional
from urllib.parse import quote

from loguru import logger

from models.config import settings
from models.exceptions import EmailDeliveryException


class EmailProvider(ABC):
    """Delivers one fully built message; returns False on failure."""

    @abstractmethod
    def send(self, message: EmailMessage) -> bool:
        pass


class SMTPProvider(EmailProvider):
    """SMTP delivery, implicit SSL (port 465) or STARTTLS (port 587)."""

    def _connect(self) -> smtplib.SMTP:
        if settings.SMTP_USE_SSL:
            return smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT)
        return smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT)

    def send(self, message: EmailMessage) -> bool:
        recipient = message["To"]
        try:
            with self._connect() as server:
                if settings.SMTP_USE_TLS and not settings.SMTP_USE_SSL:
                    server.starttls()
                if settings.SMTP_USER and settings.SMTP_PASSWORD:
                    server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
                server.send_message(message)
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP authentication failed ({e.smtp_code})")
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {recipient}: {e!r}")
            return False

        logger.info(f"Email sent to {recipient}")
        return True


class ConsoleProvider(EmailProvider):
    def send(self, message: EmailMessage) -> bool:
        text_part = message.get_body(preferencelist=("plain",))
        text = text_part.get_content() if text_part is not None else ""
        logger.info(f"Email to {message['To']} | {message['Subject']}\n{text}")
        return True


_PROVIDERS: dict[str, Callable[[], EmailProvider]] = {
    "console": ConsoleProvider,
    "smtp": SMTPProvider,
}


def get_email_provider() -> EmailProvider:
    """Build the provider named by ``EMAIL_PROVIDER`` (console if unknown)."""
    name = settings.EMAIL_PROVIDER.lower()
    factory = _PROVIDERS.get(name)
    if factory is None:
        logger.warning(f"Unknown email provider '{name}', using console")
        factory = ConsoleProvider
    return factory()


def build_message(to_email: str, subject: str, text: str, html_body: str) -> EmailMessage:
    """Assemble a multipart/alternative message from the configured sender."""
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = formataddr((settings.SMTP_FROM_NAME, settings.SMTP_FROM_EMAIL))
    message["To"] = to_email
    message.set_content(text)
    message.add_alternative(html_body, subtype="html")
    return message


class EmailService:
    """High-level email service for account emails."""

    @staticmethod
    def _link(path: str, token: str) -> str:
        return f"{settings.FRONTEND_URL.rstrip('/')}{path}?token={quote(token)}"

    @staticmethod
    def _render(greeting_name: Optional[str], intro: str, link: str, outro: str) -> tuple[str, str]:
        """Build (text, html) bodies around a single call-to-action link."""
        name = greeting_name or "there"
        text = f"Hello {name},\n\n{intro}\n\n{link}\n\n{outro}\n"
        safe_name = html.escape(name)
        safe_link = html.escape(link, quote=True)
        body = (
            f"<p>Hello {safe_name},</p>"
            f"<p>{html.escape(intro)}</p>"
            f'<p><a href="{safe_link}">{safe_link}</a></p>'
            f"<p>{html.escape(outro)}</p>"
        )
        return text, body

    @classmethod
    def _deliver(cls, to_email: str, subject: str, text: str, html_body: str) -> None:
        message = build_message(to_email, subject, text, html_body)
        if not get_email_provider().send(message):
            raise EmailDeliveryException()

    @classmethod
    def send_verification_email(
        cls, to_email: str, token: str, name: Optional[str] = None
    ) -> None:
        """
        Send the email address verification link.

        Raises:
            EmailDeliveryException: If the provider could not send
        """
        text, body = cls._render(
            name,
            "Please confirm your email address by opening this link:",
            cls._link("/verify-email", token),
            f"The link expires in {settings.EMAIL_VERIFICATION_EXPIRE_HOURS} hours.",
        )
        cls._deliver(to_email, f"Verify your email - {settings.SMTP_FROM_NAME}", text, body)

    @classmethod
    def send_password_reset_email(
        cls, to_email: str, token: str, name: Optional[str] = None
    ) -> None:
        """
        Send the password reset link.

        Raises:
            EmailDeliveryException: If the provider could not send
        """
        text, body = cls._render(
            name,
            "Someone asked to reset your password. Open this link to choose a new one:",
            cls._link("/reset-password", token),
            f"The link expires in {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes. "
            "If you did not ask for this, ignore this email.",
        )
        cls._deliver(
            to_email, f"Reset your password - {settings.SMTP_FROM_NAME}", text, body
        )
