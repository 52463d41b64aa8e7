"""Delivery of confirmation and password reset messages."""

import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from warden.config import Settings
from warden.errors import InternalError

logger = logging.getLogger("warden")

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


class NotificationDispatcher(ABC):
    """Renders and sends the links that carry challenge tokens."""

    def __init__(self, frontend_url: str, app_name: str = "Warden") -> None:
        self.frontend_url = frontend_url.rstrip("/")
        self.app_name = app_name

    def confirmation_url(self, token: str) -> str:
        return f"{self.frontend_url}/confirm-email/{token}"

    def reset_url(self, token: str) -> str:
        return f"{self.frontend_url}/reset-password/{token}"

    @abstractmethod
    def send_confirmation(self, email: str, token: str) -> None: ...

    @abstractmethod
    def send_password_reset(self, email: str, token: str) -> None: ...


class LogNotifier(NotificationDispatcher):
    """Writes links to the server log. Used when no SMTP server is configured."""

    def send_confirmation(self, email: str, token: str) -> None:
        logger.info("EMAIL CONFIRMATION for %s: %s", email, self.confirmation_url(token))

    def send_password_reset(self, email: str, token: str) -> None:
        logger.info("PASSWORD RESET for %s: %s", email, self.reset_url(token))


class SmtpNotifier(NotificationDispatcher):
    """Sends HTML mail through an SMTP relay."""

    def __init__(
        self,
        frontend_url: str,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "",
        app_name: str = "Warden",
    ) -> None:
        super().__init__(frontend_url, app_name)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.templates = Environment(
            loader=FileSystemLoader(TEMPLATE_DIR),
            autoescape=select_autoescape(["html"]),
        )

    def send_confirmation(self, email: str, token: str) -> None:
        html = self.templates.get_template("email/confirm_email.html").render(
            app_name=self.app_name, url=self.confirmation_url(token)
        )
        self._send(email, "Confirm Your Email Address", html)

    def send_password_reset(self, email: str, token: str) -> None:
        html = self.templates.get_template("email/password_reset.html").render(
            app_name=self.app_name, url=self.reset_url(token)
        )
        self._send(email, "Password Reset Request", html)

    def _send(self, to: str, subject: str, html: str) -> None:
        message = EmailMessage()
        message["From"] = f'"{self.app_name}" <{self.sender}>'
        message["To"] = to
        message["Subject"] = subject
        message.set_content("Please view this message in an HTML capable mail client.")
        message.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(host=self.host, port=self.port) as conn:
                conn.starttls()
                if self.username:
                    conn.login(self.username, self.password)
                conn.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise InternalError("Failed to send email") from e
        logger.info("Email sent to %s: %s", to, subject)


def build_notifier(settings: Settings) -> NotificationDispatcher:
    """Pick SMTP delivery when a relay is configured, log delivery otherwise."""
    if settings.SMTP_HOST:
        return SmtpNotifier(
            frontend_url=settings.FRONTEND_URL,
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            sender=settings.SMTP_FROM,
            app_name=settings.APP_NAME,
        )
    return LogNotifier(frontend_url=settings.FRONTEND_URL, app_name=settings.APP_NAME)
