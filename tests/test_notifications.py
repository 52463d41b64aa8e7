"""Tests for confirmation and reset message delivery."""

import logging
import smtplib
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from tests.conftest import PASSWORD
from warden.config import Settings
from warden.errors import InternalError
from warden.models.account import Account
from warden.services.notifications import LogNotifier, SmtpNotifier, build_notifier

TOKEN = "ab" * 32


class TestLogNotifier:
    """Tests for log delivery."""

    def test_logs_links(self, caplog):
        notifier = LogNotifier(frontend_url="http://app.test/")
        with caplog.at_level(logging.INFO, logger="warden"):
            notifier.send_confirmation("a@x.com", TOKEN)
            notifier.send_password_reset("a@x.com", TOKEN)
        assert f"http://app.test/confirm-email/{TOKEN}" in caplog.text
        assert f"http://app.test/reset-password/{TOKEN}" in caplog.text
        assert "PASSWORD RESET" in caplog.text


class TestSmtpNotifier:
    """Tests for SMTP delivery."""

    def _notifier(self) -> SmtpNotifier:
        return SmtpNotifier(
            frontend_url="http://app.test",
            host="smtp.test",
            port=2525,
            username="mailer",
            password="secret",
            sender="noreply@app.test",
        )

    def test_sends_rendered_confirmation(self):
        with patch("warden.services.notifications.smtplib.SMTP") as smtp_cls:
            conn = smtp_cls.return_value.__enter__.return_value
            self._notifier().send_confirmation("a@x.com", TOKEN)

        smtp_cls.assert_called_once_with(host="smtp.test", port=2525)
        conn.login.assert_called_once_with("mailer", "secret")
        message = conn.send_message.call_args.args[0]
        assert message["To"] == "a@x.com"
        assert message["Subject"] == "Confirm Your Email Address"
        html = message.get_body(preferencelist=("html",)).get_content()
        assert f"http://app.test/confirm-email/{TOKEN}" in html

    def test_sends_reset(self):
        with patch("warden.services.notifications.smtplib.SMTP") as smtp_cls:
            conn = smtp_cls.return_value.__enter__.return_value
            self._notifier().send_password_reset("a@x.com", TOKEN)
        html = conn.send_message.call_args.args[0].get_body(preferencelist=("html",)).get_content()
        assert f"http://app.test/reset-password/{TOKEN}" in html

    def test_transport_failure(self):
        with patch("warden.services.notifications.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, b"busy")):
            with pytest.raises(InternalError):
                self._notifier().send_confirmation("a@x.com", TOKEN)

    def test_build_notifier_picks_transport(self):
        settings = Settings()
        settings.SMTP_HOST = ""
        assert isinstance(build_notifier(settings), LogNotifier)
        settings.SMTP_HOST = "smtp.test"
        assert isinstance(build_notifier(settings), SmtpNotifier)


class TestDispatchFailure:
    """A failed delivery never undoes the committed transition."""

    def test_register_survives_failed_email(self, client: TestClient, db_session: Session):
        from main import app

        failing = MagicMock()
        failing.send_confirmation.side_effect = InternalError("Failed to send email")
        app.state.notifier = failing

        response = client.post(
            "/api/v1/auth/register", json={"username": "alice", "email": "alice@x.com", "password": PASSWORD}
        )
        assert response.status_code == 201
        account = db_session.query(Account).filter(Account.username == "alice").one()
        assert account.email_confirmation_token is not None
