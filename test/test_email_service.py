"""
Tests for Email Service

Template rendering and SMTP delivery. Failures are reported through the
return value, never raised.
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from docarchive.services.email_service import EmailService

TOKEN = "ab" * 32


class TestEmailService:
    """Test email service functionality"""

    @pytest.fixture
    def mock_smtp(self):
        """Mock SMTP server"""
        with patch("docarchive.services.email_service.smtplib.SMTP") as mock:
            smtp_instance = MagicMock()
            mock.return_value.__enter__.return_value = smtp_instance
            yield smtp_instance

    @pytest.fixture
    def email_svc(self):
        return EmailService(
            smtp_host="smtp.example.com",
            smtp_user="mailer",
            smtp_password="secret",
            smtp_from="DocArchive <noreply@example.com>",
            frontend_url="https://app.example.com/",
        )

    def sent_message(self, mock_smtp):
        return mock_smtp.send_message.call_args.args[0]

    def test_unconfigured_service_skips_sending(self):
        """Without an SMTP host nothing is sent"""
        with patch("docarchive.services.email_service.smtplib.SMTP") as smtp:
            result = EmailService(smtp_host=None).send_welcome_email("new@example.com", "New User")

        assert result is False
        smtp.assert_not_called()

    def test_welcome_email(self, email_svc, mock_smtp):
        result = email_svc.send_welcome_email("new@example.com", "New User")

        assert result is True
        mock_smtp.starttls.assert_called_once()
        mock_smtp.login.assert_called_once_with("mailer", "secret")
        msg = self.sent_message(mock_smtp)
        assert msg["Subject"] == "Welcome to DocArchive"
        assert msg["To"] == "new@example.com"

    def test_verification_link(self, email_svc, mock_smtp):
        email_svc.send_verification_email("new@example.com", "New User", TOKEN)

        body = self.sent_message(mock_smtp).as_string()
        assert f"https://app.example.com/verify-email/{TOKEN}" in body

    def test_password_reset_link(self, email_svc, mock_smtp):
        email_svc.send_password_reset_email("user@example.com", "User", TOKEN, expires_minutes=10)

        msg = self.sent_message(mock_smtp)
        assert f"/reset-password/{TOKEN}" in msg.as_string()
        assert "10 minutes" in msg.as_string()

    def test_password_changed(self, email_svc, mock_smtp):
        assert email_svc.send_password_changed_email("user@example.com", "User") is True
        assert self.sent_message(mock_smtp)["Subject"] == "Your password was changed"

    def test_document_shared(self, email_svc, mock_smtp):
        email_svc.send_document_shared_email(
            "colleague@example.com", "Colin", "Olivia Owner", "Budget", 7, "edit", message="Please review"
        )

        msg = self.sent_message(mock_smtp)
        assert msg["Subject"] == 'Olivia Owner shared "Budget" with you'
        assert "https://app.example.com/documents/7" in msg.as_string()

    def test_comment_html_is_escaped(self, email_svc):
        with patch.object(email_svc, "_send_email", return_value=True) as send:
            email_svc.send_comment_notification_email(
                "owner@example.com", "Olivia", "Colin", "Budget", 7, "<script>alert(1)</script>"
            )

        html_body = send.call_args.args[2]
        assert "<script>" not in html_body
        assert "&lt;script&gt;" in html_body

    def test_smtp_failure_returns_false(self, email_svc):
        with patch("docarchive.services.email_service.smtplib.SMTP") as smtp:
            smtp.side_effect = smtplib.SMTPConnectError(421, "unavailable")

            assert email_svc.send_welcome_email("new@example.com", "New User") is False

    def test_connection_error_returns_false(self, email_svc):
        with patch("docarchive.services.email_service.smtplib.SMTP") as smtp:
            smtp.side_effect = ConnectionRefusedError()

            assert email_svc.send_password_changed_email("user@example.com", "User") is False

    def test_missing_template_returns_false(self, email_svc, mock_smtp):
        assert email_svc._render_and_send("missing.html", "a@example.com", "Subject", "text") is False
        mock_smtp.send_message.assert_not_called()
