"""
Email Service

Renders Jinja2 templates from ``docarchive/templates/emails`` and sends them
over SMTP. Routes schedule these methods as background tasks, so every send
method reports failure through its return value and the log, never by raising.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"


class EmailService:
    """Service for sending emails with template support"""

    def __init__(
        self,
        smtp_host: str | None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_from: str = "noreply@localhost",
        app_name: str = "DocArchive",
        frontend_url: str = "http://localhost:3000",
        timeout: int = 10,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_from = smtp_from
        self.app_name = app_name
        self.frontend_url = frontend_url.rstrip("/")
        self.timeout = timeout

        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    @classmethod
    def from_settings(cls, settings) -> "EmailService":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            smtp_from=settings.smtp_from,
            app_name=settings.app_name,
            frontend_url=settings.frontend_url,
            timeout=settings.smtp_timeout,
        )

    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str | None = None) -> bool:
        """
        Send an email using SMTP.

        Returns:
            bool: True if the message was handed to the SMTP server
        """
        if not self.is_configured():
            logger.info(f"SMTP not configured; skipping email '{subject}' to {to_email}")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.smtp_from
        msg["To"] = to_email
        if text_body:
            msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}' to {to_email}: {e}")
            return False

        logger.info(f"Email '{subject}' sent to {to_email}")
        return True

    def _render_and_send(self, template_name: str, to_email: str, subject: str, text_body: str, **context) -> bool:
        try:
            html_body = self.env.get_template(template_name).render(app_name=self.app_name, **context)
        except TemplateError as e:
            logger.error(f"Failed to render {template_name}: {e}")
            return False
        return self._send_email(to_email, subject, html_body, text_body)

    def send_welcome_email(self, to_email: str, name: str) -> bool:
        return self._render_and_send(
            "welcome.html",
            to_email,
            f"Welcome to {self.app_name}",
            f"Hello {name},\n\nYour {self.app_name} account is ready.\n",
            name=name,
            login_url=f"{self.frontend_url}/login",
        )

    def send_verification_email(self, to_email: str, name: str, token: str) -> bool:
        verify_url = f"{self.frontend_url}/verify-email/{token}"
        return self._render_and_send(
            "verify_email.html",
            to_email,
            "Verify your email address",
            f"Hello {name},\n\nConfirm your email address: {verify_url}\n\nThe link is valid for 24 hours.\n",
            name=name,
            verify_url=verify_url,
        )

    def send_password_reset_email(self, to_email: str, name: str, token: str, expires_minutes: int = 10) -> bool:
        reset_url = f"{self.frontend_url}/reset-password/{token}"
        return self._render_and_send(
            "password_reset.html",
            to_email,
            "Your password reset link",
            f"Hello {name},\n\nReset your password: {reset_url}\n\n"
            f"The link expires in {expires_minutes} minutes. Ignore this email if you did not ask for it.\n",
            name=name,
            reset_url=reset_url,
            expires_minutes=expires_minutes,
        )

    def send_password_changed_email(self, to_email: str, name: str) -> bool:
        return self._render_and_send(
            "password_changed.html",
            to_email,
            "Your password was changed",
            f"Hello {name},\n\nYour password was just changed. Contact support if this was not you.\n",
            name=name,
        )

    def send_document_shared_email(
        self,
        to_email: str,
        recipient_name: str,
        sharer_name: str,
        document_title: str,
        document_id: int,
        permission: str,
        message: str | None = None,
    ) -> bool:
        document_url = f"{self.frontend_url}/documents/{document_id}"
        return self._render_and_send(
            "document_shared.html",
            to_email,
            f"{sharer_name} shared \"{document_title}\" with you",
            f"Hello {recipient_name},\n\n{sharer_name} shared \"{document_title}\" with you ({permission}).\n"
            f"{message or ''}\n{document_url}\n",
            recipient_name=recipient_name,
            sharer_name=sharer_name,
            document_title=document_title,
            document_url=document_url,
            permission=permission,
            message=message,
        )

    def send_comment_notification_email(
        self,
        to_email: str,
        owner_name: str,
        commenter_name: str,
        document_title: str,
        document_id: int,
        comment_text: str,
    ) -> bool:
        document_url = f"{self.frontend_url}/documents/{document_id}"
        return self._render_and_send(
            "comment_notification.html",
            to_email,
            f"New comment on \"{document_title}\"",
            f"Hello {owner_name},\n\n{commenter_name} commented on \"{document_title}\":\n\n"
            f"{comment_text}\n\n{document_url}\n",
            owner_name=owner_name,
            commenter_name=commenter_name,
            document_title=document_title,
            document_url=document_url,
            comment_text=comment_text,
        )
