"""Email service for transactional messages and notification emails."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

from app.core.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(self):
        """Initialize email service with SMTP configuration."""
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.from_email = settings.email_from or settings.smtp_user
        self.app_url = settings.app_url.rstrip("/")

    def _validate_config(self) -> bool:
        """Validate email configuration."""
        if not all([self.smtp_host, self.smtp_user, self.smtp_password]):
            logger.warning("Email service not configured properly")
            return False
        return True

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML content of the email
            text_content: Plain text content (fallback)

        Returns:
            True if email sent successfully, False otherwise
        """
        if not self._validate_config():
            logger.error("Cannot send email - configuration invalid")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = self.from_email
            msg["To"] = to_email

            if text_content:
                msg.attach(MIMEText(text_content, "plain"))
            msg.attach(MIMEText(html_content, "html"))

            logger.info(f"Sending email to {to_email} with subject: {subject}")

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"✅ Email sent successfully to {to_email}")
            return True

        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"❌ SMTP authentication failed: {str(e)}")
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ SMTP error sending email: {str(e)}")
            return False

    # ----- Message builders -------------------------------------------------

    def build_verification_email(self, name: str, token: str) -> dict:
        link = f"{self.app_url}/verify-email/{token}"
        return self._message(
            subject="Verify your email",
            greeting=name,
            body="Please confirm your email address. The link is valid for 24 hours.",
            action_label="Verify email",
            action_url=link,
        )

    def build_password_reset_email(self, name: str, token: str) -> dict:
        link = f"{self.app_url}/reset-password/{token}"
        return self._message(
            subject="Your password reset token (valid for 10 min)",
            greeting=name,
            body="You requested a password reset. If this wasn't you, ignore this email.",
            action_label="Reset password",
            action_url=link,
        )

    def build_invitation_email(self, inviter_name: str, target_kind: str, target_name: str, token: str) -> dict:
        link = f"{self.app_url}/invitations/{target_kind}/{token}"
        return self._message(
            subject=f"You're invited to join the {target_kind} {target_name}",
            greeting=None,
            body=f"{inviter_name} invited you to join the {target_kind} \"{target_name}\". "
            "The invitation expires in 7 days.",
            action_label="Accept invitation",
            action_url=link,
        )

    def build_notification_email(self, name: str, activity_type: str, summary: str) -> dict:
        title = activity_type.replace("_", " ").capitalize()
        return self._message(
            subject=f"📋 {title}",
            greeting=name,
            body=summary,
            action_label="Open TaskHub",
            action_url=self.app_url,
        )

    def _message(
        self,
        subject: str,
        greeting: str | None,
        body: str,
        action_label: str,
        action_url: str,
    ) -> dict:
        hello = f"Hi {greeting}," if greeting else "Hi,"
        html = f"""
        <!DOCTYPE html>
        <html>
        <body style="margin: 0; padding: 0; font-family: Arial, sans-serif; background-color: #f3f4f6;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <div style="background-color: white; border-radius: 12px; padding: 30px;">
                    <h1 style="color: #4f46e5; font-size: 24px;">📋 TaskHub</h1>
                    <p style="color: #374151; font-size: 16px;">{escape(hello)}</p>
                    <p style="color: #6b7280; font-size: 15px; line-height: 1.6;">{escape(body)}</p>
                    <a href="{escape(action_url)}"
                       style="display: inline-block; background-color: #4f46e5; color: white; text-decoration: none; padding: 12px 30px; border-radius: 8px;">
                        {escape(action_label)}
                    </a>
                </div>
            </div>
        </body>
        </html>
        """
        text = f"{hello}\n\n{body}\n\n{action_label}: {action_url}\n"
        return {"subject": subject, "html_content": html, "text_content": text}


# Create singleton instance
email_service = EmailService()


def queue_email(to_email: str, message: dict) -> bool:
    """
    Hand an email to the Celery worker.

    Delivery is best-effort: without SMTP settings, or when the broker is
    unreachable, the message is dropped and logged.
    """
    if not settings.has_email_enabled:
        logger.info(f"Email delivery disabled, skipping '{message['subject']}' to {to_email}")
        return False

    try:
        from app.tasks.notification_tasks import send_email_task

        send_email_task.delay(
            to_email,
            message["subject"],
            message["html_content"],
            message.get("text_content"),
        )
        return True
    except Exception as e:
        logger.error(f"❌ Failed to queue email to {to_email}: {str(e)}")
        return False
