"""Email service for invite notifications.

Supports both SMTP and console logging modes, configured from
qahub.config (SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD,
SMTP_FROM_EMAIL, SMTP_FROM_NAME, APP_BASE_URL).

If SMTP_HOST is not set, emails are logged instead of sent.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from qahub import config

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails."""

    def __init__(
        self,
        smtp_host: Optional[str] = config.SMTP_HOST,
        smtp_port: int = config.SMTP_PORT,
        smtp_user: Optional[str] = config.SMTP_USER,
        smtp_password: Optional[str] = config.SMTP_PASSWORD,
        from_email: str = config.SMTP_FROM_EMAIL,
        from_name: str = config.SMTP_FROM_NAME,
        app_base_url: str = config.APP_BASE_URL,
        invite_ttl_days: int = config.INVITE_TTL_DAYS,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email
        self.from_name = from_name
        self.app_base_url = app_base_url.rstrip("/")
        self.invite_ttl_days = invite_ttl_days

    @property
    def is_configured(self) -> bool:
        """Check if SMTP is configured."""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    def invite_url(self, invite_id: str) -> str:
        """Link the invitee follows to accept. The invite id is the token."""
        return f"{self.app_base_url}/accept-invite?token={invite_id}"

    def send_email(
        self,
        to_email: str,
        subject: str,
        body_text: str,
        body_html: Optional[str] = None,
    ) -> bool:
        """Send an email.

        Returns:
            True if sent (or logged in unconfigured mode), False on failure
        """
        if not self.is_configured:
            logger.info(
                f"[EMAIL - Not Configured] To: {to_email}\n"
                f"Subject: {subject}\n"
                f"Body: {body_text}"
            )
            return True

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            msg.attach(MIMEText(body_text, "plain"))
            if body_html:
                msg.attach(MIMEText(body_html, "html"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            logger.info(f"Email sent to {to_email}: {subject}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

    def send_workspace_invite(
        self,
        invite_id: str,
        email: str,
        workspace_name: str,
        inviter_name: Optional[str],
        role: str,
    ) -> bool:
        """Send a workspace invitation email.

        Args:
            invite_id: Invite id, doubling as the accept token
            email: Invitee email address
            workspace_name: Name of the workspace
            inviter_name: Display name of the inviting member
            role: Role the invitee will receive

        Returns:
            True if delivered
        """
        invite_url = self.invite_url(invite_id)
        inviter_text = f" by {inviter_name}" if inviter_name else ""
        days = self.invite_ttl_days

        subject = f"You've been invited to join {workspace_name} on QAHub"

        body_text = f"""
You've been invited{inviter_text} to join the workspace "{workspace_name}" as {role}.

Click the link below to accept the invitation:
{invite_url}

If you don't have an account yet, sign up with this email address
and the invitation will be applied automatically.

This invitation will expire in {days} days.

---
If you didn't expect this invitation, you can ignore this email.
"""

        body_html = f"""
<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; }}
    .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    .button {{ display: inline-block; padding: 12px 24px; background: #2563eb; color: #fff; text-decoration: none; border-radius: 6px; font-weight: 600; }}
    .footer {{ margin-top: 32px; color: #666; font-size: 14px; }}
  </style>
</head>
<body>
  <div class="container">
    <h2>Join {workspace_name} on QAHub</h2>
    <p>You've been invited{inviter_text} to the workspace <strong>{workspace_name}</strong> as <strong>{role}</strong>.</p>
    <p style="margin: 24px 0;">
      <a href="{invite_url}" class="button">Accept Invitation</a>
    </p>
    <p>Or copy and paste this link: <a href="{invite_url}">{invite_url}</a></p>
    <p>This invitation will expire in {days} days.</p>
    <div class="footer">
      <p>If you didn't expect this invitation, you can ignore this email.</p>
    </div>
  </div>
</body>
</html>
"""

        return self.send_email(email, subject, body_text, body_html)


# Global instance
email_service = EmailService()
