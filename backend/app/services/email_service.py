"""
Email Service for UniManage
===========================
Handles account emails:
- Email verification on registration
- Password reset links

Delivery goes over SMTP with aiosmtplib. Sending never raises: callers get
a bool and decide whether a failure matters to them.
"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
from datetime import datetime

from app.core.config import settings
from app.core.logging_config import logger


BASE_STYLE = """
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #1e3a8a; color: white; padding: 24px; text-align: center; border-radius: 10px 10px 0 0; }
    .content { background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px; }
    .button { display: inline-block; background: #1e40af; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: 600; margin: 20px 0; }
    .footer { text-align: center; margin-top: 30px; font-size: 12px; color: #6b7280; }
"""


class EmailService:
    """Async SMTP email service"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL.rstrip("/")

    @property
    def is_configured(self) -> bool:
        """SMTP host and credentials are all set"""
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email asynchronously.

        Returns True if successful, False otherwise.
        """
        if not self.is_configured:
            logger.warning("[Email] SMTP not configured, skipping email send")
            return False

        try:
            message = MIMEMultipart("alternative")
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email
            message["Subject"] = subject

            if text_content:
                message.attach(MIMEText(text_content, "plain"))
            message.attach(MIMEText(html_content, "html"))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.use_tls
            )

            logger.info(f"[Email/SMTP] Sent '{subject}' to {to_email}")
            return True

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return False

    def _render(self, title: str, greeting_name: Optional[str], body: str, link: str, label: str) -> str:
        return f"""
        <!DOCTYPE html>
        <html>
        <head><style>{BASE_STYLE}</style></head>
        <body>
            <div class="container">
                <div class="header"><h1>{title}</h1></div>
                <div class="content">
                    <p>Hi {greeting_name or 'there'},</p>
                    <p>{body}</p>
                    <p style="text-align: center;"><a href="{link}" class="button">{label}</a></p>
                    <p style="font-size: 14px; color: #6b7280;">
                        Or paste this link in your browser:<br>
                        <code style="word-break: break-all;">{link}</code>
                    </p>
                </div>
                <div class="footer">
                    <p>&copy; {datetime.utcnow().year} {settings.APP_NAME}</p>
                </div>
            </div>
        </body>
        </html>
        """

    async def send_verification_email(
        self,
        to_email: str,
        user_name: str,
        verification_token: str
    ) -> bool:
        """Send the email verification link to a new account"""
        link = f"{self.frontend_url}/verify-email/{verification_token}"
        hours = settings.VERIFICATION_TOKEN_EXPIRE_HOURS

        html_content = self._render(
            title=f"Welcome to {settings.APP_NAME}",
            greeting_name=user_name,
            body=f"Please confirm your email address. This link expires in {hours} hours.",
            link=link,
            label="Verify Email Address",
        )
        text_content = (
            f"Hi {user_name or 'there'},\n\n"
            f"Confirm your email address: {link}\n\n"
            f"This link expires in {hours} hours.\n"
        )
        return await self.send_email(
            to_email, f"Verify your email - {settings.APP_NAME}", html_content, text_content
        )

    async def send_password_reset_email(
        self,
        to_email: str,
        user_name: str,
        reset_token: str
    ) -> bool:
        """Send the password reset link"""
        link = f"{self.frontend_url}/reset-password/{reset_token}"
        minutes = settings.RESET_TOKEN_EXPIRE_MINUTES

        html_content = self._render(
            title="Password Reset Request",
            greeting_name=user_name,
            body=(
                "We received a request to reset your password. "
                f"This link expires in {minutes} minutes. "
                "If you did not ask for it, ignore this email."
            ),
            link=link,
            label="Reset Password",
        )
        text_content = (
            f"Hi {user_name or 'there'},\n\n"
            f"Reset your password: {link}\n\n"
            f"This link expires in {minutes} minutes.\n"
        )
        return await self.send_email(
            to_email, f"Reset your password - {settings.APP_NAME}", html_content, text_content
        )


email_service = EmailService()
