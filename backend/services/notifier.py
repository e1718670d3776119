import html
import smtplib
from email.message import EmailMessage
from typing import Optional
from core.config import Settings
import logging

logger = logging.getLogger(__name__)


class Notifier:
    """SMTP-backed notifier. Built once at startup and handed out by ``get_notifier``.

    Every ``send_*`` method returns True on delivery and False otherwise;
    delivery problems are logged, never raised.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.SMTP_HOST and self.settings.SMTP_FROM_EMAIL)

    def _sender(self) -> str:
        s = self.settings
        if s.SMTP_FROM_NAME and s.SMTP_FROM_EMAIL:
            return f"{s.SMTP_FROM_NAME} <{s.SMTP_FROM_EMAIL}>"
        return s.SMTP_FROM_EMAIL or "no-reply@example.com"

    def _build_message(self, subject: str, to_email: str, html_body: str, text_body: Optional[str] = None) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._sender()
        msg["To"] = to_email
        if text_body:
            msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")
        return msg

    def send_email(self, subject: str, to_email: str, html_body: str, text_body: Optional[str] = None) -> bool:
        if not self.configured:
            logger.warning("SMTP not configured; skipping email send")
            return False
        s = self.settings
        try:
            msg = self._build_message(subject, to_email, html_body, text_body)
            timeout = s.SMTP_TIMEOUT or 15
            debug = 1 if s.SMTP_DEBUG else 0
            if s.SMTP_USE_SSL:
                with smtplib.SMTP_SSL(s.SMTP_HOST, s.SMTP_PORT, timeout=timeout) as server:
                    server.set_debuglevel(debug)
                    if s.SMTP_USERNAME and s.SMTP_PASSWORD:
                        server.login(s.SMTP_USERNAME, s.SMTP_PASSWORD)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=timeout) as server:
                    server.set_debuglevel(debug)
                    if s.SMTP_USE_TLS:
                        server.starttls()
                    if s.SMTP_USERNAME and s.SMTP_PASSWORD:
                        server.login(s.SMTP_USERNAME, s.SMTP_PASSWORD)
                    server.send_message(msg)
            logger.info(f"Sent email to {to_email} with subject '{subject}'")
            return True
        except Exception as exc:
            logger.error(f"Failed to send email to {to_email}: {exc}")
            return False

    def send_welcome(self, to_email: str, name: str) -> bool:
        subject = "Welcome!"
        text = f"Hello {name}! Welcome to our store. Your account has been created successfully."
        html_body = f"""
        <div style='font-family: Arial, sans-serif; line-height: 1.5;'>
          <h1>Hello {html.escape(name)}!</h1>
          <p>Welcome to our store.</p>
          <p>Your account has been created successfully.</p>
          <p>Thank you for choosing us!</p>
        </div>
        """
        return self.send_email(subject, to_email, html_body, text)

    def send_password_reset(self, to_email: str, reset_code: str) -> bool:
        minutes = self.settings.RESET_CODE_EXPIRE_MINUTES
        subject = "Password reset code"
        text = f"Your password reset code is {reset_code}. It is valid for {minutes} minutes."
        html_body = f"""
        <div style='font-family: Arial, sans-serif; line-height: 1.5;'>
          <h1>Password reset request</h1>
          <p>Use the following code to reset your password:</p>
          <p style='font-size: 24px; font-weight: bold; letter-spacing: 4px;'>{reset_code}</p>
          <p>This code is valid for <strong>{minutes} minutes</strong>.</p>
          <p>If you did not request a password reset, you can safely ignore this email.</p>
        </div>
        """
        return self.send_email(subject, to_email, html_body, text)
