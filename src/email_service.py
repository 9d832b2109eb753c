# src/email_service.py
"""
Email service for account verification codes.
Supports both SMTP and console logging for development.
"""
import os
import re
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending emails."""

    def __init__(self):
        """Initialize email service with environment configuration."""
        self.smtp_host = os.getenv("SMTP_HOST", "smtp.gmail.com")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.from_email = os.getenv("FROM_EMAIL", self.smtp_user)
        self.from_name = os.getenv("FROM_NAME", "Teranga")

        # Use console mode if SMTP credentials not configured
        self.console_mode = not (self.smtp_user and self.smtp_password)

        if self.console_mode:
            logger.info("Email service running in CONSOLE MODE (no SMTP configured)")
        else:
            logger.info(f"Email service configured: {self.smtp_host}:{self.smtp_port}")

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        plain_body: Optional[str] = None
    ) -> bool:
        """
        Send an email.

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            if self.console_mode:
                return self._send_console(to_email, subject, html_body)
            return self._send_smtp(to_email, subject, html_body, plain_body)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

    def _send_console(self, to_email: str, subject: str, html_body: str) -> bool:
        """Print email to console (for development)."""
        print("\n" + "=" * 80)
        print("EMAIL (Console Mode)")
        print("=" * 80)
        print(f"To: {to_email}")
        print(f"From: {self.from_name} <{self.from_email}>")
        print(f"Subject: {subject}")
        print(f"Time: {datetime.utcnow().isoformat()}")
        print("-" * 80)
        print(html_body)
        print("=" * 80 + "\n")
        return True

    def _send_smtp(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        plain_body: Optional[str] = None
    ) -> bool:
        """Send email via SMTP."""
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email

        if not plain_body:
            plain_body = html_body.replace('<br>', '\n').replace('</p>', '\n\n')
            plain_body = re.sub(r'<[^>]+>', '', plain_body)

        msg.attach(MIMEText(plain_body, 'plain'))
        msg.attach(MIMEText(html_body, 'html'))

        with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
            server.starttls()
            server.login(self.smtp_user, self.smtp_password)
            server.send_message(msg)

        logger.info(f"Email sent to {to_email}: {subject}")
        return True

    def send_verification_code(self, to_email: str, code: str, ttl_minutes: int) -> bool:
        """Send the six-digit sign-up verification code."""
        subject = "Votre code de vérification Teranga"
        html_body = f"""
        <p>Bonjour,</p>
        <p>Voici votre code de vérification :</p>
        <p style="font-size: 24px; font-weight: bold; letter-spacing: 4px;">{code}</p>
        <p>Ce code expire dans {ttl_minutes} minutes.</p>
        <p>Si vous n'avez pas créé de compte, ignorez cet email.</p>
        """
        plain_body = (
            f"Votre code de vérification Teranga : {code}\n"
            f"Ce code expire dans {ttl_minutes} minutes."
        )
        return self.send_email(to_email, subject, html_body, plain_body)


# Global email service instance
email_service = EmailService()
