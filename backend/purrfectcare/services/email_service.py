"""
PurrfectCare Backend - Email Service

Purpose: Outbound mail transport for reminder emails. Supports AWS SES
(production), SMTP, and a console provider that only logs (local dev).

``send`` is blocking; the notifier runs it in a worker thread with a timeout.

Testing:
    # Console mode (EMAIL_PROVIDER=console)
    email = EmailService()
    email.send("owner@example.com", "Reminder", "<p>Hi</p>")

AWS Deployment Notes:
    - Sender address must be verified in SES
    - IAM role needs ses:SendEmail
"""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from purrfectcare.config import settings
from purrfectcare.errors import TransientDispatchError

logger = logging.getLogger(__name__)


class EmailService:
    """
    Email service with SES, SMTP and console backends
    """

    def __init__(self, provider: Optional[str] = None, ses_client=None):
        self.provider = provider or settings.EMAIL_PROVIDER
        self.from_address = settings.EMAIL_FROM_ADDRESS
        self.timeout = settings.EMAIL_SEND_TIMEOUT_SECONDS

        if self.provider == "ses":
            self.ses_client = ses_client or boto3.client(
                'ses',
                region_name=settings.SES_REGION or settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                config=Config(
                    connect_timeout=self.timeout,
                    read_timeout=self.timeout,
                    retries={'max_attempts': 2},
                ),
            )
            logger.info("Email: Using AWS SES")

        elif self.provider == "smtp":
            self.smtp_host = settings.SMTP_HOST
            self.smtp_port = settings.SMTP_PORT
            self.smtp_username = settings.SMTP_USERNAME
            self.smtp_password = settings.SMTP_PASSWORD
            self.smtp_use_tls = settings.SMTP_USE_TLS
            logger.info(f"Email: Using SMTP at {self.smtp_host}:{self.smtp_port}")

        elif self.provider == "console":
            logger.info("Email: Using console output (emails are logged, not sent)")

        else:
            raise ValueError(f"Unknown email provider: {self.provider}")

    def send(self, to_address: str, subject: str, html_body: str) -> bool:
        """
        Send one HTML email

        Returns:
            True when the transport accepted the message

        Raises:
            TransientDispatchError: transport failure (retry on a later sweep)
        """
        if not to_address:
            raise TransientDispatchError("Recipient address is missing")

        if self.provider == "ses":
            return self._send_ses(to_address, subject, html_body)
        if self.provider == "smtp":
            return self._send_smtp(to_address, subject, html_body)

        logger.info(f"[console email] to={to_address} subject={subject!r} ({len(html_body)} chars)")
        return True

    def _send_ses(self, to_address: str, subject: str, html_body: str) -> bool:
        try:
            response = self.ses_client.send_email(
                Source=self.from_address,
                Destination={'ToAddresses': [to_address]},
                Message={
                    'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                    'Body': {'Html': {'Data': html_body, 'Charset': 'UTF-8'}},
                },
            )
            logger.info(f"Email sent via SES to {to_address}: {response.get('MessageId')}")
            return True

        except (ClientError, BotoCoreError) as e:
            logger.error(f"SES send failed for {to_address}: {e}")
            raise TransientDispatchError(f"SES send failed: {e}") from e

    def _send_smtp(self, to_address: str, subject: str, html_body: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to_address
        msg.attach(MIMEText(html_body, "html"))

        try:
            context = ssl.create_default_context()
            if self.smtp_port == 465:
                # Implicit TLS
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, timeout=self.timeout, context=context) as server:
                    self._login(server)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                    if self.smtp_use_tls:
                        server.starttls(context=context)
                    self._login(server)
                    server.send_message(msg)

            logger.info(f"Email sent via SMTP to {to_address}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP send failed for {to_address}: {e}")
            raise TransientDispatchError(f"SMTP send failed: {e}") from e

    def _login(self, server: smtplib.SMTP):
        if self.smtp_username and self.smtp_password:
            server.login(self.smtp_username, self.smtp_password)
