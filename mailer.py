"""
Outbound mail: an SMTP transport built once at startup and the notification
gateway that turns password-reset requests into messages.

Run `python mailer.py you@example.com` to check the mail configuration.
"""
import logging
import smtplib
import sys
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

import config

logger = logging.getLogger(__name__)

# Well-known services accepted in EMAIL_SERVICE: name -> (host, port)
KNOWN_SERVICES = {
    "gmail": ("smtp.gmail.com", 465),
    "outlook": ("smtp.office365.com", 587),
    "hotmail": ("smtp.office365.com", 587),
    "office365": ("smtp.office365.com", 587),
    "yahoo": ("smtp.mail.yahoo.com", 465),
    "zoho": ("smtp.zoho.com", 465),
    "sendgrid": ("smtp.sendgrid.net", 587),
    "mailgun": ("smtp.mailgun.org", 465),
}


@dataclass
class MailResult:
    success: bool
    message: str
    message_id: Optional[str] = None
    error: Optional[str] = None


class SMTPTransport:
    """Sends EmailMessage objects over SMTP; a fresh connection per message."""

    def __init__(self, host: str, port: int, username: str, password: str, timeout: float = 10):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    @property
    def implicit_tls(self) -> bool:
        return self.port == 465

    def send(self, message: EmailMessage) -> None:
        if self.implicit_tls:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with smtp:
            if not self.implicit_tls:
                smtp.starttls()
            smtp.login(self.username, self.password)
            smtp.send_message(message)

    def __repr__(self):
        return f"SMTPTransport({self.host}:{self.port})"


def build_transport() -> Optional[SMTPTransport]:
    """Build the transport from EMAIL_* settings, or None when unconfigured."""
    if not config.EMAIL_USER or not config.EMAIL_PASSWORD:
        logger.warning("Email credentials not configured (EMAIL_USER / EMAIL_PASSWORD); "
                       "password reset emails will not be sent")
        return None

    if config.EMAIL_HOST and config.EMAIL_PORT:
        host, port = config.EMAIL_HOST, int(config.EMAIL_PORT)
        logger.info("Email transport using custom SMTP %s:%s", host, port)
    else:
        service = (config.EMAIL_SERVICE or "").lower()
        if service not in KNOWN_SERVICES:
            logger.warning("Unknown EMAIL_SERVICE %r; password reset emails will not be sent", service)
            return None
        host, port = KNOWN_SERVICES[service]
        logger.info("Email transport using %s service", service)

    return SMTPTransport(host, port, config.EMAIL_USER, config.EMAIL_PASSWORD, timeout=config.EMAIL_TIMEOUT)


def password_reset_message(sender: str, recipient: str, reset_url: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = "Password Reset Request - MIVENT"
    message["Message-ID"] = make_msgid()
    message.set_content(
        "Password Reset Request\n\n"
        "Hello,\n\n"
        "We received a request to reset your password for your MIVENT account. "
        "Click the link below to reset your password:\n\n"
        f"{reset_url}\n\n"
        "This link will expire in 1 hour.\n\n"
        "If you didn't request a password reset, you can safely ignore this email.\n"
    )
    message.add_alternative(
        f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333;">Password Reset Request</h2>
  <p>Hello,</p>
  <p>We received a request to reset your password for your MIVENT account.
     Click the link below to reset your password:</p>
  <p style="text-align: center; margin: 30px 0;">
    <a href="{reset_url}" style="background-color: #007bff; color: white; padding: 12px 30px;
       text-decoration: none; border-radius: 5px;">Reset Password</a>
  </p>
  <p>Or copy and paste this link in your browser:</p>
  <p style="word-break: break-all;">{reset_url}</p>
  <p><strong>This link will expire in 1 hour.</strong></p>
  <p>If you didn't request a password reset, you can safely ignore this email.</p>
</div>
""",
        subtype="html",
    )
    return message


class NotificationGateway:
    """Password-reset notifications. Never raises; failures come back as MailResult."""

    def __init__(self, transport: Optional[SMTPTransport], sender: Optional[str] = None):
        self.transport = transport
        self.sender = sender or (transport.username if transport else None)

    def send_password_reset(self, email: str, reset_url: str) -> MailResult:
        if self.transport is None:
            logger.warning("Password reset requested for %s but email is not configured", email)
            if config.ENVIRONMENT != "production":
                logger.info("Reset link (development only): %s", reset_url)
            return MailResult(success=False, message="Email service not configured")

        message = password_reset_message(self.sender, email, reset_url)
        try:
            self.transport.send(message)
        except smtplib.SMTPAuthenticationError as e:
            logger.error("SMTP authentication failed; check EMAIL_USER and EMAIL_PASSWORD")
            return MailResult(success=False, message="Failed to send password reset email", error=str(e))
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending password reset email to %s: %s", email, e)
            return MailResult(success=False, message="Failed to send password reset email", error=str(e))

        logger.info("Password reset email sent to %s", email)
        return MailResult(success=True, message="Password reset email sent successfully",
                          message_id=message.get("Message-ID"))


def _check_configuration(recipient: str) -> int:
    masked = ("***" + config.EMAIL_PASSWORD[-4:]) if config.EMAIL_PASSWORD else "(not set)"
    print("Email configuration")
    print(f"  EMAIL_SERVICE:  {config.EMAIL_SERVICE or '(not set)'}")
    print(f"  EMAIL_USER:     {config.EMAIL_USER or '(not set)'}")
    print(f"  EMAIL_PASSWORD: {masked}")
    print(f"  EMAIL_HOST:     {config.EMAIL_HOST or '(not set - using service)'}")
    print(f"  EMAIL_PORT:     {config.EMAIL_PORT or '(not set - using service)'}")

    gateway = NotificationGateway(build_transport())
    result = gateway.send_password_reset(recipient, f"{config.FRONTEND_URL}/reset-password/test-token")
    print(f"{'OK' if result.success else 'FAILED'}: {result.message}" + (f" ({result.error})" if result.error else ""))
    return 0 if result.success else 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    if len(sys.argv) != 2:
        print("Usage: python mailer.py your-email@example.com")
        sys.exit(1)
    sys.exit(_check_configuration(sys.argv[1]))
