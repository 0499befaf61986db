"""
Email adapter for the MediKeep backend.

The default implementation uses SMTP, reading credentials from Settings.
Unlike a fire-and-forget notifier, every failure is raised so callers can
report it: DeliveryError for refused or unconfigured delivery,
ServiceUnavailable when the SMTP server does not answer in time.
"""

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import smtplib
import socket
import ssl

from .config import get_settings
from .errors import DeliveryError, ServiceUnavailable

logger = logging.getLogger(__name__)


def send_email(subject: str, to_email: str, html_body: str, text_body: str | None = None) -> None:
    """Send a multipart (plain + html) message to ``to_email``."""
    settings = get_settings()
    if not (
        settings.smtp_host
        and settings.smtp_user
        and settings.smtp_password
        and settings.smtp_from
        and settings.smtp_port
    ):
        logger.error("SMTP configuration missing; cannot deliver to %s", to_email)
        raise DeliveryError("Email delivery is not configured")
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = settings.smtp_from
    msg["To"] = to_email
    plain = text_body or html_body
    msg.attach(MIMEText(plain, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    port = settings.smtp_port or 465
    timeout = settings.smtp_timeout_seconds or None
    try:
        if port == 465:
            context = ssl.create_default_context()
            with smtplib.SMTP_SSL(settings.smtp_host, port, context=context, timeout=timeout) as server:
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(settings.smtp_host, port, timeout=timeout) as server:
                server.ehlo()
                server.starttls(context=ssl.create_default_context())
                server.login(settings.smtp_user, settings.smtp_password)
                server.sendmail(settings.smtp_from, [to_email], msg.as_string())
    except (socket.timeout, TimeoutError) as exc:
        logger.warning("SMTP timed out sending to %s", to_email, extra={"dependency": "smtp"})
        raise ServiceUnavailable("Mail server did not respond in time", "smtp") from exc
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("Failed to send email to %s: %s", to_email, exc, extra={"dependency": "smtp"})
        raise DeliveryError("Email could not be delivered") from exc
