"""Welcome email for new members."""

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape

import structlog

from config import Settings

logger = structlog.get_logger()

WELCOME_SUBJECT = "Thank You for Registering with [Alphaingen Medical Coding]"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def render_welcome_email(username: str) -> RenderedEmail:
    name = username or "there"
    html = f"""
      <div style="font-family: Arial, sans-serif; max-width: 450px; margin: auto; padding: 20px; border: 1px solid #e0e0e0; border-radius: 15px; background-color: #ffd2d2;">
        <h2 style="color: orange;">Thank You for Registering!</h2>
        <p>Dear <b>{escape(name)}</b>,</p>
        <p>Thank you for registering with us! We're excited to have you here.</p>
        <p>Best regards,<br>[Team Alphaingen Medical Coding]</p>
      </div>
    """
    text = (
        f"Dear {name},\n\n"
        "Thank you for registering with us! We're excited to have you here.\n\n"
        "Best regards,\n[Team Alphaingen Medical Coding]\n"
    )
    return RenderedEmail(subject=WELCOME_SUBJECT, html=html, text=text)


class WelcomeMailer:
    """
    Sends the welcome email over SMTP.

    The send blocks, so callers run it after the response (FastAPI
    BackgroundTasks); CredentialStore logs any failure it raises.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.mail_user and self.settings.mail_password)

    def notify_registered(self, username: str, email: str) -> bool:
        if not self.configured:
            logger.info("welcome email skipped (missing configuration)", to=email)
            return False
        self.send(username, email)
        logger.info("welcome email sent", to=email)
        return True

    def send(self, username: str, email: str) -> None:
        rendered = render_welcome_email(username)
        msg = EmailMessage()
        msg["From"] = self.settings.mail_user
        msg["To"] = email
        msg["Subject"] = rendered.subject
        msg.set_content(rendered.text)
        msg.add_alternative(rendered.html, subtype="html")

        with smtplib.SMTP_SSL(
            self.settings.smtp_host,
            self.settings.smtp_port,
            timeout=self.settings.smtp_timeout_seconds,
        ) as smtp:
            smtp.login(self.settings.mail_user, self.settings.mail_password)
            smtp.send_message(msg)

