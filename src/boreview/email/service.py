"""
Outbound email for admin replies to contact messages.

``BOREVIEW_EMAIL_PROVIDER`` picks the transport: ``smtp`` or ``resend``.
Left empty, delivery is off and every send reports False so callers can
surface ``emailSent: false`` without failing the request.
"""

from __future__ import annotations

import ssl
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage

import aiosmtplib
import httpx
import structlog

from boreview.config import Settings, get_settings
from boreview.email.templates import contact_reply

logger = structlog.get_logger()

RESEND_API_URL = "https://api.resend.com/emails"
RESEND_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True)
class OutgoingEmail:
    to: str
    subject: str
    html_body: str
    text_body: str


class BaseEmailProvider(ABC):
    """A transport that delivers one rendered email."""

    name = "base"

    def __init__(self, from_address: str, from_name: str) -> None:
        self.from_address = from_address
        self.from_name = from_name

    @property
    def sender(self) -> str:
        return f"{self.from_name} <{self.from_address}>"

    @abstractmethod
    async def send(self, email: OutgoingEmail) -> bool:
        """Deliver ``email``; False when the transport rejected it."""


class SMTPProvider(BaseEmailProvider):
    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        from_name: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
    ) -> None:
        super().__init__(from_address, from_name)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls

    def build_message(self, email: OutgoingEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = email.to
        message["Subject"] = email.subject
        message.set_content(email.text_body)
        message.add_alternative(email.html_body, subtype="html")
        return message

    async def send(self, email: OutgoingEmail) -> bool:
        try:
            await aiosmtplib.send(
                self.build_message(email),
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                tls_context=ssl.create_default_context() if self.use_tls else None,
            )
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("email_send_failed", to=email.to, provider=self.name)
            return False
        return True


class ResendProvider(BaseEmailProvider):
    name = "resend"

    def __init__(self, api_key: str, from_address: str, from_name: str) -> None:
        super().__init__(from_address, from_name)
        self.api_key = api_key

    async def send(self, email: OutgoingEmail) -> bool:
        payload = {
            "from": self.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html_body,
            "text": email.text_body,
        }
        try:
            async with httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
                response.raise_for_status()
        except httpx.HTTPError:
            logger.exception("email_send_failed", to=email.to, provider=self.name)
            return False
        return True


def _smtp_from_settings(settings: Settings) -> SMTPProvider:
    return SMTPProvider(
        host=settings.smtp_host,
        port=settings.smtp_port,
        from_address=settings.email_from_address,
        from_name=settings.email_from_name,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
    )


def _resend_from_settings(settings: Settings) -> ResendProvider:
    return ResendProvider(
        api_key=settings.resend_api_key,
        from_address=settings.email_from_address,
        from_name=settings.email_from_name,
    )


_PROVIDER_FACTORIES = {
    "smtp": _smtp_from_settings,
    "resend": _resend_from_settings,
}


def _create_provider() -> BaseEmailProvider | None:
    """Build the configured provider; None when delivery is disabled."""
    settings = get_settings()
    provider_name = settings.email_provider.strip().lower()
    if not provider_name:
        return None

    factory = _PROVIDER_FACTORIES.get(provider_name)
    if factory is None:
        msg = f"Unsupported email provider: {provider_name}"
        raise ValueError(msg)
    return factory(settings)


class EmailService:
    def __init__(self, provider: BaseEmailProvider | None = None) -> None:
        self.provider = provider if provider is not None else _create_provider()

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    async def send_email(self, email: OutgoingEmail) -> bool:
        if self.provider is None:
            logger.info("email_delivery_disabled", to=email.to, subject=email.subject)
            return False

        sent = await self.provider.send(email)
        if sent:
            logger.info("email_sent", to=email.to, subject=email.subject, provider=self.provider.name)
        return sent

    async def send_contact_reply(
        self,
        to: str,
        name: str,
        original_subject: str,
        original_message: str,
        reply: str,
    ) -> bool:
        subject, html_body, text_body = contact_reply(name, original_subject, original_message, reply)
        return await self.send_email(OutgoingEmail(to=to, subject=subject, html_body=html_body, text_body=text_body))


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    """Process-wide EmailService, built on first use."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService()
    return _email_service


def reset_email_service() -> None:
    """Drop the cached service so the next call re-reads settings."""
    global _email_service  # noqa: PLW0603
    _email_service = None
