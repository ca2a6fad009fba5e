"""Tests for the contact-reply email template and the email service."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from boreview.email.service import (
    BaseEmailProvider,
    EmailService,
    OutgoingEmail,
    ResendProvider,
    SMTPProvider,
    _create_provider,
)
from boreview.email.templates import contact_reply


class RecordingProvider(BaseEmailProvider):
    name = "recording"

    def __init__(self, result: bool = True) -> None:
        super().__init__("noreply@boreview.vn", "Bơ Review")
        self.sent: list[OutgoingEmail] = []
        self.result = result

    async def send(self, email: OutgoingEmail) -> bool:
        self.sent.append(email)
        return self.result


class TestContactReplyTemplate:
    def test_returns_subject_html_text(self):
        subject, html, text = contact_reply("Lan", "Góp ý &amp; hỏi đáp", "Nội dung gốc", "Cảm ơn bạn!")
        assert subject == "Re: Góp ý & hỏi đáp"
        assert "Chào Lan" in html
        assert "Cảm ơn bạn!" in html
        assert "Nội dung gốc" in html
        assert text.startswith("Chào Lan,")
        assert "Cảm ơn bạn!" in text

    def test_reply_is_escaped_in_html(self):
        _, html, text = contact_reply("Lan", "Hỏi", "Gốc", "<b>in đậm</b>\ndòng hai")
        assert "&lt;b&gt;in đậm&lt;/b&gt;<br>dòng hai" in html
        assert "<b>in đậm</b>" in text


class TestEmailService:
    @pytest.mark.asyncio
    async def test_disabled_without_provider(self, monkeypatch):
        monkeypatch.setattr("boreview.email.service._create_provider", lambda: None)
        service = EmailService()
        assert service.enabled is False
        assert await service.send_email(OutgoingEmail("a@b.vn", "s", "<p>h</p>", "t")) is False

    @pytest.mark.asyncio
    async def test_send_contact_reply_uses_template(self):
        provider = RecordingProvider()
        service = EmailService(provider=provider)
        assert service.enabled is True

        sent = await service.send_contact_reply("lan@example.com", "Lan", "Hỏi đáp", "Gốc", "Trả lời")
        assert sent is True
        email = provider.sent[0]
        assert email.to == "lan@example.com"
        assert email.subject == "Re: Hỏi đáp"
        assert "Trả lời" in email.html_body
        assert "Trả lời" in email.text_body

    @pytest.mark.asyncio
    async def test_provider_failure_reported(self):
        service = EmailService(provider=RecordingProvider(result=False))
        assert await service.send_contact_reply("x@y.vn", "X", "S", "M", "R") is False


class TestProviderSelection:
    def _settings(self, monkeypatch, **values):
        from boreview.config import Settings

        settings = Settings(**values)
        monkeypatch.setattr("boreview.email.service.get_settings", lambda: settings)

    def test_empty_means_disabled(self, monkeypatch):
        self._settings(monkeypatch, email_provider="")
        assert _create_provider() is None

    def test_smtp(self, monkeypatch):
        self._settings(monkeypatch, email_provider="smtp", smtp_host="mail.local", smtp_port=2525)
        provider = _create_provider()
        assert isinstance(provider, SMTPProvider)
        assert provider.host == "mail.local"
        assert provider.port == 2525

    def test_resend(self, monkeypatch):
        self._settings(monkeypatch, email_provider="resend", resend_api_key="re_test")
        assert isinstance(_create_provider(), ResendProvider)

    def test_unknown_provider(self, monkeypatch):
        self._settings(monkeypatch, email_provider="carrier-pigeon")
        with pytest.raises(ValueError, match="Unsupported email provider"):
            _create_provider()


class TestProviders:
    @pytest.mark.asyncio
    async def test_smtp_send(self):
        provider = SMTPProvider("mail.local", 587, "noreply@boreview.vn", "Bơ Review", use_tls=False)
        with patch("boreview.email.service.aiosmtplib.send", new_callable=AsyncMock) as send:
            assert await provider.send(OutgoingEmail("a@b.vn", "Chủ đề", "<p>h</p>", "t")) is True
        message = send.call_args.args[0]
        assert message["To"] == "a@b.vn"
        assert message["From"] == "Bơ Review <noreply@boreview.vn>"
        assert message.get_body(("html",)).get_content().strip() == "<p>h</p>"
        assert send.call_args.kwargs["hostname"] == "mail.local"

    @pytest.mark.asyncio
    async def test_smtp_failure(self):
        provider = SMTPProvider("mail.local", 587, "noreply@boreview.vn", "Bơ Review")
        with patch("boreview.email.service.aiosmtplib.send", new_callable=AsyncMock, side_effect=OSError("down")):
            assert await provider.send(OutgoingEmail("a@b.vn", "s", "h", "t")) is False

    @pytest.mark.asyncio
    async def test_resend_http_error(self):
        provider = ResendProvider("re_test", "noreply@boreview.vn", "Bơ Review")
        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock, side_effect=httpx.ConnectError("x")):
            assert await provider.send(OutgoingEmail("a@b.vn", "s", "h", "t")) is False
