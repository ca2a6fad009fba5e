"""
Email templates for Bơ Review.

All templates use inline CSS for email client compatibility. Each template
function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape, unescape

# Color constants
BG_PAGE = "#F6F8F1"
BG_CARD = "#FFFFFF"
BG_QUOTE = "#F1F5E9"
AVOCADO = "#568203"
TEXT_PRIMARY = "#1F2A12"
TEXT_SECONDARY = "#5B6650"
BORDER = "#DDE5D0"

APP_NAME = "Bơ Review"


def _base_layout(content: str) -> str:
    """Single-column layout: brand header, content card, footer note."""
    return f"""\
<!DOCTYPE html>
<html lang="vi">
<head><meta charset="UTF-8"><title>{APP_NAME}</title></head>
<body style="margin: 0; background: {BG_PAGE}; font-family: Arial, Helvetica, sans-serif;">
<div style="max-width: 600px; margin: 0 auto; padding: 32px 16px;">
    <h1 style="margin: 0 0 20px 0; font-size: 22px; color: {AVOCADO}; text-align: center;">🥑 {APP_NAME}</h1>
    <div style="background: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 28px;">
        {content}
    </div>
    <p style="margin: 20px 0 0 0; font-size: 12px; color: {TEXT_SECONDARY}; text-align: center;">
        Email này được gửi từ {APP_NAME} để phản hồi tin nhắn liên hệ của bạn.
    </p>
</div>
</body>
</html>"""


def _paragraphs(text: str) -> str:
    return "<br>".join(escape(line) for line in text.splitlines())


def contact_reply(
    name: str,
    original_subject: str,
    original_message: str,
    reply: str,
) -> tuple[str, str, str]:
    """
    Admin reply to a contact-form message.

    Stored contact text is already HTML-escaped; only the reply is escaped here.

    Returns:
        (subject, html_body, text_body)
    """
    subject = f"Re: {unescape(original_subject)}"
    content = f"""\
<p style="color: {TEXT_PRIMARY}; font-size: 16px; line-height: 1.6; margin: 0 0 16px 0;">Chào {name},</p>
<p style="color: {TEXT_PRIMARY}; font-size: 16px; line-height: 1.6; margin: 0 0 24px 0;">{_paragraphs(reply)}</p>
<div style="background-color: {BG_QUOTE}; border-left: 3px solid {AVOCADO}; border-radius: 4px; padding: 12px 16px;">
    <p style="color: {TEXT_SECONDARY}; font-size: 13px; font-weight: 600; margin: 0 0 6px 0;">{original_subject}</p>
    <p style="color: {TEXT_SECONDARY}; font-size: 13px; line-height: 1.5; margin: 0;">{original_message}</p>
</div>"""
    html_body = _base_layout(content)
    text_body = (
        f"Chào {unescape(name)},\n\n"
        f"{reply}\n\n"
        f"-- Tin nhắn của bạn --\n"
        f"{unescape(original_subject)}\n\n"
        f"-- {APP_NAME}"
    )
    return subject, html_body, text_body
