"""Contact messages and newsletter subscriptions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from boreview.db.base import utcnow
from boreview.db.models import ContactMessage, NewsletterSubscriber
from boreview.security.service import contains_profanity, sanitize_input

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class InappropriateContentError(ValueError):
    """Submitted text hit the profanity filter."""


class AlreadySubscribedError(ValueError):
    """The email is already an active subscriber."""


async def submit_contact_message(
    db: AsyncSession,
    name: str,
    email: str,
    subject: str,
    message: str,
    ip_hash: str,
) -> ContactMessage:
    if any(contains_profanity(text) for text in (name, subject, message)):
        msg = "Nội dung chứa từ ngữ không phù hợp"
        raise InappropriateContentError(msg)

    contact = ContactMessage(
        name=sanitize_input(name),
        email=email.lower(),
        subject=sanitize_input(subject),
        message=sanitize_input(message),
        ip_hash=ip_hash,
    )
    db.add(contact)
    await db.flush()
    logger.info("Contact message %s received", contact.id)
    return contact


async def get_subscriber_by_email(db: AsyncSession, email: str) -> NewsletterSubscriber | None:
    result = await db.execute(select(NewsletterSubscriber).where(NewsletterSubscriber.email == email.lower()))
    return result.scalar_one_or_none()


async def subscribe(
    db: AsyncSession,
    email: str,
    ip_hash: str,
    name: str | None = None,
    source: str | None = None,
) -> bool:
    """
    Subscribe an email. Returns True when an inactive subscription was re-activated.

    Raises AlreadySubscribedError for an active subscriber.
    """
    existing = await get_subscriber_by_email(db, email)
    if existing is not None:
        if existing.is_active:
            msg = "Email này đã đăng ký nhận tin rồi!"
            raise AlreadySubscribedError(msg)
        existing.is_active = True
        existing.subscribed_at = utcnow()
        existing.unsubscribed_at = None
        existing.name = name or existing.name
        existing.source = source or existing.source
        await db.flush()
        return True

    db.add(NewsletterSubscriber(email=email.lower(), name=name, source=source, ip_hash=ip_hash))
    await db.flush()
    return False


async def unsubscribe(db: AsyncSession, email: str) -> bool:
    """Deactivate a subscription. Returns False for an unknown email."""
    subscriber = await get_subscriber_by_email(db, email)
    if subscriber is None:
        return False
    subscriber.is_active = False
    subscriber.unsubscribed_at = utcnow()
    await db.flush()
    return True
