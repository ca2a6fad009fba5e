"""Security and inbox tables.

Rate-limit windows, banned IP hashes, contact-form messages and newsletter
subscribers.

Revision ID: 002_security_inbox_tables
Revises: 001_content_tables
Create Date: 2026-03-02
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_security_inbox_tables"
down_revision: str | None = "001_content_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Rate limits ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS rate_limits (
            id VARCHAR(36) PRIMARY KEY,
            ip_hash VARCHAR(64) NOT NULL,
            action VARCHAR(32) NOT NULL,
            count INTEGER NOT NULL DEFAULT 1,
            window_start TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_rate_limits_ip_action UNIQUE (ip_hash, action)
        )
    """)

    # --- Banned IPs ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS banned_ips (
            id VARCHAR(36) PRIMARY KEY,
            ip_hash VARCHAR(64) UNIQUE NOT NULL,
            reason VARCHAR(500),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Contact messages ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS contact_messages (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(200) NOT NULL,
            email VARCHAR(320) NOT NULL,
            subject VARCHAR(400) NOT NULL,
            message TEXT NOT NULL,
            ip_hash VARCHAR(64),
            read BOOLEAN NOT NULL DEFAULT false,
            replied BOOLEAN NOT NULL DEFAULT false,
            replied_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_contact_messages_unread
        ON contact_messages(created_at DESC)
        WHERE read = false
    """)

    # --- Newsletter ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS newsletter_subscribers (
            id VARCHAR(36) PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            name VARCHAR(100),
            source VARCHAR(100),
            ip_hash VARCHAR(64),
            is_active BOOLEAN NOT NULL DEFAULT true,
            subscribed_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            unsubscribed_at TIMESTAMPTZ
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS newsletter_subscribers CASCADE")
    op.execute("DROP TABLE IF EXISTS contact_messages CASCADE")
    op.execute("DROP TABLE IF EXISTS banned_ips CASCADE")
    op.execute("DROP TABLE IF EXISTS rate_limits CASCADE")
