"""Content tables.

Creates users, categories, tags, posts and their join tables, plus the
engagement tables hanging off posts: comments, reactions and polls.

Revision ID: 001_content_tables
Revises: None
Create Date: 2026-03-02
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_content_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Admin accounts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(36) PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            name VARCHAR(100),
            password_hash VARCHAR(256) NOT NULL,
            role VARCHAR(16) NOT NULL DEFAULT 'ADMIN',
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Taxonomy ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS categories (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            slug VARCHAR(120) UNIQUE NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS tags (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            slug VARCHAR(120) UNIQUE NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Posts ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS posts (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(200) NOT NULL,
            slug VARCHAR(255) UNIQUE NOT NULL,
            content TEXT NOT NULL,
            excerpt VARCHAR(500),
            youtube_url VARCHAR(500),
            thumbnail VARCHAR(500),
            published BOOLEAN NOT NULL DEFAULT false,
            featured BOOLEAN NOT NULL DEFAULT false,
            views INTEGER NOT NULL DEFAULT 0,
            published_at TIMESTAMPTZ,
            seo_title VARCHAR(200),
            meta_description VARCHAR(300),
            author_id VARCHAR(36) REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_posts_published
        ON posts(published_at DESC)
        WHERE published = true
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS post_categories (
            post_id VARCHAR(36) NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            category_id VARCHAR(36) NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
            PRIMARY KEY (post_id, category_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS post_tags (
            post_id VARCHAR(36) NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            tag_id VARCHAR(36) NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
            PRIMARY KEY (post_id, tag_id)
        )
    """)

    # --- Comments ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS comments (
            id VARCHAR(36) PRIMARY KEY,
            content TEXT NOT NULL,
            author_name VARCHAR(100) NOT NULL,
            ip_hash VARCHAR(64) NOT NULL,
            approved BOOLEAN NOT NULL DEFAULT true,
            is_admin_reply BOOLEAN NOT NULL DEFAULT false,
            post_id VARCHAR(36) NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            parent_id VARCHAR(36) REFERENCES comments(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_comments_post
        ON comments(post_id, created_at DESC)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_comments_ip_hash
        ON comments(ip_hash)
    """)

    # --- Reactions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reactions (
            id VARCHAR(36) PRIMARY KEY,
            type VARCHAR(16) NOT NULL,
            ip_hash VARCHAR(64) NOT NULL,
            post_id VARCHAR(36) NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_reactions_post_ip_type UNIQUE (post_id, ip_hash, type)
        )
    """)

    # --- Polls ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS polls (
            id VARCHAR(36) PRIMARY KEY,
            question VARCHAR(200) NOT NULL,
            post_id VARCHAR(36) UNIQUE NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS poll_options (
            id VARCHAR(36) PRIMARY KEY,
            text VARCHAR(100) NOT NULL,
            position INTEGER NOT NULL DEFAULT 0,
            poll_id VARCHAR(36) NOT NULL REFERENCES polls(id) ON DELETE CASCADE
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS poll_votes (
            id VARCHAR(36) PRIMARY KEY,
            ip_hash VARCHAR(64) NOT NULL,
            option_id VARCHAR(36) NOT NULL REFERENCES poll_options(id) ON DELETE CASCADE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_poll_votes_ip_hash
        ON poll_votes(ip_hash)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS poll_votes CASCADE")
    op.execute("DROP TABLE IF EXISTS poll_options CASCADE")
    op.execute("DROP TABLE IF EXISTS polls CASCADE")
    op.execute("DROP TABLE IF EXISTS reactions CASCADE")
    op.execute("DROP TABLE IF EXISTS comments CASCADE")
    op.execute("DROP TABLE IF EXISTS post_tags CASCADE")
    op.execute("DROP TABLE IF EXISTS post_categories CASCADE")
    op.execute("DROP TABLE IF EXISTS posts CASCADE")
    op.execute("DROP TABLE IF EXISTS tags CASCADE")
    op.execute("DROP TABLE IF EXISTS categories CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
