"""Visitor and gamification tables.

Creates visitor_profiles with its XP ledger, streaks, badges, daily tasks,
reading history, notifications and the leaderboard cache.

Revision ID: 003_visitor_gamification_tables
Revises: 002_security_inbox_tables
Create Date: 2026-03-05
"""

from collections.abc import Sequence

from alembic import op

revision: str = "003_visitor_gamification_tables"
down_revision: str | None = "002_security_inbox_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Visitor profiles ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS visitor_profiles (
            id VARCHAR(36) PRIMARY KEY,
            username VARCHAR(20) UNIQUE NOT NULL,
            display_name VARCHAR(30) NOT NULL,
            email VARCHAR(320),
            password_hash VARCHAR(256),
            avatar VARCHAR(500),
            bio VARCHAR(200),
            ip_hash VARCHAR(64),
            level INTEGER NOT NULL DEFAULT 1,
            total_xp INTEGER NOT NULL DEFAULT 0,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            is_banned BOOLEAN NOT NULL DEFAULT false,
            banned_at TIMESTAMPTZ,
            banned_reason VARCHAR(500),
            last_active_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_visitor_profiles_xp
        ON visitor_profiles(total_xp DESC)
    """)

    # --- XP ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS point_transactions (
            id VARCHAR(36) PRIMARY KEY,
            points INTEGER NOT NULL,
            action VARCHAR(32) NOT NULL,
            description VARCHAR(200),
            visitor_id VARCHAR(36) NOT NULL REFERENCES visitor_profiles(id) ON DELETE CASCADE,
            post_id VARCHAR(36),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_point_transactions_visitor
        ON point_transactions(visitor_id, created_at DESC)
    """)

    # --- Streaks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS streaks (
            id VARCHAR(36) PRIMARY KEY,
            visitor_id VARCHAR(36) UNIQUE NOT NULL REFERENCES visitor_profiles(id) ON DELETE CASCADE,
            current_streak INTEGER NOT NULL DEFAULT 0,
            longest_streak INTEGER NOT NULL DEFAULT 0,
            last_check_in TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            freezes_available INTEGER NOT NULL DEFAULT 2,
            freezes_used INTEGER NOT NULL DEFAULT 0
        )
    """)

    # --- Badges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS badges (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            slug VARCHAR(100) UNIQUE NOT NULL,
            description VARCHAR(300) NOT NULL,
            icon VARCHAR(16) NOT NULL,
            category VARCHAR(32) NOT NULL,
            rarity VARCHAR(16) NOT NULL DEFAULT 'common',
            requirement JSONB NOT NULL DEFAULT '{}',
            xp_reward INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_badges (
            id VARCHAR(36) PRIMARY KEY,
            visitor_id VARCHAR(36) NOT NULL REFERENCES visitor_profiles(id) ON DELETE CASCADE,
            badge_id VARCHAR(36) NOT NULL REFERENCES badges(id) ON DELETE CASCADE,
            earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            is_featured BOOLEAN NOT NULL DEFAULT false,
            CONSTRAINT uq_user_badges_visitor_badge UNIQUE (visitor_id, badge_id)
        )
    """)

    # --- Daily tasks ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS daily_tasks (
            id VARCHAR(36) PRIMARY KEY,
            name VARCHAR(100) NOT NULL,
            description VARCHAR(300) NOT NULL,
            icon VARCHAR(16) NOT NULL,
            task_type VARCHAR(16) NOT NULL,
            requirement INTEGER NOT NULL DEFAULT 1,
            xp_reward INTEGER NOT NULL DEFAULT 0,
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_daily_tasks (
            id VARCHAR(36) PRIMARY KEY,
            visitor_id VARCHAR(36) NOT NULL REFERENCES visitor_profiles(id) ON DELETE CASCADE,
            task_id VARCHAR(36) NOT NULL REFERENCES daily_tasks(id) ON DELETE CASCADE,
            date TIMESTAMPTZ NOT NULL,
            progress INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            xp_awarded BOOLEAN NOT NULL DEFAULT false,
            CONSTRAINT uq_user_daily_tasks_day UNIQUE (visitor_id, task_id, date)
        )
    """)

    # --- Reading history ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS reading_history (
            id VARCHAR(36) PRIMARY KEY,
            visitor_id VARCHAR(36) NOT NULL REFERENCES visitor_profiles(id) ON DELETE CASCADE,
            post_id VARCHAR(36) NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
            read_duration INTEGER NOT NULL DEFAULT 0,
            progress INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            xp_awarded BOOLEAN NOT NULL DEFAULT false,
            last_read_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_reading_history_visitor_post UNIQUE (visitor_id, post_id)
        )
    """)

    # --- Notifications ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS notifications (
            id VARCHAR(36) PRIMARY KEY,
            visitor_id VARCHAR(36) NOT NULL REFERENCES visitor_profiles(id) ON DELETE CASCADE,
            type VARCHAR(32) NOT NULL,
            title VARCHAR(200) NOT NULL,
            message VARCHAR(500) NOT NULL,
            link VARCHAR(300),
            read BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_notifications_visitor
        ON notifications(visitor_id, created_at DESC)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_notifications_unread
        ON notifications(visitor_id)
        WHERE read = false
    """)

    # --- Leaderboard cache ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard_cache (
            id VARCHAR(36) PRIMARY KEY,
            period VARCHAR(16) NOT NULL,
            category VARCHAR(16) NOT NULL,
            rankings JSONB NOT NULL DEFAULT '[]',
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_leaderboard_cache_period_category UNIQUE (period, category)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS leaderboard_cache CASCADE")
    op.execute("DROP TABLE IF EXISTS notifications CASCADE")
    op.execute("DROP TABLE IF EXISTS reading_history CASCADE")
    op.execute("DROP TABLE IF EXISTS user_daily_tasks CASCADE")
    op.execute("DROP TABLE IF EXISTS daily_tasks CASCADE")
    op.execute("DROP TABLE IF EXISTS user_badges CASCADE")
    op.execute("DROP TABLE IF EXISTS badges CASCADE")
    op.execute("DROP TABLE IF EXISTS streaks CASCADE")
    op.execute("DROP TABLE IF EXISTS point_transactions CASCADE")
    op.execute("DROP TABLE IF EXISTS visitor_profiles CASCADE")
