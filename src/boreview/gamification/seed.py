"""Seed data: badges, daily tasks and the default categories."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boreview.db.models import Badge, Category, DailyTask

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    # Category badges
    {
        "slug": "mot-phim",
        "name": "Mọt Phim",
        "description": "Đọc 10 bài review phim & drama",
        "icon": "🎬",
        "category": "category",
        "rarity": "common",
        "requirement": {"type": "read_category", "category": "phim-drama", "count": 10},
        "xp_reward": 50,
    },
    {
        "slug": "otaku-chan-chinh",
        "name": "Otaku Chân Chính",
        "description": "Đọc 20 bài review anime",
        "icon": "🎌",
        "category": "category",
        "rarity": "rare",
        "requirement": {"type": "read_category", "category": "anime-hoat-hinh", "count": 20},
        "xp_reward": 100,
    },
    {
        "slug": "tam-hon-can-dam",
        "name": "Tâm Hồn Can Đảm",
        "description": "Đọc 10 bài tâm lý & kinh dị",
        "icon": "👻",
        "category": "category",
        "rarity": "rare",
        "requirement": {"type": "read_category", "category": "tam-ly-kinh-di", "count": 10},
        "xp_reward": 75,
    },
    # Engagement badges
    {
        "slug": "nguoi-moi",
        "name": "Người Mới",
        "description": "Tạo tài khoản thành công",
        "icon": "🌟",
        "category": "engagement",
        "rarity": "common",
        "requirement": {"type": "signup"},
        "xp_reward": 25,
    },
    {
        "slug": "binh-luan-gia",
        "name": "Bình Luận Gia",
        "description": "Viết 10 bình luận",
        "icon": "💬",
        "category": "engagement",
        "rarity": "common",
        "requirement": {"type": "comment_count", "count": 10},
        "xp_reward": 50,
    },
    {
        "slug": "nguoi-hao-phong",
        "name": "Người Hào Phóng",
        "description": "Thả 50 reactions",
        "icon": "❤️",
        "category": "engagement",
        "rarity": "common",
        "requirement": {"type": "react_count", "count": 50},
        "xp_reward": 50,
    },
    {
        "slug": "doc-gia-sieng-nang",
        "name": "Độc Giả Siêng Năng",
        "description": "Đọc 50 bài viết",
        "icon": "📚",
        "category": "engagement",
        "rarity": "rare",
        "requirement": {"type": "read_count", "count": 50},
        "xp_reward": 100,
    },
    # Streak badges (slug format: streak-{days})
    {
        "slug": "streak-3",
        "name": "Bắt Đầu Hành Trình",
        "description": "Duy trì streak 3 ngày",
        "icon": "🔥",
        "category": "streak",
        "rarity": "common",
        "requirement": {"type": "streak", "days": 3},
        "xp_reward": 30,
    },
    {
        "slug": "streak-7",
        "name": "Một Tuần Không Nghỉ",
        "description": "Duy trì streak 7 ngày",
        "icon": "⚡",
        "category": "streak",
        "rarity": "rare",
        "requirement": {"type": "streak", "days": 7},
        "xp_reward": 75,
    },
    {
        "slug": "streak-14",
        "name": "Hai Tuần Liền",
        "description": "Duy trì streak 14 ngày",
        "icon": "✨",
        "category": "streak",
        "rarity": "rare",
        "requirement": {"type": "streak", "days": 14},
        "xp_reward": 100,
    },
    {
        "slug": "streak-30",
        "name": "Kiên Trì Một Tháng",
        "description": "Duy trì streak 30 ngày",
        "icon": "💪",
        "category": "streak",
        "rarity": "epic",
        "requirement": {"type": "streak", "days": 30},
        "xp_reward": 200,
    },
    {
        "slug": "streak-60",
        "name": "Bền Bỉ 60 Ngày",
        "description": "Duy trì streak 60 ngày",
        "icon": "🌟",
        "category": "streak",
        "rarity": "epic",
        "requirement": {"type": "streak", "days": 60},
        "xp_reward": 300,
    },
    {
        "slug": "streak-100",
        "name": "Huyền Thoại",
        "description": "Duy trì streak 100 ngày",
        "icon": "👑",
        "category": "streak",
        "rarity": "legendary",
        "requirement": {"type": "streak", "days": 100},
        "xp_reward": 500,
    },
    {
        "slug": "streak-365",
        "name": "Một Năm Không Nghỉ",
        "description": "Duy trì streak 365 ngày",
        "icon": "🏆",
        "category": "streak",
        "rarity": "legendary",
        "requirement": {"type": "streak", "days": 365},
        "xp_reward": 1000,
    },
    # Special badges
    {
        "slug": "early-bird",
        "name": "Early Bird",
        "description": "Một trong 100 thành viên đầu tiên",
        "icon": "🐣",
        "category": "special",
        "rarity": "legendary",
        "requirement": {"type": "early_adopter", "count": 100},
        "xp_reward": 300,
    },
    {
        "slug": "vua-binh-luan-tuan",
        "name": "Vua Bình Luận Tuần",
        "description": "Top 1 bình luận trong tuần",
        "icon": "🏆",
        "category": "special",
        "rarity": "epic",
        "requirement": {"type": "weekly_top", "category": "comments", "rank": 1},
        "xp_reward": 150,
    },
    {
        "slug": "level-10",
        "name": "Level 10",
        "description": "Đạt level 10",
        "icon": "🎖️",
        "category": "special",
        "rarity": "rare",
        "requirement": {"type": "level", "level": 10},
        "xp_reward": 100,
    },
]

DAILY_TASK_SEED_DATA: list[dict] = [
    {
        "name": "Đọc 1 bài viết",
        "description": "Đọc ít nhất 1 bài viết hôm nay",
        "icon": "📖",
        "task_type": "read",
        "requirement": 1,
        "xp_reward": 10,
        "sort_order": 1,
    },
    {
        "name": "Thả cảm xúc",
        "description": "React 1 lần cho bất kỳ bài viết nào",
        "icon": "❤️",
        "task_type": "react",
        "requirement": 1,
        "xp_reward": 5,
        "sort_order": 2,
    },
    {
        "name": "Bình luận",
        "description": "Viết 1 bình luận về bài viết",
        "icon": "💬",
        "task_type": "comment",
        "requirement": 1,
        "xp_reward": 15,
        "sort_order": 3,
    },
    {
        "name": "Khám phá",
        "description": "Đọc bài viết từ 2 chuyên mục khác nhau",
        "icon": "🔍",
        "task_type": "explore",
        "requirement": 2,
        "xp_reward": 20,
        "sort_order": 4,
    },
]

CATEGORY_SEED_DATA: list[dict] = [
    {"name": "Phim & Drama", "slug": "phim-drama"},
    {"name": "Anime & Hoạt Hình", "slug": "anime-hoat-hinh"},
    {"name": "Tâm Lý & Kinh Dị", "slug": "tam-ly-kinh-di"},
    {"name": "Hài Hước", "slug": "hai-huoc"},
    {"name": "Review Hot", "slug": "review-hot"},
    {"name": "Tổng Hợp", "slug": "tong-hop"},
]


async def seed_badges(db: AsyncSession) -> int:
    """Upsert all badge definitions by slug. Returns number of badges seeded."""
    existing = {b.slug: b for b in (await db.execute(select(Badge))).scalars()}
    for data in BADGE_SEED_DATA:
        badge = existing.get(data["slug"])
        if badge is None:
            db.add(Badge(**data))
        else:
            for key, value in data.items():
                setattr(badge, key, value)
    await db.commit()
    logger.info("Seeded %d badge definitions", len(BADGE_SEED_DATA))
    return len(BADGE_SEED_DATA)


async def seed_daily_tasks(db: AsyncSession) -> int:
    """Upsert the daily tasks keyed by task type."""
    existing = {t.task_type: t for t in (await db.execute(select(DailyTask))).scalars()}
    for data in DAILY_TASK_SEED_DATA:
        task = existing.get(data["task_type"])
        if task is None:
            db.add(DailyTask(**data))
        else:
            for key, value in data.items():
                setattr(task, key, value)
    await db.commit()
    logger.info("Seeded %d daily tasks", len(DAILY_TASK_SEED_DATA))
    return len(DAILY_TASK_SEED_DATA)


async def seed_categories(db: AsyncSession) -> int:
    """Insert missing default categories; existing names are left alone."""
    existing = set((await db.execute(select(Category.slug))).scalars())
    added = 0
    for data in CATEGORY_SEED_DATA:
        if data["slug"] not in existing:
            db.add(Category(**data))
            added += 1
    await db.commit()
    return added
