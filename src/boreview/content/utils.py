"""Text helpers for articles: slugs, reading time, excerpts and quality checks."""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass, field

WORDS_PER_MINUTE = 200
MIN_WORDS_VALID = 300
MIN_WORDS_RECOMMENDED = 600
MAX_LINKS = 10
DUPLICATE_THRESHOLD = 0.7

_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_LINK_RE = re.compile(r"<a ", re.IGNORECASE)
_YOUTUBE_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/shorts/([^&\n?#]+)"),
)

REACTION_EMOJIS: dict[str, str] = {
    "like": "👍",
    "love": "❤️",
    "laugh": "😂",
    "wow": "😮",
    "sad": "😢",
}


def slugify(value: str | None) -> str:
    """
    URL-safe slug with Vietnamese diacritics folded to ASCII.

    "Mắt Biếc" -> "mat-biec", "Đắc Nhân Tâm 2024!" -> "dac-nhan-tam-2024"
    """
    if value is None:
        return ""
    value = str(value).replace("Đ", "D").replace("đ", "d")
    value = unicodedata.normalize("NFD", value)
    value = "".join(c for c in value if unicodedata.category(c) != "Mn")
    value = value.lower()
    value = re.sub(r"[^a-z0-9\s-]", "", value).strip()
    value = re.sub(r"[-\s]+", "-", value)
    return value.strip("-")


def strip_html(content: str) -> str:
    """Replace tags with spaces and collapse whitespace."""
    return _WS_RE.sub(" ", _TAG_RE.sub(" ", content)).strip()


def count_words(content: str) -> int:
    text = strip_html(content)
    return len([w for w in text.split(" ") if w])


def calculate_reading_time(content: str) -> int:
    """Minutes at 200 words per minute, never less than 1."""
    return max(1, math.ceil(count_words(content) / WORDS_PER_MINUTE))


def format_reading_time(minutes: int) -> str:
    return f"{minutes} phút đọc"


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length].strip() + "..."


def generate_excerpt(content: str, max_length: int = 160) -> str:
    return truncate_text(strip_html(content), max_length)


@dataclass
class ContentQuality:
    valid: bool
    word_count: int
    warnings: list[str] = field(default_factory=list)


def validate_content_quality(content: str) -> ContentQuality:
    """Word-count and link-density checks run before publishing."""
    warnings: list[str] = []
    text = strip_html(content)
    word_count = count_words(content)

    if word_count < MIN_WORDS_RECOMMENDED:
        warnings.append(
            f"Bài viết chỉ có {word_count} từ. Nên có ít nhất {MIN_WORDS_RECOMMENDED} từ."
        )
    if word_count < MIN_WORDS_VALID:
        return ContentQuality(valid=False, word_count=word_count, warnings=warnings)

    if len(text) < 100:
        warnings.append("Nội dung quá ngắn. Hãy bổ sung thêm chi tiết.")

    link_count = len(_LINK_RE.findall(content))
    if link_count > MAX_LINKS:
        warnings.append(f"Bài viết có {link_count} liên kết. Quá nhiều liên kết có thể ảnh hưởng SEO.")

    return ContentQuality(valid=True, word_count=word_count, warnings=warnings)


def _word_set(content: str) -> set[str]:
    return set(_WS_RE.split(_TAG_RE.sub("", content.lower())))


def check_duplicate_content(new_content: str, existing_contents: list[str]) -> dict[str, object]:
    """
    Jaccard similarity of word sets against each existing article.

    Returns is_duplicate (best match above 0.7), similarity as a rounded
    percentage and the index of the best match (-1 when nothing overlaps).
    """
    new_words = _word_set(new_content)
    best = 0.0
    matched_index = -1

    for index, existing in enumerate(existing_contents):
        existing_words = _word_set(existing)
        union = new_words | existing_words
        if not union:
            continue
        similarity = len(new_words & existing_words) / len(union)
        if similarity > best:
            best = similarity
            matched_index = index

    return {
        "is_duplicate": best > DUPLICATE_THRESHOLD,
        "similarity": round(best * 100),
        "matched_index": matched_index,
    }


def extract_youtube_id(url: str) -> str | None:
    for pattern in _YOUTUBE_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def get_youtube_thumbnail(url: str) -> str | None:
    video_id = extract_youtube_id(url)
    if video_id is None:
        return None
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


def get_reaction_emoji(reaction_type: str) -> str:
    return REACTION_EMOJIS.get(reaction_type, REACTION_EMOJIS["like"])
