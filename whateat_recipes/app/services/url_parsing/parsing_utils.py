"""General parsing utilities for recipe extraction."""

import re
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

ISO_DURATION_RE = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?)?$", re.I)
SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9])")
LEADING_NUMBER_RE = re.compile(r"^\s*\d+[).:-]?\s*")
BULLET_RE = re.compile(r"^[-*•]\s*")

_BLOCK_CLOSE_RE = re.compile(r"</(title|p|div|section|article|h1|h2|h3|h4|h5|h6|li|br|tr|td)>", re.I)


def truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[:limit].strip()


def strip_bullet(value: str) -> str:
    return BULLET_RE.sub("", value).strip()


def strip_leading_number(value: str) -> str:
    return LEADING_NUMBER_RE.sub("", value).strip()


def hostname_of(url: str) -> Optional[str]:
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def split_instructions(text: str) -> List[str]:
    """Split an instruction blob into steps: by lines first, then by sentences."""
    lines = [line.strip() for line in re.split(r"\r?\n+", text) if line.strip()]
    if len(lines) > 1:
        parts = lines
    else:
        # "1. Mix well." would otherwise split at the step number
        parts = SENTENCE_BOUNDARY_RE.split(strip_leading_number(text))
    steps = (strip_leading_number(part) for part in parts)
    return [step for step in steps if step]


def _leading_int(value: str) -> Optional[int]:
    match = re.search(r"\d+", value)
    return int(match.group()) if match else None


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_servings(value) -> Optional[int]:
    """Parse servings from a number, a string such as "4 servings" or the first list item."""
    if _is_number(value):
        return round(value)
    if isinstance(value, str):
        return _leading_int(value)
    if isinstance(value, list) and value:
        return parse_servings(value[0])
    return None


def parse_calories(value) -> Optional[int]:
    if _is_number(value):
        return round(value)
    if isinstance(value, str):
        return _leading_int(value)
    return None


def parse_duration_minutes(value) -> Optional[int]:
    """Parse an ISO-8601 duration (P#DT#H#M#S) or a plain number into minutes."""
    if not value:
        return None
    if _is_number(value):
        return round(value)
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    match = ISO_DURATION_RE.match(candidate)
    if match and any(match.groups()):
        days, hours, minutes = (int(group or 0) for group in match.groups()[:3])
        return days * 24 * 60 + hours * 60 + minutes
    return _leading_int(candidate)


def html_to_text(html: str) -> str:
    """Flatten HTML to plain text keeping block boundaries and list bullets."""
    text = re.sub(r"<script[\s\S]*?</script>", " ", html, flags=re.I)
    text = re.sub(r"<style[\s\S]*?</style>", " ", text, flags=re.I)
    text = _BLOCK_CLOSE_RE.sub("\n", text)
    text = re.sub(r"<li[^>]*>", "\n- ", text, flags=re.I)
    text = re.sub(r"<br\s*/?>", "\n", text, flags=re.I)
    text = BeautifulSoup(text, "lxml").get_text().replace("\xa0", " ")
    text = re.sub(r"\s+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _meta_content(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        content = tag["content"].strip()
        return content or None
    return None


def extract_page_title(html: str) -> Optional[str]:
    """og:title when present, otherwise the document <title>."""
    soup = BeautifulSoup(html, "lxml")
    og_title = _meta_content(soup, property="og:title")
    if og_title:
        return og_title
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
        return title or None
    return None


def extract_meta_author(html: str) -> Optional[str]:
    soup = BeautifulSoup(html, "lxml")
    return _meta_content(soup, name="author") or _meta_content(soup, property="article:author")
