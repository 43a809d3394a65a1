"""Section mining over plain recipe text (ingredients / steps blocks)."""

import re
from typing import Iterable, List, Optional

from whateat_recipes.app.services.url_parsing.envelope_builder import build_envelope_attempt
from whateat_recipes.app.services.url_parsing.models import ExtractionAttempt, PartialRecipeData
from whateat_recipes.app.services.url_parsing.parsing_utils import hostname_of, strip_bullet

INGREDIENT_LABELS = ("ingredients",)
STEP_LABELS = ("instructions", "directions", "method", "preparation", "steps")
SECTION_STOP_WORDS = ("nutrition", "notes", "tips", "storage", "video")

ALL_SECTION_LABELS = frozenset(INGREDIENT_LABELS + STEP_LABELS + SECTION_STOP_WORDS)
BARE_LABELS = frozenset(INGREDIENT_LABELS + STEP_LABELS)

_HEADING_RE = re.compile(r"^#+\s*(.+)$")


def normalize_section_heading(line: str) -> str:
    heading = line.strip().lower()
    heading = heading.replace("**", "").replace("__", "")
    heading = re.sub(r"^#+\s*", "", heading)
    heading = re.sub(r"^[-*•]\s*", "", heading)
    heading = re.sub(r":$", "", heading.strip())
    return heading.strip()


def _matches_label(normalized: str, labels: Iterable[str]) -> bool:
    return any(normalized == label or normalized.startswith(f"{label} ") for label in labels)


def _is_boundary(normalized: str) -> bool:
    return normalized in ALL_SECTION_LABELS


def extract_section(lines: List[str], labels: Iterable[str]) -> List[str]:
    """Collect the items under the first heading matching one of ``labels``.

    Collection stops at any other section heading, or at a blank line once at
    least one item has been collected.
    """
    labels = tuple(label.lower() for label in labels)
    start = None
    for index, line in enumerate(lines):
        if _matches_label(normalize_section_heading(line), labels):
            start = index + 1
            break
    if start is None:
        return []

    items: List[str] = []
    for line in lines[start:]:
        normalized = normalize_section_heading(line)
        if _is_boundary(normalized):
            break
        if not normalized:
            if items:
                break
            continue
        item = strip_bullet(line)
        if item:
            items.append(item)
    return items


def _cleanup_title_line(line: str) -> Optional[str]:
    cleaned = re.sub(r"\s*#+\s*$", "", line.replace("**", ""))
    cleaned = re.sub(r"^[*-]\s*", "", cleaned).strip()
    return cleaned or None


def extract_title_from_lines(lines: List[str]) -> Optional[str]:
    """First markdown heading, else the first content line that is not a bare label."""
    for line in lines:
        match = _HEADING_RE.match(line)
        if match:
            cleaned = _cleanup_title_line(match.group(1))
            if cleaned:
                return cleaned

    for line in lines:
        cleaned = _cleanup_title_line(line)
        if not cleaned:
            continue
        if normalize_section_heading(cleaned) in BARE_LABELS:
            continue
        return cleaned
    return None


def extract_recipe_from_text(
    text: str,
    source_url: str,
    title_hint: Optional[str] = None,
    author_name: Optional[str] = None,
    attribution: Optional[str] = None,
) -> ExtractionAttempt:
    lines = [line.strip() for line in re.split(r"\r?\n", text or "")]
    title = title_hint or extract_title_from_lines(lines)
    data = PartialRecipeData(
        title=title,
        ingredients=extract_section(lines, INGREDIENT_LABELS),
        steps=extract_section(lines, STEP_LABELS),
        author_name=author_name,
        attribution=attribution or (hostname_of(source_url) if title else None),
    )
    return build_envelope_attempt(data, source_url)
