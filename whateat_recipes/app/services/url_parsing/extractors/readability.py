"""Main-content extraction with readability-lxml, then section mining."""

import logging
from typing import Optional

from readability import Document

from whateat_recipes.app.services.url_parsing.models import ExtractionAttempt
from whateat_recipes.app.services.url_parsing.parsing_utils import (
    extract_meta_author,
    extract_page_title,
    hostname_of,
    html_to_text,
)
from whateat_recipes.app.services.url_parsing.text_sections import extract_recipe_from_text

logger = logging.getLogger(__name__)


def _article_title(doc: Document) -> Optional[str]:
    title = (doc.title() or "").strip()
    if not title or title == "[no-title]":
        return None
    return title


def extract_recipe_via_readability(html: str, source_url: str) -> ExtractionAttempt:
    try:
        doc = Document(html, url=source_url)
        text = html_to_text(doc.summary(html_partial=True))
        if not text:
            return ExtractionAttempt()

        title_hint = _article_title(doc) or extract_page_title(html)
        attempt = extract_recipe_from_text(
            text,
            source_url,
            title_hint=title_hint,
            author_name=extract_meta_author(html),
            attribution=hostname_of(source_url),
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Readability extraction failed for %s: %s", source_url, exc)
        return ExtractionAttempt()

    return attempt.model_copy(update={"text": text})
