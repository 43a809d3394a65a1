"""Heuristic recipe extraction from the flattened page text."""

from whateat_recipes.app.services.url_parsing.models import ExtractionAttempt
from whateat_recipes.app.services.url_parsing.parsing_utils import extract_page_title, html_to_text
from whateat_recipes.app.services.url_parsing.text_sections import extract_recipe_from_text


def extract_recipe_heuristic(html: str, source_url: str) -> ExtractionAttempt:
    return extract_recipe_from_text(
        html_to_text(html),
        source_url,
        title_hint=extract_page_title(html),
    )
