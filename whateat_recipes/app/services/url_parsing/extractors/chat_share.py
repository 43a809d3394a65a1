"""Recipe extraction from shared chat conversation pages.

Shared conversations are server-rendered with the message content streamed
through ``streamController.enqueue("...")`` calls; the recipe text lives in
one of the JSON strings carried by those payloads.
"""

import json
import logging
import re
from typing import Any, List, Optional
from urllib.parse import urlparse

from whateat_recipes.app.services.url_parsing.models import ExtractionAttempt
from whateat_recipes.app.services.url_parsing.parsing_utils import extract_page_title, hostname_of
from whateat_recipes.app.services.url_parsing.text_sections import (
    extract_recipe_from_text,
    extract_title_from_lines,
)

logger = logging.getLogger(__name__)

CHAT_SHARE_HOSTS = ("chatgpt.com", "chat.openai.com")
MIN_CANDIDATE_LENGTH = 80

_ENQUEUE_RE = re.compile(r'streamController\.enqueue\("((?:\\.|[^"\\])*)"\)')
_ID_TOKEN_RE = re.compile(r"^[A-Za-z]?[0-9a-fA-F]+:")
_CHAT_TITLE_PREFIX_RE = re.compile(r"^ChatGPT\s*[-:]\s*", re.I)


def is_chat_share_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    host = (parsed.hostname or "").lower()
    host_matches = any(host == allowed or host.endswith(f".{allowed}") for allowed in CHAT_SHARE_HOSTS)
    return host_matches and parsed.path.startswith("/share/")


def extract_stream_payloads(html: str) -> List[str]:
    return [match.group(1) for match in _ENQUEUE_RE.finditer(html)]


def decode_javascript_string(value: str) -> Optional[str]:
    try:
        decoded = json.loads(f'"{value}"')
    except ValueError:
        return None
    return decoded if isinstance(decoded, str) else None


def _safe_json_loads(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError:
        return None


def _collect_strings(value, output: List[str]) -> None:
    if isinstance(value, str):
        output.append(value)
    elif isinstance(value, list):
        for item in value:
            _collect_strings(item, output)
    elif isinstance(value, dict):
        for item in value.values():
            _collect_strings(item, output)


def _strings_from_decoded(decoded: str) -> List[str]:
    strings: List[str] = []
    for line in decoded.split("\n"):
        line = _ID_TOKEN_RE.sub("", line.strip())
        if not line:
            continue
        parsed = _safe_json_loads(line)
        if parsed is not None:
            _collect_strings(parsed, strings)

    if not strings:
        parsed = _safe_json_loads(decoded)
        if parsed is not None:
            _collect_strings(parsed, strings)
    return strings


def decode_stream_payloads(raw_chunks: List[str]) -> List[str]:
    """Turn raw ``enqueue`` arguments into every string nested in their JSON lines."""
    strings: List[str] = []
    for chunk in raw_chunks:
        decoded = decode_javascript_string(chunk)
        if not decoded:
            continue
        strings.extend(_strings_from_decoded(decoded))
    return strings


def _longest(values: List[str]) -> Optional[str]:
    return max(values, key=len) if values else None


def pick_recipe_text(strings: List[str]) -> Optional[str]:
    cleaned = [value.strip() for value in strings if len(value.strip()) > MIN_CANDIDATE_LENGTH]

    def has_steps(lower: str) -> bool:
        return "steps" in lower or "instructions" in lower or "directions" in lower

    primary = [value for value in cleaned if "ingredients" in value.lower() and has_steps(value.lower())]
    if primary:
        return _longest(primary)

    fallback = [
        value
        for value in cleaned
        if any(word in value.lower() for word in ("ingredients", "steps", "instructions"))
    ]
    return _longest(fallback)


def strip_chat_prefix(title: Optional[str]) -> Optional[str]:
    if not title:
        return None
    cleaned = _CHAT_TITLE_PREFIX_RE.sub("", title).strip()
    return cleaned or None


def extract_recipe_from_chat_share(html: str, source_url: str) -> ExtractionAttempt:
    payloads = extract_stream_payloads(html)
    if not payloads:
        return ExtractionAttempt()

    candidate = pick_recipe_text(decode_stream_payloads(payloads))
    if not candidate:
        logger.info("No recipe-like text found in %d stream payloads for %s", len(payloads), source_url)
        return ExtractionAttempt()

    lines = [line.strip() for line in re.split(r"\r?\n", candidate) if line.strip()]
    title_hint = extract_title_from_lines(lines) or strip_chat_prefix(extract_page_title(html))
    attempt = extract_recipe_from_text(
        candidate,
        source_url,
        title_hint=title_hint,
        attribution=hostname_of(source_url),
    )
    return attempt.model_copy(update={"text": candidate})
