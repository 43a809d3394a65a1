import json

import pytest

from whateat_recipes.app.services.url_parsing.extractors.chat_share import (
    decode_stream_payloads,
    extract_recipe_from_chat_share,
    is_chat_share_url,
    pick_recipe_text,
    strip_chat_prefix,
)

SHARE_URL = "https://chatgpt.com/share/6650f1c2-recipe"

RECIPE_TEXT = (
    "# Garlic Noodles\n\n"
    "Ingredients\n"
    "- 8 oz noodles\n"
    "- 4 cloves garlic\n\n"
    "Instructions\n"
    "Boil the noodles until tender.\n"
    "Toss with garlic butter and serve."
)


def enqueue_chunk(*lines: str) -> str:
    return json.dumps("\n".join(lines))[1:-1]


def share_page(*chunks: str) -> str:
    scripts = "".join(f'<script>streamController.enqueue("{chunk}");</script>' for chunk in chunks)
    return f"<html><head><title>ChatGPT - Garlic Noodles</title></head><body>{scripts}</body></html>"


@pytest.mark.parametrize(
    "url, expected",
    [
        (SHARE_URL, True),
        ("https://chat.openai.com/share/abc", True),
        ("https://www.chatgpt.com/share/abc", True),
        ("https://chatgpt.com/c/abc", False),
        ("https://example.com/share/abc", False),
        ("https://notchatgpt.com/share/abc", False),
    ],
)
def test_is_chat_share_url(url, expected):
    assert is_chat_share_url(url) is expected


def test_decoder_strips_id_tokens_and_collects_nested_strings():
    chunk = enqueue_chunk(
        "0:" + json.dumps({"message": {"content": {"parts": ["hello", "world"]}}}),
        "a1f:" + json.dumps(["$", "tail"]),
        "not json at all",
    )
    assert decode_stream_payloads([chunk]) == ["hello", "world", "$", "tail"]


def test_decoder_falls_back_to_whole_payload():
    chunk = enqueue_chunk('{"text":', '"hello"}')
    assert decode_stream_payloads([chunk]) == ["hello"]


def test_decoder_skips_undecodable_chunks():
    assert decode_stream_payloads(["\\x41 broken", ""]) == []


def test_pick_prefers_text_with_ingredients_and_steps():
    partial = "Ingredients only: " + "flour, " * 20
    full = RECIPE_TEXT
    assert pick_recipe_text(["short ingredients steps", partial, full]) == full


def test_pick_falls_back_to_longest_keyword_match():
    first = "Steps to success in the kitchen start with " + "patience " * 10
    second = "These instructions describe a process that takes a while " + "and more " * 10
    assert pick_recipe_text([first, second, "x" * 200]) == max([first, second], key=len)


def test_pick_returns_none_without_candidates():
    assert pick_recipe_text(["tiny", "y" * 120]) is None


def test_strip_chat_prefix():
    assert strip_chat_prefix("ChatGPT - Garlic Noodles") == "Garlic Noodles"
    assert strip_chat_prefix("ChatGPT: ") is None
    assert strip_chat_prefix(None) is None


def test_extracts_recipe_from_share_page():
    html = share_page(
        enqueue_chunk("0:" + json.dumps(["$", "hi"])),
        enqueue_chunk("1:" + json.dumps({"message": {"content": {"parts": [RECIPE_TEXT]}}})),
    )

    attempt = extract_recipe_from_chat_share(html, SHARE_URL)

    recipe = attempt.envelope.recipe
    assert recipe.title == "Garlic Noodles"
    assert [item.raw_text for item in recipe.ingredients] == ["8 oz noodles", "4 cloves garlic"]
    assert [step.instruction for step in recipe.steps] == [
        "Boil the noodles until tender.",
        "Toss with garlic butter and serve.",
    ]
    assert recipe.metadata["attribution"] == "chatgpt.com"
    assert attempt.text == RECIPE_TEXT


def test_share_page_without_payloads_is_empty_attempt():
    attempt = extract_recipe_from_chat_share("<html><body>Nothing here</body></html>", SHARE_URL)
    assert attempt.envelope is None
    assert attempt.missing_fields is None
    assert attempt.text is None
