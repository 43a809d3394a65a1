import pytest

from whateat_recipes.app.services.llm_client import LLMProviderError
from whateat_recipes.app.services.url_parsing.extractors.llm import (
    MAX_AI_TEXT_CHARS,
    RECIPE_JSON_SCHEMA,
    SCHEMA_NAME,
    build_text_for_ai,
    extract_recipe_via_llm,
    parse_ai_output,
)

SOURCE_URL = "https://food.example.net/curry"


class FakeLLMClient:
    model = "fake-model"

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def generate_structured(self, system_prompt, user_prompt, schema_name, schema):
        self.calls.append(
            {"system": system_prompt, "user": user_prompt, "schema_name": schema_name, "schema": schema}
        )
        if self.error:
            raise self.error
        return self.response


def ai_payload(**overrides):
    payload = {
        "title": "Chickpea Curry",
        "description": "A quick curry.",
        "servings": 4,
        "calories": 380,
        "prep_time_minutes": 10,
        "cook_time_minutes": -5,
        "tags": ["meal", "Dinner", "brunch"],
        "cuisine": "Indian",
        "dietary_labels": ["vegan", "gluten free"],
        "ingredients": [{"raw_text": "1 can chickpeas"}, {"raw_text": "  "}, {"raw_text": "1 onion"}],
        "steps": [{"instruction": "Fry onion."}, {"instruction": "Add chickpeas and simmer."}],
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_builds_envelope_from_model_output():
    client = FakeLLMClient(response=ai_payload())

    attempt = await extract_recipe_via_llm("<p>curry page</p>", SOURCE_URL, llm_client=client)

    assert attempt.attempted is True
    assert attempt.failed is False
    recipe = attempt.envelope.recipe
    assert recipe.title == "Chickpea Curry"
    assert recipe.cook_time_minutes is None
    assert recipe.tags == ["breakfast", "meal"]
    assert recipe.cuisine == "indian"
    assert recipe.dietary_labels == ["vegan", "gluten_free"]
    assert [item.raw_text for item in recipe.ingredients] == ["1 can chickpeas", "1 onion"]
    assert [step.instruction for step in recipe.steps] == ["Fry onion.", "Add chickpeas and simmer."]
    assert recipe.source.url == SOURCE_URL
    assert recipe.metadata == {"attribution": "food.example.net"}

    call = client.calls[0]
    assert call["schema_name"] == SCHEMA_NAME
    assert call["schema"] is RECIPE_JSON_SCHEMA
    assert "curry page" in call["user"]
    assert SOURCE_URL in call["user"]


@pytest.mark.asyncio
async def test_text_override_replaces_page_html():
    client = FakeLLMClient(response=ai_payload())
    await extract_recipe_via_llm("<p>raw html</p>", SOURCE_URL, text_override="readable text", llm_client=client)
    assert "readable text" in client.calls[0]["user"]
    assert "raw html" not in client.calls[0]["user"]


@pytest.mark.asyncio
async def test_without_client_the_tier_is_skipped():
    attempt = await extract_recipe_via_llm("<p>curry</p>", SOURCE_URL, llm_client=None)
    assert attempt.attempted is False
    assert attempt.envelope is None


@pytest.mark.asyncio
async def test_empty_text_is_not_sent():
    client = FakeLLMClient(response=ai_payload())
    attempt = await extract_recipe_via_llm("<script>x()</script>", SOURCE_URL, llm_client=client)
    assert attempt.attempted is False
    assert client.calls == []


@pytest.mark.asyncio
async def test_provider_error_marks_attempt_failed():
    client = FakeLLMClient(error=LLMProviderError("quota exceeded", status=429, code="insufficient_quota"))
    attempt = await extract_recipe_via_llm("<p>curry</p>", SOURCE_URL, llm_client=client)
    assert attempt.attempted is True
    assert attempt.failed is True
    assert attempt.envelope is None


@pytest.mark.asyncio
async def test_malformed_output_marks_attempt_failed():
    client = FakeLLMClient(response={"ingredients": "not a list"})
    attempt = await extract_recipe_via_llm("<p>curry</p>", SOURCE_URL, llm_client=client)
    assert attempt.attempted is True
    assert attempt.failed is True


@pytest.mark.asyncio
async def test_unknown_recipe_reports_missing_fields():
    client = FakeLLMClient(response=ai_payload(title="Unknown Recipe", ingredients=[], steps=[]))
    attempt = await extract_recipe_via_llm("<p>about us</p>", SOURCE_URL, llm_client=client)
    assert attempt.failed is True
    assert attempt.missing_fields == ["ingredients", "steps"]


def test_text_for_ai_is_capped():
    assert len(build_text_for_ai("", text_override="a" * (MAX_AI_TEXT_CHARS + 500))) == MAX_AI_TEXT_CHARS
    assert build_text_for_ai("<p>Hello</p>") == "Hello"


def test_parse_ai_output_accepts_plain_strings_and_nulls():
    output = parse_ai_output(ai_payload(tags=None, dietary_labels=None, ingredients=["salt"], steps=["Mix."]))
    assert output.tags == []
    assert output.dietary_labels == []
    assert output.ingredients == ["salt"]
    assert output.steps == ["Mix."]
