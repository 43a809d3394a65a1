from whateat_recipes.app.services.url_parsing.text_sections import (
    extract_recipe_from_text,
    extract_section,
    extract_title_from_lines,
    normalize_section_heading,
    STEP_LABELS,
)

SOURCE_URL = "https://blog.example.org/stew"


def test_markdown_recipe_is_mined_into_envelope():
    text = "# Grandma's Stew\n\nIngredients\nonion\ncarrot\n\nInstructions\nChop.\nSimmer."

    attempt = extract_recipe_from_text(text, SOURCE_URL)

    recipe = attempt.envelope.recipe
    assert recipe.title == "Grandma's Stew"
    assert [item.raw_text for item in recipe.ingredients] == ["onion", "carrot"]
    assert [step.instruction for step in recipe.steps] == ["Chop.", "Simmer."]
    assert recipe.metadata == {"attribution": "blog.example.org"}


def test_section_stops_at_other_heading_and_strips_bullets():
    lines = [
        "Ingredients:",
        "- 2 cups rice",
        "* 1 tsp salt",
        "Notes",
        "Use leftover rice.",
    ]
    assert extract_section(lines, ["ingredients"]) == ["2 cups rice", "1 tsp salt"]


def test_section_skips_leading_blank_lines():
    lines = ["## Directions", "", "", "Boil water.", "Add pasta.", "", "Enjoy."]
    assert extract_section(lines, STEP_LABELS) == ["Boil water.", "Add pasta."]


def test_missing_section_returns_empty_list():
    assert extract_section(["Just some prose."], ["ingredients"]) == []


def test_heading_normalization():
    assert normalize_section_heading("### **Ingredients:**") == "ingredients"
    assert normalize_section_heading("- Method") == "method"


def test_title_prefers_markdown_heading_then_first_non_label_line():
    assert extract_title_from_lines(["Intro", "## **Lemon Cake** ##"]) == "Lemon Cake"
    assert extract_title_from_lines(["", "Ingredients", "Lemon Cake"]) == "Lemon Cake"
    assert extract_title_from_lines(["", "  "]) is None


def test_title_hint_and_author_are_used():
    text = "Ingredients\nflour\nSteps\nKnead."
    attempt = extract_recipe_from_text(
        text,
        SOURCE_URL,
        title_hint="Bread",
        author_name="Ana",
        attribution="Ana's Kitchen",
    )
    recipe = attempt.envelope.recipe
    assert recipe.title == "Bread"
    assert recipe.metadata == {"attribution": "Ana's Kitchen", "author_name": "Ana"}


def test_text_without_steps_reports_missing_fields():
    attempt = extract_recipe_from_text("# Salad\n\nIngredients\nlettuce", SOURCE_URL)
    assert attempt.envelope is None
    assert attempt.missing_fields == ["steps"]
