from whateat_recipes.app.services.url_parsing.extractors import readability as readability_extractor
from whateat_recipes.app.services.url_parsing.extractors.heuristic import extract_recipe_heuristic
from whateat_recipes.app.services.url_parsing.extractors.readability import extract_recipe_via_readability
from whateat_recipes.app.services.url_parsing.parsing_utils import html_to_text

SOURCE_URL = "https://www.example.com/pesto"

PAGE = (
    "<html><head><title>Pesto Pasta</title>"
    '<meta name="author" content="Chef Lu">'
    "<script>var tracking = 'Ingredients';</script></head>"
    "<body><h1>Pesto Pasta</h1>"
    "<h2>Ingredients</h2><ul><li>pasta</li><li>pesto</li></ul>"
    "<h2>Instructions</h2><ol><li>Boil pasta.</li><li>Stir in pesto.</li></ol>"
    "<h3>Notes</h3><p>Keeps for two days.</p>"
    "</body></html>"
)

ARTICLE = (
    "<div><h2>Ingredients</h2><ul><li>pasta</li><li>basil &amp; oil</li></ul>"
    "<h2>Method</h2><p>Boil pasta.</p><p>Toss everything.</p></div>"
)


def fake_document(title="Pesto Pasta", summary=ARTICLE, error=None):
    class FakeDocument:
        def __init__(self, html, url=None):
            if error:
                raise error
            self.url = url

        def title(self):
            return title

        def summary(self, html_partial=False):
            return summary

    return FakeDocument


def test_html_to_text_keeps_blocks_and_bullets():
    text = html_to_text("<style>p{}</style><p>One&nbsp;two</p><ul><li>a</li><li>b</li></ul>line<br>break")
    assert [line.strip() for line in text.splitlines()] == ["One two", "- a", "- b", "line", "break"]


def test_html_to_text_decodes_named_entities():
    text = html_to_text("<ul><li>&frac12; cup sugar</li><li>Mom&rsquo;s &lt;secret&gt; spice</li></ul>")
    assert [line.strip() for line in text.splitlines()] == ["- ½ cup sugar", "- Mom’s <secret> spice"]


def test_heuristic_mines_flattened_page():
    attempt = extract_recipe_heuristic(PAGE, SOURCE_URL)

    recipe = attempt.envelope.recipe
    assert recipe.title == "Pesto Pasta"
    assert [item.raw_text for item in recipe.ingredients] == ["pasta", "pesto"]
    assert [step.instruction for step in recipe.steps] == ["Boil pasta.", "Stir in pesto."]
    assert recipe.metadata == {"attribution": "www.example.com"}


def test_heuristic_reports_missing_steps():
    html = "<html><head><title>Dip</title></head><body><h2>Ingredients</h2><p>yogurt</p></body></html>"
    attempt = extract_recipe_heuristic(html, SOURCE_URL)
    assert attempt.envelope is None
    assert attempt.missing_fields == ["steps"]


def test_readability_uses_article_content(monkeypatch):
    monkeypatch.setattr(readability_extractor, "Document", fake_document())

    attempt = extract_recipe_via_readability(PAGE, SOURCE_URL)

    recipe = attempt.envelope.recipe
    assert recipe.title == "Pesto Pasta"
    assert [item.raw_text for item in recipe.ingredients] == ["pasta", "basil & oil"]
    assert [step.instruction for step in recipe.steps] == ["Boil pasta.", "Toss everything."]
    assert recipe.metadata == {"attribution": "www.example.com", "author_name": "Chef Lu"}
    assert "Toss everything." in attempt.text


def test_readability_placeholder_title_falls_back_to_page_title(monkeypatch):
    monkeypatch.setattr(readability_extractor, "Document", fake_document(title="[no-title]"))
    attempt = extract_recipe_via_readability(PAGE, SOURCE_URL)
    assert attempt.envelope.recipe.title == "Pesto Pasta"


def test_readability_text_is_kept_when_sections_are_missing(monkeypatch):
    monkeypatch.setattr(
        readability_extractor,
        "Document",
        fake_document(summary="<div><p>A long story about my grandmother's kitchen.</p></div>"),
    )
    attempt = extract_recipe_via_readability(PAGE, SOURCE_URL)
    assert attempt.envelope is None
    assert attempt.missing_fields == ["ingredients", "steps"]
    assert attempt.text == "A long story about my grandmother's kitchen."


def test_readability_failure_returns_empty_attempt(monkeypatch):
    monkeypatch.setattr(readability_extractor, "Document", fake_document(error=ValueError("bad html")))
    attempt = extract_recipe_via_readability(PAGE, SOURCE_URL)
    assert attempt.envelope is None
    assert attempt.missing_fields is None
    assert attempt.text is None
