"""Canonical cuisine, dietary-label and tag vocabularies and their normalizers.

These lists are shared with the AI output schema and the recipe envelope
validator. Free-text values are mapped through an ordered rule list, first
match wins; anything unmapped is dropped.
"""

import re
from typing import Callable, List, Optional, Sequence, Tuple

CANONICAL_CUISINES: Tuple[str, ...] = (
    "american",
    "mexican",
    "italian",
    "chinese",
    "japanese",
    "korean",
    "thai",
    "vietnamese",
    "indian",
    "mediterranean",
    "middle_eastern",
    "french",
    "caribbean",
    "soul_food",
)

CANONICAL_DIETARY_LABELS: Tuple[str, ...] = (
    "vegan",
    "vegetarian",
    "gluten_free",
    "dairy_free",
    "nut_free",
    "shellfish_free",
    "keto_friendly",
    "high_protein",
)

CANONICAL_RECIPE_TAGS: Tuple[str, ...] = (
    "breakfast",
    "meal",
    "dessert",
    "snack",
)

_SCHEMA_ORG_PREFIX = re.compile(r"^https?://(www\.)?schema\.org/", re.I)
_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")

CUISINE_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"soul\s*food"), "soul_food"),
    (re.compile(r"middle\s*eastern|middle\s*east|levant"), "middle_eastern"),
    (re.compile(r"mediterranean"), "mediterranean"),
    (re.compile(r"mexican|tex\s*mex"), "mexican"),
    (re.compile(r"italian"), "italian"),
    (re.compile(r"chinese"), "chinese"),
    (re.compile(r"japanese"), "japanese"),
    (re.compile(r"korean"), "korean"),
    (re.compile(r"thai"), "thai"),
    (re.compile(r"vietnamese|vietnam"), "vietnamese"),
    (re.compile(r"indian"), "indian"),
    (re.compile(r"french"), "french"),
    (
        re.compile(r"caribbean|jamaican|cuban|puerto\s*rican|haitian|trinidad|dominican|barbadian"),
        "caribbean",
    ),
    (re.compile(r"\bamerican\b|united\s*states|\busa\b|\bu\s*s\b"), "american"),
]

TAG_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"breakfast|brunch|morning"), "breakfast"),
    (re.compile(r"dessert|sweet|treat"), "dessert"),
    (re.compile(r"snack|appetizer|starter"), "snack"),
    (re.compile(r"lunch|dinner|supper|entree|main\s*course|main|meal"), "meal"),
]

_NEGATED_DIETARY = (
    "non veg",
    "nonveg",
    "non vegetarian",
    "nonvegetarian",
    "not vegetarian",
    "non vegan",
    "nonvegan",
    "not vegan",
)


def _contains_all(*words: str) -> Callable[[str], bool]:
    return lambda value: all(word in value for word in words)


def _contains_any(*words: str) -> Callable[[str], bool]:
    return lambda value: any(word in value for word in words)


DIETARY_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (_contains_any("vegan"), "vegan"),
    (_contains_any("vegetarian"), "vegetarian"),
    (_contains_all("gluten", "free"), "gluten_free"),
    (_contains_any("glutenfree"), "gluten_free"),
    (_contains_all("dairy", "free"), "dairy_free"),
    (_contains_any("dairyfree", "nondairy", "non dairy"), "dairy_free"),
    (_contains_all("lactose", "free"), "dairy_free"),
    (_contains_all("shellfish", "free"), "shellfish_free"),
    (_contains_any("shellfishfree", "no shellfish"), "shellfish_free"),
    (_contains_all("nut", "free"), "nut_free"),
    (_contains_any("nutfree"), "nut_free"),
    (_contains_any("keto", "ketogenic"), "keto_friendly"),
    (_contains_any("high protein", "highprotein", "protein rich"), "high_protein"),
]


def split_to_strings(value) -> List[str]:
    """Flatten strings, comma/newline separated strings and lists into trimmed items."""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        items: List[str] = []
        for entry in value:
            items.extend(split_to_strings(entry))
        return items
    if isinstance(value, str):
        return [item.strip() for item in re.split(r"[,\n]", value) if item.strip()]
    return []


def _base_candidate(value: str) -> str:
    candidate = _SCHEMA_ORG_PREFIX.sub("", value.strip())
    candidate = _CAMEL_BOUNDARY.sub(r"\1 \2", candidate)
    return re.sub(r"[/_-]+", " ", candidate)


def _alnum_candidate(value: str) -> str:
    candidate = re.sub(r"[^a-z0-9\s]", " ", _base_candidate(value), flags=re.I)
    return re.sub(r"\s+", " ", candidate).lower().strip()


def _dietary_candidate(value: str) -> str:
    candidate = re.sub(r"\s+", " ", _base_candidate(value)).lower()
    candidate = re.sub(r"\bdiet\b", "", candidate)
    return re.sub(r"\s+", " ", candidate).strip()


def _ordered(found: set, canonical: Sequence[str]) -> List[str]:
    return [item for item in canonical if item in found]


def normalize_cuisine_value(value: str) -> Optional[str]:
    candidate = _alnum_candidate(value)
    if not candidate:
        return None
    if "latin american" in candidate or "south american" in candidate:
        return None
    for pattern, cuisine in CUISINE_RULES:
        if pattern.search(candidate):
            return cuisine
    return None


def normalize_cuisine(value) -> Optional[str]:
    """Return the first candidate that maps to a canonical cuisine."""
    for item in split_to_strings(value):
        cuisine = normalize_cuisine_value(item)
        if cuisine:
            return cuisine
    return None


def normalize_dietary_label(value: str) -> Optional[str]:
    candidate = _dietary_candidate(value)
    if not candidate:
        return None
    if any(negated in candidate for negated in _NEGATED_DIETARY):
        return None
    for matches, label in DIETARY_RULES:
        if matches(candidate):
            return label
    return None


def normalize_dietary_labels(value) -> List[str]:
    labels = {normalize_dietary_label(item) for item in split_to_strings(value)}
    return _ordered(labels, CANONICAL_DIETARY_LABELS)


def normalize_recipe_tag(value: str) -> Optional[str]:
    candidate = _alnum_candidate(value)
    if not candidate:
        return None
    for pattern, tag in TAG_RULES:
        if pattern.search(candidate):
            return tag
    return None


def normalize_recipe_tags(value) -> List[str]:
    tags = {normalize_recipe_tag(item) for item in split_to_strings(value)}
    return _ordered(tags, CANONICAL_RECIPE_TAGS)
