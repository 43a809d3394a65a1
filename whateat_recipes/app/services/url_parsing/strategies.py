"""Extraction tiers, tried in order by the URL import orchestrator."""

from dataclasses import dataclass
from typing import List, Optional

from whateat_recipes.app.services.llm_client import StructuredLLMClient
from whateat_recipes.app.services.url_parsing.extractors.chat_share import (
    extract_recipe_from_chat_share,
    is_chat_share_url,
)
from whateat_recipes.app.services.url_parsing.extractors.heuristic import extract_recipe_heuristic
from whateat_recipes.app.services.url_parsing.extractors.llm import extract_recipe_via_llm
from whateat_recipes.app.services.url_parsing.extractors.readability import extract_recipe_via_readability
from whateat_recipes.app.services.url_parsing.extractors.schema_org import extract_recipe_from_schema_org
from whateat_recipes.app.services.url_parsing.models import ExtractionAttempt


@dataclass
class ExtractionContext:
    body: str
    source_url: str
    content_type: Optional[str] = None
    # first text recovered by an earlier tier, handed to the AI tier
    ai_text: Optional[str] = None


class ExtractionStrategy:
    name: str = ""
    warning: Optional[str] = None

    def applies(self, context: ExtractionContext) -> bool:
        return True

    async def extract(self, context: ExtractionContext) -> ExtractionAttempt:
        raise NotImplementedError


class ChatShareStrategy(ExtractionStrategy):
    name = "chatgpt"

    def applies(self, context: ExtractionContext) -> bool:
        return is_chat_share_url(context.source_url)

    async def extract(self, context: ExtractionContext) -> ExtractionAttempt:
        return extract_recipe_from_chat_share(context.body, context.source_url)


class JsonLdStrategy(ExtractionStrategy):
    name = "jsonld"

    async def extract(self, context: ExtractionContext) -> ExtractionAttempt:
        return extract_recipe_from_schema_org(context.body, context.source_url, context.content_type)


class ReadabilityStrategy(ExtractionStrategy):
    name = "readability"
    warning = "Used readability extraction"

    async def extract(self, context: ExtractionContext) -> ExtractionAttempt:
        return extract_recipe_via_readability(context.body, context.source_url)


class HeuristicStrategy(ExtractionStrategy):
    name = "heuristic"
    warning = "Used heuristic extraction"

    async def extract(self, context: ExtractionContext) -> ExtractionAttempt:
        return extract_recipe_heuristic(context.body, context.source_url)


class AIStrategy(ExtractionStrategy):
    name = "ai"
    warning = "Used AI extraction"

    def __init__(self, llm_client: Optional[StructuredLLMClient]) -> None:
        self.llm_client = llm_client

    async def extract(self, context: ExtractionContext) -> ExtractionAttempt:
        return await extract_recipe_via_llm(
            context.body,
            context.source_url,
            text_override=context.ai_text,
            llm_client=self.llm_client,
        )


def build_default_strategies(llm_client: Optional[StructuredLLMClient] = None) -> List[ExtractionStrategy]:
    return [
        ChatShareStrategy(),
        JsonLdStrategy(),
        ReadabilityStrategy(),
        HeuristicStrategy(),
        AIStrategy(llm_client),
    ]
