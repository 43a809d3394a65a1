import logging
from typing import Dict, List, Optional, Sequence

from whateat_recipes.app.core.errors import ImportErrorCode, RecipeImportError
from whateat_recipes.app.services.llm_client import StructuredLLMClient
from whateat_recipes.app.services.url_parsing.html_fetcher import fetch_with_guards
from whateat_recipes.app.services.url_parsing.models import (
    AIFallbackAttempt,
    ExtractionAttempt,
    ImportPreviewResult,
)
from whateat_recipes.app.services.url_parsing.strategies import (
    ExtractionContext,
    ExtractionStrategy,
    build_default_strategies,
)

logger = logging.getLogger(__name__)


async def _run_strategy(strategy: ExtractionStrategy, context: ExtractionContext) -> ExtractionAttempt:
    try:
        return await strategy.extract(context)
    except Exception:  # noqa: BLE001
        logger.exception("Extraction tier %s crashed for %s", strategy.name, context.source_url)
        return ExtractionAttempt()


async def extract_recipe_from_url(
    url: str,
    llm_client: Optional[StructuredLLMClient] = None,
    strategies: Optional[Sequence[ExtractionStrategy]] = None,
) -> ImportPreviewResult:
    """Fetch ``url`` and run the extraction tiers in order until one yields a valid envelope.

    Fetch errors propagate unchanged. When every tier fails, raises
    ``IMPORT_MISSING_FIELDS`` if any tier reported missing fields, otherwise
    ``IMPORT_NO_RECIPE_FOUND``.
    """
    logger.info("Extracting recipe from %s", url)
    fetched = await fetch_with_guards(url)
    context = ExtractionContext(
        body=fetched.body,
        source_url=fetched.final_url or url,
        content_type=fetched.content_type,
    )
    tiers = list(strategies) if strategies is not None else build_default_strategies(llm_client)

    missing_fields: Dict[str, None] = {}
    ai_fallback: Optional[Dict[str, bool]] = None

    for strategy in tiers:
        if not strategy.applies(context):
            continue
        attempt = await _run_strategy(strategy, context)

        if attempt.text and context.ai_text is None:
            context.ai_text = attempt.text
        if attempt.envelope is not None:
            warnings: List[str] = [strategy.warning] if strategy.warning else []
            logger.info("Recipe extracted from %s via %s", context.source_url, strategy.name)
            return ImportPreviewResult(
                envelope=attempt.envelope,
                extracted_from=strategy.name,
                warnings=warnings,
            )

        logger.debug(
            "Tier %s found no recipe for %s (missing=%s)",
            strategy.name,
            context.source_url,
            attempt.missing_fields,
        )
        for field in attempt.missing_fields or []:
            missing_fields.setdefault(field, None)
        if isinstance(attempt, AIFallbackAttempt) and attempt.attempted:
            ai_fallback = {"attempted": True, "failed": attempt.failed}

    details = {"ai_fallback": ai_fallback} if ai_fallback else {}
    if missing_fields:
        raise RecipeImportError(
            "We could not find all required recipe fields on that page.",
            ImportErrorCode.MISSING_FIELDS,
            details={"missing_fields": list(missing_fields), **details},
        )
    raise RecipeImportError(
        "We could not find a recipe on that page.",
        ImportErrorCode.NO_RECIPE_FOUND,
        details=details or None,
    )
