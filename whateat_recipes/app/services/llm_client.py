import asyncio
import json
import logging
import re
from typing import Any, Dict, Optional, Protocol

import httpx

from whateat_recipes.app.core.config import Settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {408, 409, 429, 500, 502, 503, 504}


class LLMProviderError(Exception):
    """Error returned by the chat completions provider."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        type: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.type = type
        self.request_id = request_id

    def details(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "code": self.code,
            "type": self.type,
            "request_id": self.request_id,
            "message": self.message,
        }


class StructuredLLMClient(Protocol):
    model: str

    async def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: Dict[str, Any],
    ) -> Dict[str, Any]:
        ...


def _parse_llm_json_content(raw: str) -> dict:
    """Parse LLM content into JSON, handling common formatting issues."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            cleaned = re.sub(r"^```[a-zA-Z0-9_-]*", "", cleaned).strip()
            if cleaned.endswith("```"):
                cleaned = cleaned[:-3].strip()

        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start != -1 and end != -1 and end > start:
            try:
                return json.loads(cleaned[start : end + 1])
            except json.JSONDecodeError:
                pass
    raise ValueError("LLM response was not valid JSON")


def _provider_error(resp: httpx.Response) -> LLMProviderError:
    code = None
    error_type = None
    message = f"LLM request failed with status {resp.status_code}"
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        error_info = data["error"]
        code = error_info.get("code")
        error_type = error_info.get("type")
        message = error_info.get("message") or message
    return LLMProviderError(
        message,
        status=resp.status_code,
        code=code,
        type=error_type,
        request_id=resp.headers.get("x-request-id"),
    )


class ChatCompletionsClient:
    """OpenAI-compatible ``/chat/completions`` client returning schema-constrained JSON."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        max_completion_tokens: int = 4000,
        timeout_seconds: float = 60.0,
        max_retries: int = 2,
        retry_backoff_seconds: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_completion_tokens = max_completion_tokens
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_backoff_seconds = retry_backoff_seconds
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        timeout = httpx.Timeout(self.timeout_seconds, connect=10.0)
        attempt = 0
        while True:
            try:
                async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                    resp = await client.post(
                        f"{self.base_url}/chat/completions",
                        json=payload,
                        headers=self._headers(),
                    )
            except httpx.TransportError as exc:
                if attempt >= self.max_retries:
                    raise LLMProviderError(f"LLM request failed: {exc}") from exc
                logger.warning("LLM transport error (attempt %d): %s", attempt + 1, exc)
            else:
                if resp.status_code < 400:
                    return resp
                if resp.status_code not in RETRYABLE_STATUS_CODES or attempt >= self.max_retries:
                    raise _provider_error(resp)
                logger.warning("LLM request returned %s (attempt %d), retrying", resp.status_code, attempt + 1)

            await asyncio.sleep(self.retry_backoff_seconds * (2**attempt))
            attempt += 1

    async def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: Dict[str, Any],
    ) -> Dict[str, Any]:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": schema_name, "strict": True, "schema": schema},
            },
            "max_completion_tokens": self.max_completion_tokens,
        }
        resp = await self._post(payload)
        data = resp.json()

        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            error_info = data["error"]
            raise LLMProviderError(
                error_info.get("message", "Unknown error"),
                status=resp.status_code,
                code=error_info.get("code"),
                type=error_info.get("type"),
                request_id=resp.headers.get("x-request-id"),
            )

        content = (data.get("choices") or [{}])[0].get("message", {}).get("content")
        if not content:
            raise ValueError("LLM response missing content")
        logger.info("LLM response received (%d chars)", len(content))
        return _parse_llm_json_content(content)


def build_llm_client(settings: Settings) -> Optional[ChatCompletionsClient]:
    if not settings.openai_api_key:
        logger.info("OPENAI_API_KEY is not set; AI extraction disabled")
        return None
    return ChatCompletionsClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        max_completion_tokens=settings.openai_max_completion_tokens,
        timeout_seconds=settings.openai_timeout_seconds,
        max_retries=settings.openai_max_retries,
    )
