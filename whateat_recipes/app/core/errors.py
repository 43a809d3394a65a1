"""Application error types rendered by the API exception handler."""

from enum import Enum
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base error carrying an HTTP status, a machine code and optional details."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code, **self.details}


class BadRequestError(AppError):
    status_code = 400
    code = "BAD_REQUEST"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")


class RateLimitError(AppError):
    status_code = 429
    code = "RATE_LIMITED"


class ImportErrorCode(str, Enum):
    INVALID_URL = "IMPORT_INVALID_URL"
    URL_BLOCKED = "IMPORT_URL_BLOCKED"
    FETCH_FAILED = "IMPORT_FETCH_FAILED"
    UNSUPPORTED_CONTENT = "IMPORT_UNSUPPORTED_CONTENT"
    CONTENT_TOO_LARGE = "IMPORT_CONTENT_TOO_LARGE"
    TOO_MANY_REDIRECTS = "IMPORT_TOO_MANY_REDIRECTS"
    MISSING_FIELDS = "IMPORT_MISSING_FIELDS"
    NO_RECIPE_FOUND = "IMPORT_NO_RECIPE_FOUND"


IMPORT_ERROR_STATUS: Dict[ImportErrorCode, int] = {
    ImportErrorCode.INVALID_URL: 400,
    ImportErrorCode.URL_BLOCKED: 400,
    ImportErrorCode.FETCH_FAILED: 502,
    ImportErrorCode.UNSUPPORTED_CONTENT: 415,
    ImportErrorCode.CONTENT_TOO_LARGE: 413,
    ImportErrorCode.TOO_MANY_REDIRECTS: 400,
    ImportErrorCode.MISSING_FIELDS: 422,
    ImportErrorCode.NO_RECIPE_FOUND: 422,
}


class RecipeImportError(AppError):
    """Typed failure of the URL import pipeline."""

    def __init__(
        self,
        message: str,
        code: ImportErrorCode,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code.value, status_code=IMPORT_ERROR_STATUS[code], details=details)
        self.import_code = code
