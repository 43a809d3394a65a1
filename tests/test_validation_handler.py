import json

import pytest
from fastapi.exceptions import RequestValidationError

from whateat_recipes.app.main import validation_exception_handler


@pytest.mark.asyncio
async def test_validation_handler_formats_errors():
    exc = RequestValidationError(
        errors=[
            {"loc": ("body", "url"), "msg": "field required"},
            {"loc": ("query", "page"), "msg": "value is not a valid integer"},
        ]
    )
    response = await validation_exception_handler(None, exc)
    assert response.status_code == 422
    body = json.loads(response.body)
    assert body["error_code"] == "validation_error"
    assert body["message"] == "Invalid request payload."
    assert "request_id" in body and body["request_id"]
    assert {"field": "body.url", "message": "field required"} in body["details"]
    assert {"field": "query.page", "message": "value is not a valid integer"} in body["details"]


def test_invalid_body_uses_handler(client, user_token):
    response = client.post("/import/url", json={}, headers={"Authorization": f"Bearer {user_token}"})
    assert response.status_code == 422
    body = response.json()
    assert body["error_code"] == "validation_error"
    assert body["details"][0]["field"] == "body.url"
