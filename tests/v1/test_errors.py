# tests/v1/test_errors.py
"""Tests for the uniform ``{message}`` error envelope."""

from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from chirp.core.errors import (
    AuthError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
    register_exception_handlers,
)


def _error_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/not-found")
    async def not_found() -> None:
        raise NotFoundError("Post not found")

    @app.get("/external")
    async def external() -> None:
        raise ExternalServiceError()

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("something broke")

    @app.get("/typed/{number}")
    async def typed(number: int) -> dict[str, int]:
        return {"number": number}

    return app


def test_error_classes_carry_status_codes() -> None:
    assert ValidationError().status_code == status.HTTP_400_BAD_REQUEST
    assert ConflictError().status_code == status.HTTP_400_BAD_REQUEST
    assert AuthError().status_code == status.HTTP_401_UNAUTHORIZED
    assert NotFoundError().status_code == status.HTTP_404_NOT_FOUND
    assert ExternalServiceError().status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert AuthError("No token provided", status_code=403).status_code == 403


def test_chirp_error_renders_message() -> None:
    client = TestClient(_error_app())

    response = client.get("/not-found")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Post not found"}


def test_external_service_error_uses_default_message() -> None:
    client = TestClient(_error_app())

    response = client.get("/external")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"message": "External service unavailable"}


def test_unexpected_error_is_generic() -> None:
    client = TestClient(_error_app(), raise_server_exceptions=False)

    response = client.get("/boom")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"message": "Internal server error"}


def test_request_validation_is_bad_request() -> None:
    client = TestClient(_error_app())

    response = client.get("/typed/abc")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"].startswith("number:")


def test_unknown_route_uses_envelope(client) -> None:
    response = client.get("/api/does-not-exist")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Not Found"}


def test_wrong_method_uses_envelope(client, auth_token) -> None:
    response = client.get("/api/post/1/likes", headers=auth_token)

    assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
    assert response.json() == {"message": "Method Not Allowed"}
