"""Tests for API error handlers."""

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from llm_talk.api.error_handlers import register_error_handlers, status_code_for
from llm_talk.core.config import Settings
from llm_talk.core.exceptions import (
    AlreadyProcessingError,
    PersistenceError,
    ProviderUnavailableError,
    SessionNotFoundError,
    SessionValidationError,
)


def _app(environment: str) -> FastAPI:
    app = FastAPI()
    app.state.settings = Settings(_env_file=None, environment=environment)
    register_error_handlers(app)

    @app.get("/persist")
    async def persist() -> None:
        raise PersistenceError("Failed to persist message", "append_message", RuntimeError("disk full"), "s1")

    @app.get("/busy")
    async def busy() -> None:
        raise AlreadyProcessingError("s1")

    @app.get("/crash")
    async def crash() -> None:
        raise RuntimeError("unexpected")

    return app


@pytest.fixture
def dev_client() -> Iterator[TestClient]:
    with TestClient(_app("development"), raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def prod_client() -> Iterator[TestClient]:
    with TestClient(_app("production"), raise_server_exceptions=False) as client:
        yield client


class TestStatusCodeFor:
    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (SessionValidationError("bad", field="topic"), 400),
            (ProviderUnavailableError("gemini"), 400),
            (SessionNotFoundError("s1"), 404),
            (AlreadyProcessingError("s1"), 500),
            (PersistenceError("x", "append_message"), 500),
        ],
    )
    def test_mapping(self, error: Exception, status: int) -> None:
        assert status_code_for(error) == status


class TestHandlers:
    def test_cause_exposed_outside_production(self, dev_client: TestClient) -> None:
        data = dev_client.get("/persist").json()

        assert data["error"] == "PersistenceError"
        assert data["code"] == "PERSISTENCE_ERROR"
        assert "disk full" in data["cause"]
        assert data["path"] == "/persist"

    def test_cause_hidden_in_production(self, prod_client: TestClient) -> None:
        data = prod_client.get("/persist").json()

        assert data["cause"] is None

    def test_busy_is_retryable(self, dev_client: TestClient) -> None:
        response = dev_client.get("/busy")

        assert response.status_code == 500
        assert response.json()["retryable"] is True
        assert response.json()["code"] == "ALREADY_PROCESSING"

    def test_unhandled_exception(self, prod_client: TestClient) -> None:
        response = prod_client.get("/crash")

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
        assert response.json()["cause"] is None
