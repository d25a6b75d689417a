"""Shared test fixtures."""

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.main import create_app


@pytest.fixture
def app() -> FastAPI:
    """Fresh application (lifespan not started: no Cassandra or Redis)."""
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """Test client without lifespan, so startup never connects to storage."""
    yield TestClient(app, raise_server_exceptions=False)
