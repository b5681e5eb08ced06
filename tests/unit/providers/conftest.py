"""Shared fixtures for provider adapter tests.

Adapters are exercised with their lazy httpx client patched out.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def mock_client() -> MagicMock:
    client = MagicMock()
    client.post = AsyncMock()
    return client
