"""Shared test fixtures."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from services.coach.completion import CoachCompletionClient
from services.coach.config import CoachConfig
from utils.database_init import AsyncDatabaseInitializer


@pytest.fixture
def coach_config(tmp_path: Path) -> CoachConfig:
    """Configured coach settings with pacing disabled.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        CoachConfig pointing its database at tmp_path
    """
    return CoachConfig(api_key="test-key", bubble_delay_ms=0, database_dir=tmp_path / "db")


@pytest.fixture
def mock_openai_client() -> MagicMock:
    """AsyncOpenAI stand-in whose responses/images calls are AsyncMocks."""
    client = MagicMock()
    client.responses.create = AsyncMock()
    client.images.edit = AsyncMock()
    client.close = AsyncMock()
    return client


@pytest.fixture
def completion_client(mock_openai_client: MagicMock, coach_config: CoachConfig) -> CoachCompletionClient:
    return CoachCompletionClient(mock_openai_client, model=coach_config.model, generation=coach_config.generation)


@pytest.fixture
def db_initializer(tmp_path: Path) -> AsyncDatabaseInitializer:
    return AsyncDatabaseInitializer(tmp_path / "db")
