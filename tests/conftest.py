from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from relay.config import Settings
from relay.context.context_builder import ContextBuilder
from relay.context.user_facts import UserFactStore
from relay.conversation.exchange_store import ExchangeStore
from relay.conversation.manager import ConversationManager
from relay.llm.client import OllamaClient
from relay.main import app
from relay.services import build_services


def make_ollama_response(content: str | None = "Mock reply") -> MagicMock:
    """A fake httpx response for POST /api/chat. content=None drops the message payload."""
    response = MagicMock()
    response.status_code = 200
    response.raise_for_status = MagicMock()
    if content is None:
        response.json.return_value = {"done": True}
    else:
        response.json.return_value = {"message": {"role": "assistant", "content": content}}
    return response


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        ollama_base_url="http://localhost:11434",
        ollama_model="test-model",
        data_dir=str(tmp_path / "conversations"),
        prompt_path=str(tmp_path / "prompt.txt"),
        system_prompt="You are a test friend.",
        retry_delay=0.0,
        log_file=str(tmp_path / "relay.log"),
    )


@pytest.fixture
def exchange_store(tmp_path) -> ExchangeStore:
    return ExchangeStore(data_dir=str(tmp_path / "conversations"))


@pytest.fixture
def fact_store(tmp_path) -> UserFactStore:
    return UserFactStore(data_dir=str(tmp_path / "conversations"))


@pytest.fixture
def context_builder(exchange_store, fact_store) -> ContextBuilder:
    return ContextBuilder(exchange_store, fact_store, max_turns=10)


@pytest.fixture
def conversation_manager(exchange_store, fact_store) -> ConversationManager:
    return ConversationManager(exchange_store, fact_store, max_turns=10)


@pytest.fixture
def mock_http() -> AsyncMock:
    mock_http = AsyncMock()
    mock_http.post = AsyncMock(return_value=make_ollama_response())
    mock_http.get = AsyncMock()
    return mock_http


@pytest.fixture
def ollama_client(mock_http) -> OllamaClient:
    return OllamaClient(http_client=mock_http, base_url="http://localhost:11434", model="test-model")


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def services(settings, mock_http, sleep):
    return build_services(settings, mock_http, sleep=sleep)


@pytest.fixture
def client(services) -> TestClient:
    app.state.settings = services.settings
    app.state.services = services
    return TestClient(app, raise_server_exceptions=False)
