"""
Pytest configuration and fixtures.
"""
import pytest
from unittest.mock import MagicMock

from src.core.config import EmbeddingConfig, VectorStoreConfig


SAMPLE_TRANSCRIPT = (
    "[09.09.23, 14:35:02] ~ john_doe: Hello world!\n"
    "[09.09.23, 14:36:10] ~ jane: how are you\n"
    "\n"
    "continuation line without prefix\n"
    "[09.09.23, 14:37:00] ~ john_doe: meet at 10:30?\n"
)


def make_response(status_code=200, json_data=None, text=""):
    """requests.Response stand-in"""
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if isinstance(json_data, Exception):
        resp.json.side_effect = json_data
    else:
        resp.json.return_value = json_data
    return resp


@pytest.fixture
def transcript_file(tmp_path):
    path = tmp_path / "en_files" / "en_chat.txt"
    path.parent.mkdir()
    path.write_text(SAMPLE_TRANSCRIPT, encoding="utf-8")
    return path


@pytest.fixture
def embedding_config():
    return EmbeddingConfig(api_key="sk-test", base_url="https://embed.test/v1", model="test-model")


@pytest.fixture
def store_config():
    return VectorStoreConfig(api_key="pc-test", environment="test-env", index_name="chat", dimension=3)


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def fake_embedding_client():
    client = MagicMock()
    client.model = "test-model"
    client.get_embedding.return_value = [0.1, 0.2, 0.3]
    return client
