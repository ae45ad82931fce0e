"""
Tests for configuration loading.
"""

import pytest
from pathlib import Path
from unittest.mock import patch

from src.core.config import (
    AppConfig, ConfigError, EmbeddingConfig, VectorStoreConfig, language_paths,
)


class TestAppConfig:
    def test_defaults(self):
        config = AppConfig.from_env(environ={})
        assert config.embedding.model == "text-embedding-ada-002"
        assert config.embedding.api_key is None
        assert config.embedding.max_retries == 0
        assert config.vector_store.dimension == 1536
        assert config.vector_store.metric == "cosine"
        assert config.vector_store.top_k == 1
        assert config.vector_store.index_name == "whatsapp-chat"
        assert config.vector_store.controller_url == "https://controller.gcp-starter.pinecone.io"
        assert config.log_file == "err.log"

    def test_overrides(self):
        config = AppConfig.from_env(environ={
            "OPENAI_API_KEY": "sk-env",
            "PINECONE_API_KEY": "pc-env",
            "PINECONE_ENVIRONMENT": "us-east1-gcp",
            "INDEX_METRIC": "DotProduct",
            "TOP_K": "5",
            "MAX_RETRIES": "3",
            "DATA_DIR": "/data",
        })
        assert config.embedding.api_key == "sk-env"
        assert config.embedding.max_retries == 3
        assert config.vector_store.api_key == "pc-env"
        assert config.vector_store.metric == "dotproduct"
        assert config.vector_store.top_k == 5
        assert config.vector_store.controller_url == "https://controller.us-east1-gcp.pinecone.io"
        assert config.data_dir == Path("/data")

    def test_controller_url_override(self):
        config = AppConfig.from_env(environ={"PINECONE_CONTROLLER_URL": "http://localhost:8080/"})
        assert config.vector_store.controller_url == "http://localhost:8080"

    def test_invalid_integer(self):
        with pytest.raises(ConfigError, match="TOP_K"):
            AppConfig.from_env(environ={"TOP_K": "many"})

    def test_env_file_loaded(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("EMBEDDING_MODEL=from-dotenv\n")
        with patch.dict("os.environ", {}, clear=True):
            config = AppConfig.from_env(str(env_file))
        assert config.embedding.model == "from-dotenv"


class TestValidation:
    def test_unsupported_metric(self):
        with pytest.raises(ConfigError, match="metric"):
            VectorStoreConfig(metric="manhattan")

    def test_non_positive_dimension(self):
        with pytest.raises(ConfigError):
            VectorStoreConfig(dimension=0)

    def test_missing_keys(self):
        with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
            EmbeddingConfig().require_api_key()
        with pytest.raises(ConfigError, match="PINECONE_API_KEY"):
            VectorStoreConfig().require_api_key()


class TestLanguagePaths:
    def test_english(self):
        paths = language_paths("en", Path("/data"))
        assert paths["chat_file"] == Path("/data/en_files/en_chat.txt")
        assert paths["embeddings_file"] == Path("/data/en_files/en_embeddings.csv")

    def test_hebrew_case_insensitive(self):
        paths = language_paths(" HE ")
        assert paths["chat_file"] == Path("he_files/he_chat.txt")

    def test_unknown_language(self):
        with pytest.raises(ConfigError, match="unknown language"):
            language_paths("fr")
