"""
Configuration for fin-chat.

Settings come from the process environment, optionally seeded from a .env
file. API keys have no defaults and must be supplied by the operator.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv


SUPPORTED_METRICS = ("cosine", "euclidean", "dotproduct")
SUPPORTED_LANGUAGES = ("en", "he")

DEFAULTS = {
    "OPENAI_BASE_URL": "https://api.openai.com/v1",
    "EMBEDDING_MODEL": "text-embedding-ada-002",
    "PINECONE_ENVIRONMENT": "gcp-starter",
    "PINECONE_DOMAIN": "pinecone.io",
    "PINECONE_INDEX": "whatsapp-chat",
    # ada-002 returns 1536 values per vector
    "INDEX_DIMENSION": "1536",
    "INDEX_METRIC": "cosine",
    "TOP_K": "1",
    "MAX_RETRIES": "0",
    "UPSERT_BATCH_SIZE": "1",
    "DATA_DIR": ".",
    "LOG_FILE": "err.log",
}


class ConfigError(Exception):
    """Raised when a setting is missing or invalid."""


@dataclass
class EmbeddingConfig:
    api_key: Optional[str] = None
    base_url: str = DEFAULTS["OPENAI_BASE_URL"]
    model: str = DEFAULTS["EMBEDDING_MODEL"]
    max_retries: int = 0

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigError("OPENAI_API_KEY is not set")
        return self.api_key


@dataclass
class VectorStoreConfig:
    api_key: Optional[str] = None
    environment: str = DEFAULTS["PINECONE_ENVIRONMENT"]
    domain: str = DEFAULTS["PINECONE_DOMAIN"]
    base_url: Optional[str] = None
    index_name: str = DEFAULTS["PINECONE_INDEX"]
    dimension: int = 1536
    metric: str = "cosine"
    top_k: int = 1
    max_retries: int = 0
    upsert_batch_size: int = 1

    def __post_init__(self):
        if self.metric not in SUPPORTED_METRICS:
            raise ConfigError(
                f"unsupported metric {self.metric!r} (choices: {', '.join(SUPPORTED_METRICS)})"
            )
        for name in ("dimension", "top_k", "upsert_batch_size"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must not be negative, got {self.max_retries}")

    @property
    def controller_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        return f"https://controller.{self.environment}.{self.domain}"

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigError("PINECONE_API_KEY is not set")
        return self.api_key


@dataclass
class AppConfig:
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    data_dir: Path = Path(".")
    log_file: str = DEFAULTS["LOG_FILE"]

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """
        Build config from environment variables.

        Args:
            env_file: optional .env file loaded first (does not override real env)
            environ: mapping to read instead of os.environ (tests)
        """
        if environ is None:
            if env_file:
                load_dotenv(env_file, override=False)
            else:
                load_dotenv(override=False)
            environ = os.environ

        def get(key: str) -> Optional[str]:
            value = environ.get(key)
            if value is None or value == "":
                return DEFAULTS.get(key)
            return value

        max_retries = _to_int(get("MAX_RETRIES"), "MAX_RETRIES")

        embedding = EmbeddingConfig(
            api_key=environ.get("OPENAI_API_KEY") or None,
            base_url=get("OPENAI_BASE_URL"),
            model=get("EMBEDDING_MODEL"),
            max_retries=max_retries,
        )
        vector_store = VectorStoreConfig(
            api_key=environ.get("PINECONE_API_KEY") or None,
            environment=get("PINECONE_ENVIRONMENT"),
            domain=get("PINECONE_DOMAIN"),
            base_url=get("PINECONE_CONTROLLER_URL"),
            index_name=get("PINECONE_INDEX"),
            dimension=_to_int(get("INDEX_DIMENSION"), "INDEX_DIMENSION"),
            metric=get("INDEX_METRIC").lower(),
            top_k=_to_int(get("TOP_K"), "TOP_K"),
            max_retries=max_retries,
            upsert_batch_size=_to_int(get("UPSERT_BATCH_SIZE"), "UPSERT_BATCH_SIZE"),
        )
        return cls(
            embedding=embedding,
            vector_store=vector_store,
            data_dir=Path(get("DATA_DIR")),
            log_file=get("LOG_FILE"),
        )


def _to_int(value: Optional[str], name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"invalid integer value for {name}: {value}")


def language_paths(lang: str, data_dir: Path = Path(".")) -> Dict[str, Path]:
    """
    Get the transcript and embeddings file pair for a language code.

    Transcript lines look like: [09.09.23, 14:35:02] ~ john_doe: Hello world!
    The embeddings file holds one comma-separated vector per line.
    """
    code = (lang or "").strip().lower()
    if code not in SUPPORTED_LANGUAGES:
        raise ConfigError(
            f"unknown language {lang!r}, please specify {' or '.join(SUPPORTED_LANGUAGES)}"
        )
    lang_dir = Path(data_dir) / f"{code}_files"
    return {
        "chat_file": lang_dir / f"{code}_chat.txt",
        "embeddings_file": lang_dir / f"{code}_embeddings.csv",
    }
