# src/core/embedding.py

from typing import List, Optional

import openai
from openai import OpenAI

from src.core.config import EmbeddingConfig
from src.core.syslog2 import *


class EmbeddingError(Exception):
    """Raised when the embedding service gives no usable vector."""


class EmbeddingClient:
    """client for generating text embeddings using an openai-compatible api, one text per call"""

    def __init__(self, config: EmbeddingConfig, client: Optional[OpenAI] = None):
        self.config = config
        self.model = config.model
        self.client = client or OpenAI(
            api_key=config.require_api_key(),
            base_url=config.base_url,
            max_retries=config.max_retries,
        )

    def get_embedding(self, text: str) -> List[float]:
        """
        Single api call for one text.

        Newlines are collapsed to spaces before sending. The request body is
        {"input": [text], "model": model}.

        Raises:
            EmbeddingError: transport failure, undecodable response or no vector
        """
        cleaned = text.replace("\n", " ")
        try:
            resp = self.client.embeddings.create(input=[cleaned], model=self.model)
        except openai.OpenAIError as e:
            raise EmbeddingError(f"embedding request failed: {e}") from e
        except ValueError as e:
            # json decode errors from a malformed body
            raise EmbeddingError(f"could not decode embedding response: {e}") from e

        data = getattr(resp, "data", None)
        if not data or not data[0].embedding:
            raise EmbeddingError("no data in response")

        embedding = list(data[0].embedding)
        syslog2(LOG_DEBUG, "embedding received", model=self.model, dimension=len(embedding))
        return embedding
