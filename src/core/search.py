# src/core/search.py

from typing import Callable, List, Optional

from src.core.embedding import EmbeddingClient, EmbeddingError
from src.core.syslog2 import *
from src.storage.vector_store import QueryMatch, VectorStore, VectorStoreError

EXIT_TOKEN = "end"
PROMPT = "Please enter a message to search for (or type 'end' to exit): "
PREVIEW_VALUES = 5


class MessageSearch:
    """query text -> embedding -> nearest stored vectors"""

    def __init__(self, embedding_client: EmbeddingClient, vector_store: VectorStore, top_k: Optional[int] = None):
        self.embedding_client = embedding_client
        self.vector_store = vector_store
        self.top_k = top_k

    def search(self, text: str) -> List[QueryMatch]:
        """
        Raises:
            EmbeddingError: the query text could not be embedded
            VectorStoreError: the query or a fetch failed
        """
        vector = self.embedding_client.get_embedding(text)
        return self.vector_store.query(vector, top_k=self.top_k)


def format_match(match: QueryMatch) -> str:
    preview = ", ".join(f"{v:f}" for v in match.values[:PREVIEW_VALUES])
    if len(match.values) > PREVIEW_VALUES:
        preview += ", ..."
    line = f"id={match.id} score={match.score:.4f} dim={len(match.values)} values=[{preview}]"
    if match.metadata and match.metadata.get("text"):
        line += f"\n  text: {match.metadata['text']}"
    return line


def run_query_loop(
    search: MessageSearch,
    input_fn: Callable[[str], str] = input,
    output: Callable[[str], None] = print,
) -> int:
    """
    Prompt for queries until 'end' (any case) or end of input.

    Every per-query failure is logged and reported, then the loop asks for
    the next query. Fetch failures are treated like the rest.

    Returns:
        number of queries answered
    """
    answered = 0
    while True:
        try:
            text = input_fn(PROMPT)
        except EOFError:
            syslog2(LOG_NOTICE, "input closed, leaving query loop")
            break

        text = text.strip()
        if text.lower() == EXIT_TOKEN:
            output("You typed end. Leaving the query loop.")
            break
        if not text:
            continue

        try:
            matches = search.search(text)
        except EmbeddingError as e:
            syslog2(LOG_ERR, "error embedding query message", query=text, error=str(e))
            output(f"Error embedding query: {e}")
            continue
        except VectorStoreError as e:
            syslog2(LOG_ERR, "error querying vector store", query=text, error=str(e))
            output(f"Error querying vector store: {e}")
            continue

        answered += 1
        if not matches:
            output("No matches found.")
            continue
        for match in matches:
            if not match.values:
                output(f"No vector content for ID {match.id}")
            output(format_match(match))

    return answered
