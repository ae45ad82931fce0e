import pytest
from unittest.mock import MagicMock

from src.core.embedding import EmbeddingError
from src.core.search import MessageSearch, format_match, run_query_loop
from src.storage.vector_store import QueryMatch, VectorStoreError


@pytest.fixture
def vector_store():
    store = MagicMock()
    store.query.return_value = [QueryMatch(id="vector_id_4", score=0.87, values=[0.1, 0.2, 0.3])]
    return store


@pytest.fixture
def search(fake_embedding_client, vector_store):
    return MessageSearch(fake_embedding_client, vector_store, top_k=1)


def _inputs(*values):
    it = iter(values)

    def fake_input(prompt):
        try:
            return next(it)
        except StopIteration:
            raise EOFError
    return fake_input


def test_search_embeds_then_queries(search, fake_embedding_client, vector_store):
    matches = search.search("hello")
    fake_embedding_client.get_embedding.assert_called_once_with("hello")
    vector_store.query.assert_called_once_with([0.1, 0.2, 0.3], top_k=1)
    assert matches[0].id == "vector_id_4"


@pytest.mark.parametrize("token", ["end", "END", "  End  "])
def test_end_exits_without_network(search, fake_embedding_client, vector_store, token):
    output = MagicMock()
    answered = run_query_loop(search, input_fn=_inputs(token, "never read"), output=output)

    assert answered == 0
    fake_embedding_client.get_embedding.assert_not_called()
    vector_store.query.assert_not_called()


def test_eof_exits(search):
    assert run_query_loop(search, input_fn=_inputs(), output=MagicMock()) == 0


def test_answers_until_end(search, vector_store):
    output = MagicMock()
    answered = run_query_loop(search, input_fn=_inputs("hi", "", "there", "end"), output=output)

    assert answered == 2
    assert vector_store.query.call_count == 2
    printed = " ".join(str(c.args[0]) for c in output.call_args_list)
    assert "id=vector_id_4" in printed


def test_errors_do_not_stop_loop(search, fake_embedding_client, vector_store):
    fake_embedding_client.get_embedding.side_effect = [EmbeddingError("down"), [1.0], [1.0]]
    vector_store.query.side_effect = [VectorStoreError("fetch failed"), []]
    output = MagicMock()

    answered = run_query_loop(search, input_fn=_inputs("a", "b", "c", "end"), output=output)

    assert answered == 1
    printed = [str(c.args[0]) for c in output.call_args_list]
    assert any("Error embedding query" in p for p in printed)
    assert any("Error querying vector store" in p for p in printed)
    assert "No matches found." in printed


def test_missing_values_reported(search, vector_store):
    vector_store.query.return_value = [QueryMatch(id="x", score=0.5)]
    output = MagicMock()
    run_query_loop(search, input_fn=_inputs("q", "end"), output=output)
    printed = [str(c.args[0]) for c in output.call_args_list]
    assert "No vector content for ID x" in printed


def test_format_match():
    match = QueryMatch(id="v1", score=0.5, values=[0.1] * 7, metadata={"text": "Hello world!"})
    line = format_match(match)
    assert line.startswith("id=v1 score=0.5000 dim=7")
    assert line.count("0.100000") == 5
    assert "..." in line
    assert "text: Hello world!" in line
