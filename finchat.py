#!/usr/bin/env python3
"""
fin-chat - unified CLI orchestrator

Embeds chat transcripts, upserts the vectors into the remote vector
database and searches them interactively.
"""

import sys
from types import SimpleNamespace
from typing import Callable, List, Optional

from src.core.cli_parser import CommandParser, CommandSpec, CLIError, CLIHelp
from src.core.config import AppConfig, ConfigError, language_paths, SUPPORTED_LANGUAGES
from src.core.embedding import EmbeddingClient
from src.core.search import MessageSearch, run_query_loop
from src.core.syslog2 import *
from src.ingestion.pipeline import EmbeddingPipeline
from src.storage.csv_sink import resolve_embeddings_file
from src.storage.vector_store import VectorStore, VectorStoreError


COMMANDS = [
    CommandSpec("embed", "parse the transcript and write one embedding per message to a csv"),
    CommandSpec("upsert", "create the index if needed and upload the latest embeddings csv"),
    CommandSpec("query", "search the index interactively, type 'end' to leave"),
]


class ActionFailed(Exception):
    """A top-level action could not complete; the remaining actions are skipped."""


class Runner:
    """Runs actions against one language's file pair, sharing clients between them."""

    def __init__(self, config: AppConfig, lang: str, top_k: Optional[int] = None,
                 batch_size: Optional[int] = None, input_fn: Callable[[str], str] = input):
        self.config = config
        self.lang = lang
        self.paths = language_paths(lang, config.data_dir)
        self.top_k = top_k
        self.batch_size = batch_size
        self.input_fn = input_fn
        self._embedding_client: Optional[EmbeddingClient] = None
        self._vector_store: Optional[VectorStore] = None

    @property
    def embedding_client(self) -> EmbeddingClient:
        if self._embedding_client is None:
            self._embedding_client = EmbeddingClient(self.config.embedding)
        return self._embedding_client

    @property
    def vector_store(self) -> VectorStore:
        if self._vector_store is None:
            self._vector_store = VectorStore(self.config.vector_store)
        return self._vector_store

    def embed(self):
        pipeline = EmbeddingPipeline(self.embedding_client)
        try:
            return pipeline.run(self.paths["chat_file"], self.paths["embeddings_file"])
        except OSError as e:
            raise ActionFailed(f"error creating embedding file: {e}") from e

    def upsert(self):
        source = resolve_embeddings_file(self.paths["embeddings_file"])
        try:
            self.vector_store.ensure_collection()
        except VectorStoreError as e:
            raise ActionFailed(f"error ensuring index exists: {e}") from e
        try:
            return self.vector_store.upsert_from_file(source, batch_size=self.batch_size)
        except (OSError, VectorStoreError) as e:
            raise ActionFailed(f"failed upserting data: {e}") from e

    def query(self):
        # resolve the project up front, a broken control plane aborts the action
        try:
            self.vector_store.get_project_id()
        except VectorStoreError as e:
            raise ActionFailed(f"error in the query process: {e}") from e
        search = MessageSearch(self.embedding_client, self.vector_store, top_k=self.top_k)
        return run_query_loop(search, input_fn=self.input_fn)

    def run(self, action: str):
        if action not in {spec.name for spec in COMMANDS}:
            raise ActionFailed(f"unknown action: {action}")
        syslog2(LOG_INFO, "running action", action=action, lang=self.lang)
        return getattr(self, action)()


def prompt_arguments(parser: CommandParser, input_fn: Callable[[str], str] = input) -> SimpleNamespace:
    """Interactive mode: ask for the actions, then for the language."""
    actions = parser.parse_actions(input_fn("What is the action? Options are: embed/upsert/query\n"))
    lang = input_fn(f"Choose language ({'/'.join(SUPPORTED_LANGUAGES)}): ").strip().lower()
    return SimpleNamespace(actions=actions, lang=lang, log_level=None, top_k=None,
                           batch_size=None, env_file=None)


def parse_arguments(argv: List[str], parser: CommandParser,
                    input_fn: Callable[[str], str] = input) -> SimpleNamespace:
    if not argv:
        return prompt_arguments(parser, input_fn)
    actions, options = parser.parse(argv)
    options.actions = actions
    if options.lang is None:
        options.lang = input_fn(f"Choose language ({'/'.join(SUPPORTED_LANGUAGES)}): ").strip().lower()
    return options


def main(argv: Optional[List[str]] = None, input_fn: Callable[[str], str] = input) -> int:
    """Main CLI entry point."""
    argv = sys.argv[1:] if argv is None else argv

    setup_log(LOG_NOTICE)
    parser = CommandParser(COMMANDS, languages=SUPPORTED_LANGUAGES)

    try:
        args = parse_arguments(argv, parser, input_fn)
        syslog_level = parse_log_level(args.log_level) if args.log_level else LOG_NOTICE
    except CLIHelp:
        print(parser.get_help())
        return 0
    except (CLIError, ValueError) as e:
        syslog2(LOG_ERR, f"Error: {e}")
        print(f"Error: {e}")
        return 1
    except EOFError:
        print("No action specified.")
        return 1

    try:
        config = AppConfig.from_env(args.env_file)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return 1

    try:
        setup_log(syslog_level, log_file=config.log_file)
    except OSError as e:
        print(f"opening log file {config.log_file} failed: {e}")
        return 1

    try:
        runner = Runner(config, args.lang, top_k=args.top_k, batch_size=args.batch_size,
                        input_fn=input_fn)
    except ConfigError as e:
        syslog2(LOG_ERR, "cannot start", error=str(e))
        print(e)
        close_log()
        return 1

    status = 0
    try:
        for action in args.actions:
            try:
                runner.run(action)
            except (ActionFailed, ConfigError) as e:
                syslog2(LOG_ERR, "action failed", action=action, error=str(e))
                print(f"Error in {action}: {e}")
                status = 1
                break
            finally:
                flush_log()
    finally:
        close_log()
    return status


if __name__ == "__main__":
    sys.exit(main())
