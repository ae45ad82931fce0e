# src/ingestion/pipeline.py

import csv
from dataclasses import dataclass, asdict
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from tqdm import tqdm

from src.core.embedding import EmbeddingClient, EmbeddingError
from src.core.syslog2 import *
from src.ingestion.parser import LineParser, iter_lines
from src.storage.csv_sink import EmbeddingCsvWriter, timestamped_path


@dataclass
class EmbedSummary:
    lines_processed: int = 0
    parse_failures: int = 0
    empty_messages: int = 0
    embedding_failures: int = 0
    write_failures: int = 0
    successes: int = 0
    output_path: Optional[str] = None

    def __str__(self) -> str:
        return (
            f"Process Summary: Lines Processed={self.lines_processed}, "
            f"Parse Failures={self.parse_failures}, "
            f"Embedding Failures={self.embedding_failures}, "
            f"Write Failures={self.write_failures}, "
            f"Successes={self.successes}"
        )


class EmbeddingPipeline:
    """parse -> embed -> csv, one transcript line at a time"""

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        parser: Optional[LineParser] = None,
        show_progress: bool = True,
    ):
        self.embedding_client = embedding_client
        self.parser = parser or LineParser()
        self.show_progress = show_progress

    def run(
        self,
        input_path: Union[str, Path],
        output_base: Union[str, Path],
        now: Optional[datetime] = None,
    ) -> EmbedSummary:
        """
        Embed every parseable line of input_path into a new timestamped csv.

        Line-level failures are logged and counted, never raised. Failing to
        open the input or output file raises OSError.
        """
        input_path = Path(input_path)
        if not input_path.is_file():
            raise FileNotFoundError(f"input file not found: {input_path}")

        output_path = timestamped_path(output_base, now)
        summary = EmbedSummary(output_path=str(output_path))
        syslog2(LOG_NOTICE, "embedding transcript", input=str(input_path), output=str(output_path),
                model=self.embedding_client.model)

        with EmbeddingCsvWriter(output_path) as writer:
            lines = tqdm(iter_lines(input_path), desc="embedding", unit="line",
                         disable=not self.show_progress)
            for chat_line in lines:
                summary.lines_processed += 1

                message = self.parser.parse(chat_line)
                if message is None:
                    summary.parse_failures += 1
                    if chat_line.decode_error is not None:
                        syslog2(LOG_WARNING, "line is not valid utf-8, skipping",
                                line=chat_line.line_number, error=chat_line.decode_error)
                    else:
                        syslog2(LOG_WARNING, "unable to parse line, skipping",
                                line=chat_line.line_number, content=chat_line.raw)
                    continue
                if message.is_empty:
                    summary.empty_messages += 1

                try:
                    embedding = self.embedding_client.get_embedding(message.text)
                except EmbeddingError as e:
                    summary.embedding_failures += 1
                    syslog2(LOG_ERR, "error getting embedding",
                            line=chat_line.line_number, content=chat_line.raw, error=str(e))
                    continue

                try:
                    writer.write(embedding)
                except (OSError, ValueError, csv.Error) as e:
                    summary.write_failures += 1
                    syslog2(LOG_ERR, "error writing record to csv",
                            line=chat_line.line_number, error=str(e))
                    continue

                summary.successes += 1

        syslog2(LOG_NOTICE, "embed pass finished", **asdict(summary))
        print(summary)
        return summary
