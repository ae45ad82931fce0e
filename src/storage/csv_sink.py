# src/storage/csv_sink.py

import csv
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union

PathLike = Union[str, Path]

# month-day-hour-minute, appended to the embeddings file name
SUFFIX_FORMAT = "%m-%d-%H-%M"


def timestamped_path(base: PathLike, now: Optional[datetime] = None) -> Path:
    """en_embeddings.csv -> en_embeddings.csv-10-19-14-35"""
    now = now or datetime.now()
    base = Path(base)
    return base.with_name(f"{base.name}-{now.strftime(SUFFIX_FORMAT)}")


def resolve_embeddings_file(base: PathLike) -> Path:
    """
    Pick the embeddings file to upsert from.

    The base path wins if it exists; otherwise the most recently written
    timestamped sibling; otherwise the base path, so that opening it fails loudly.
    """
    base = Path(base)
    if base.exists():
        return base
    candidates = [p for p in base.parent.glob(f"{base.name}-*") if p.is_file()]
    if not candidates:
        return base
    return max(candidates, key=lambda p: p.stat().st_mtime)


def format_values(values: Sequence[float]) -> List[str]:
    return [f"{v:f}" for v in values]


class EmbeddingCsvWriter:
    """
    Writes one embedding per row, six decimals per value.

    Rows carry no id or source text; line order is the only link back to the
    transcript.
    """

    def __init__(self, path: PathLike):
        self.path = Path(path)
        self._file = None
        self._writer = None
        self.rows_written = 0

    def open(self) -> "EmbeddingCsvWriter":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "w", encoding="utf-8", newline="")
        self._writer = csv.writer(self._file, lineterminator="\n")
        return self

    def write(self, values: Sequence[float]) -> None:
        if self._writer is None:
            raise ValueError("writer is not open")
        self._writer.writerow(format_values(values))
        self.rows_written += 1

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def __enter__(self) -> "EmbeddingCsvWriter":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def parse_vector_row(line: str) -> List[float]:
    """
    Raises:
        ValueError: a value is not a valid float
    """
    return [float(v) for v in line.strip().split(",")]


def read_vector_rows(path: PathLike) -> Iterator[Tuple[int, Optional[List[float]], Optional[str]]]:
    """
    Yield (row_number, values, error) for every non-empty row.

    values is None and error holds the reason when a row is not valid utf-8
    or a value is not a float.
    """
    with open(path, "rb") as f:
        for row_number, data in enumerate(f, start=1):
            try:
                line = data.decode("utf-8")
            except UnicodeDecodeError as e:
                yield row_number, None, str(e)
                continue
            if not line.strip():
                continue
            try:
                values = parse_vector_row(line)
            except ValueError as e:
                yield row_number, None, str(e)
                continue
            yield row_number, values, None
