# src/storage/vector_store.py

from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from src.core.config import VectorStoreConfig
from src.core.syslog2 import *
from src.storage.csv_sink import read_vector_rows


class VectorStoreError(Exception):
    """Raised when the vector database rejects a call or cannot be reached."""


@dataclass
class VectorEntry:
    id: str
    values: List[float]
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "values": list(self.values)}
        if self.metadata:
            data["metadata"] = self.metadata
        return data


@dataclass
class QueryMatch:
    id: str
    score: float
    values: List[float] = field(default_factory=list)
    sparse_values: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryMatch":
        return cls(
            id=str(data["id"]),
            score=float(data.get("score", 0.0)),
            values=list(data.get("values") or []),
            sparse_values=data.get("sparseValues"),
            metadata=data.get("metadata"),
        )


@dataclass
class UpsertSummary:
    rows_read: int = 0
    parse_failures: int = 0
    successes: int = 0
    failures: int = 0

    def __str__(self) -> str:
        return (
            f"Process Summary: Lines Processed={self.rows_read}, "
            f"Parse Failures={self.parse_failures}, "
            f"Upserted Successfully={self.successes}, Failed={self.failures}"
        )


class VectorStore:
    """
    Client for a remote Pinecone-style vector database.

    Control plane (whoami, collections) lives on the controller host; data
    plane calls (upsert, query, fetch) go to the per-index host, which needs
    the project id from whoami.
    """

    def __init__(self, config: VectorStoreConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.index_name = config.index_name
        self.session = session or self._create_session()
        self.session.headers.update({
            "Api-Key": config.require_api_key(),
            "Accept": "application/json",
        })
        self._project_id: Optional[str] = None

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        if self.config.max_retries > 0:
            # connection and read errors only, http statuses are never retried
            retry = Retry(
                total=self.config.max_retries,
                connect=self.config.max_retries,
                read=self.config.max_retries,
                status=0,
                backoff_factor=0.5,
                allowed_methods=None,
                raise_on_status=False,
            )
            adapter = HTTPAdapter(max_retries=retry)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        return session

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise VectorStoreError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _decode(resp: requests.Response, what: str) -> Dict[str, Any]:
        try:
            data = resp.json()
        except ValueError as e:
            raise VectorStoreError(f"error decoding {what} response: {e}") from e
        if not isinstance(data, dict):
            raise VectorStoreError(f"unexpected {what} response: {data!r}")
        return data

    @staticmethod
    def _check_status(resp: requests.Response, what: str) -> None:
        if not 200 <= resp.status_code < 300:
            raise VectorStoreError(
                f"{what} failed, status code: {resp.status_code}, response: {resp.text[:200]}"
            )

    def get_project_id(self) -> str:
        """Project name from the whoami endpoint, fetched once per client."""
        if self._project_id is not None:
            return self._project_id

        resp = self._request("GET", f"{self.config.controller_url}/actions/whoami")
        self._check_status(resp, "whoami")
        data = self._decode(resp, "whoami")
        project_id = data.get("project_name")
        if not isinstance(project_id, str) or not project_id:
            raise VectorStoreError("project_name not found or is not a string")

        syslog2(LOG_DEBUG, "project id resolved", project=project_id)
        self._project_id = project_id
        return project_id

    def index_url(self, name: Optional[str] = None) -> str:
        name = name or self.index_name
        return f"https://{name}-{self.get_project_id()}.svc.{self.config.environment}.{self.config.domain}"

    def ensure_collection(
        self,
        name: Optional[str] = None,
        dimension: Optional[int] = None,
        metric: Optional[str] = None,
    ) -> bool:
        """
        Connect to the collection, creating it when the connect call fails.

        Check-then-create is not atomic: two processes may both try to create
        the same collection. A single operator per index is assumed.

        Returns:
            True if the collection was created, False if it already existed.

        Raises:
            VectorStoreError: transport failure or creation not accepted
        """
        name = name or self.index_name
        dimension = dimension or self.config.dimension
        metric = metric or self.config.metric
        databases_url = f"{self.config.controller_url}/databases"

        resp = self._request("GET", f"{databases_url}/{name}")
        if resp.status_code == 200:
            syslog2(LOG_DEBUG, "collection exists", name=name)
            return False

        syslog2(LOG_NOTICE, "collection not found, creating a new one", name=name,
                status=resp.status_code, dimension=dimension, metric=metric)
        print("Index doesn't exist, creating a new one", name)

        resp = self._request(
            "POST",
            databases_url,
            json={"name": name, "dimension": dimension, "metric": metric},
        )
        if resp.status_code not in (200, 201):
            syslog2(LOG_ERR, "failed to create collection", name=name,
                    status=resp.status_code, response=resp.text)
            raise VectorStoreError(f"failed to create index, status code: {resp.status_code}")

        syslog2(LOG_NOTICE, "collection created", name=name)
        print("Successfully created index:", name)
        return True

    def upsert(self, entries: Sequence[VectorEntry], name: Optional[str] = None) -> None:
        """
        Raises:
            VectorStoreError: transport failure or non-2xx status
        """
        resp = self._request(
            "POST",
            f"{self.index_url(name)}/vectors/upsert",
            json={"vectors": [entry.to_dict() for entry in entries]},
        )
        self._check_status(resp, "upsert")

    def upsert_from_file(
        self,
        file_path: Union[str, Path],
        name: Optional[str] = None,
        batch_size: Optional[int] = None,
    ) -> UpsertSummary:
        """
        Upsert every row of an embeddings csv as vector_id_<row>.

        Rows that are not valid utf-8 or hold a non-float value are logged and
        skipped before any write.
        With batch_size > 1 a rejected batch counts all of its rows as failed.
        """
        batch_size = batch_size or self.config.upsert_batch_size
        summary = UpsertSummary()

        self.get_project_id()
        syslog2(LOG_NOTICE, "upserting vectors", file=str(file_path),
                index=name or self.index_name, batch_size=batch_size)
        print("Upserting from:", file_path)

        batch: List[VectorEntry] = []
        for row_number, values, error in read_vector_rows(file_path):
            summary.rows_read += 1
            if values is None:
                summary.parse_failures += 1
                syslog2(LOG_WARNING, "unreadable row, skipping", line=row_number, error=error)
                continue

            batch.append(VectorEntry(id=f"vector_id_{row_number}", values=values))
            if len(batch) >= batch_size:
                self._flush(batch, name, summary)
                batch = []

        if batch:
            self._flush(batch, name, summary)

        syslog2(LOG_NOTICE, "upsert finished", **asdict(summary))
        print(summary)
        return summary

    def _flush(self, batch: List[VectorEntry], name: Optional[str], summary: UpsertSummary) -> None:
        try:
            self.upsert(batch, name)
        except VectorStoreError as e:
            summary.failures += len(batch)
            syslog2(LOG_ERR, "upsert failed", ids=[entry.id for entry in batch], error=str(e))
            return
        summary.successes += len(batch)

    def fetch(self, ids: Sequence[str], name: Optional[str] = None) -> Dict[str, VectorEntry]:
        """
        Stored vectors by id. Ids unknown to the store are simply absent.

        Raises:
            VectorStoreError: transport, status or decode failure
        """
        resp = self._request("GET", f"{self.index_url(name)}/vectors/fetch", params={"ids": list(ids)})
        self._check_status(resp, "fetch")
        data = self._decode(resp, "fetch")

        entries: Dict[str, VectorEntry] = {}
        try:
            for vid, item in (data.get("vectors") or {}).items():
                entries[vid] = VectorEntry(
                    id=item.get("id", vid),
                    values=[float(v) for v in item.get("values") or []],
                    metadata=item.get("metadata"),
                )
        except (AttributeError, TypeError, ValueError) as e:
            raise VectorStoreError(f"malformed fetch response: {e}") from e
        return entries

    def query(
        self,
        vector: Sequence[float],
        top_k: Optional[int] = None,
        name: Optional[str] = None,
    ) -> List[QueryMatch]:
        """
        Nearest neighbours of vector, at most top_k, in the order the store
        returns them. Values are filled by a fetch per match; a match whose
        content cannot be found is kept with empty values.

        Raises:
            VectorStoreError: query or fetch call failed
        """
        top_k = top_k or self.config.top_k
        resp = self._request(
            "POST",
            f"{self.index_url(name)}/query",
            json={
                "topK": top_k,
                "vector": list(vector),
                "includeValues": False,
                "includeMetadata": False,
            },
        )
        self._check_status(resp, "query")
        data = self._decode(resp, "query")

        try:
            matches = [QueryMatch.from_dict(m) for m in data.get("matches") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise VectorStoreError(f"malformed query match: {e}") from e
        matches = matches[:top_k]

        for match in matches:
            fetched = self.fetch([match.id], name).get(match.id)
            if fetched is None:
                syslog2(LOG_WARNING, "no vector content found", id=match.id)
                match.values = []
                continue
            match.values = fetched.values
            if fetched.metadata:
                match.metadata = fetched.metadata
            syslog2(LOG_DEBUG, "fetched vector content", id=match.id, dimension=len(fetched.values))

        return matches
