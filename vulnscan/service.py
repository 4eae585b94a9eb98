"""Scan orchestration: fetch scan files, parse them and store the findings."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from functools import partial
from typing import Protocol

from vulnscan.entity import QueryRequest, ScanRequest, Vulnerability
from vulnscan.parser import ParseError, parse_vulnerabilities

logger = logging.getLogger(__name__)

WORKER_COUNT = 3


class ServiceError(Exception):
    """Raised when a scan or query request cannot be carried out."""


class _Fetcher(Protocol):
    def fetch_files(self, repo: str, files: list[str]) -> Mapping[str, bytes]: ...


class _Storage(Protocol):
    def save_vulnerabilities(self, vulns: list[Vulnerability]) -> None: ...

    def query_by_severity(self, severity: str) -> list[Vulnerability]: ...


class Service:
    """Business logic behind the scan and query endpoints."""

    def __init__(self, fetcher: _Fetcher, storage: _Storage, *, workers: int = WORKER_COUNT) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._fetcher = fetcher
        self._storage = storage
        self._workers = workers

    def scan(self, request: ScanRequest) -> None:
        """Fetch and parse every requested file concurrently, then store all findings.

        Files that cannot be fetched, are empty or cannot be parsed are logged
        and skipped; a storage failure raises ServiceError.
        """
        if not request.repo or not request.files:
            raise ServiceError("repo and files must be provided")

        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="scan-worker"
        ) as pool:
            batches = list(pool.map(partial(self._process, request.repo), request.files))
        parsed = [vuln for batch in batches for vuln in batch]

        try:
            self._storage.save_vulnerabilities(parsed)
        except Exception as exc:
            raise ServiceError(f"saving vulnerabilities: {exc}") from exc

    def _process(self, repo: str, file: str) -> list[Vulnerability]:
        try:
            files_data = self._fetcher.fetch_files(repo, [file])
        except Exception as exc:
            logger.warning("Failed to fetch %s: %s", file, exc)
            return []

        data = files_data.get(file)
        if not data:
            logger.warning("No data in file %s", file)
            return []

        try:
            return parse_vulnerabilities(data, file, datetime.now(timezone.utc))
        except ParseError as exc:
            logger.warning("Failed to parse %s: %s", file, exc)
            return []

    def query(self, request: QueryRequest) -> list[Vulnerability]:
        """Return stored vulnerabilities matching the request's severity filter."""
        severity = request.filters.get("severity")
        if not severity:
            raise ServiceError("missing severity filter")
        return self._storage.query_by_severity(severity)