"""Fetching file contents from GitHub repositories through the contents API."""

from __future__ import annotations

import base64
import binascii
import logging
import time

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.github.com"
ACCEPT_HEADER = "application/vnd.github.v3+json"


class FetchError(Exception):
    """Raised when a file cannot be fetched from GitHub."""


class GitHubFetcher:
    """Fetches files from GitHub repositories, retrying each file once on failure."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        attempts: int = 2,
        retry_delay: float = 0.3,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self._session = session if session is not None else requests.Session()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._attempts = attempts
        self._retry_delay = retry_delay

    def fetch_files(self, repo: str, files: list[str]) -> dict[str, bytes]:
        """Return the decoded contents of each file in ``repo`` (``owner/name``)."""
        parts = repo.split("/")
        if len(parts) != 2:
            raise FetchError(f"invalid repo format: {repo}")
        owner, name = parts
        return {file: self._fetch_with_retry(owner, name, file) for file in files}

    def _fetch_with_retry(self, owner: str, repo: str, file: str) -> bytes:
        last_error: FetchError | None = None
        for attempt in range(1, self._attempts + 1):
            try:
                return self._fetch_file(owner, repo, file)
            except FetchError as exc:
                last_error = exc
                logger.warning("Attempt %d failed for %s: %s", attempt, file, exc)
                time.sleep(self._retry_delay)
        raise FetchError(f"failed to fetch {file} after retries: {last_error}") from last_error

    def _fetch_file(self, owner: str, repo: str, file: str) -> bytes:
        url = f"{self._base_url}/repos/{owner}/{repo}/contents/{file}"
        try:
            response = self._session.get(
                url, headers={"Accept": ACCEPT_HEADER}, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise FetchError(f"http request failed: {exc}") from exc

        try:
            if response.status_code != 200:
                raise FetchError(
                    f"GitHub API returned {response.status_code}: {response.text}"
                )
            try:
                payload = response.json()
            except ValueError as exc:
                raise FetchError(f"decode response: {exc}") from exc
        finally:
            response.close()

        if not isinstance(payload, dict):
            raise FetchError("decode response: expected a JSON object")
        content = payload.get("content") or ""
        encoding = payload.get("encoding") or ""
        if not isinstance(content, str) or not isinstance(encoding, str):
            raise FetchError("decode response: content and encoding must be strings")

        if encoding != "base64":
            raise FetchError(f"unexpected encoding: {encoding}")

        cleaned = content.replace("\r", "").replace("\n", "")
        try:
            return base64.b64decode(cleaned, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise FetchError(f"decode base64: {exc}") from exc