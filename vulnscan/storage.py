"""SQLite persistence for vulnerabilities."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from collections.abc import Iterable

from vulnscan.entity import Vulnerability, format_rfc3339, parse_rfc3339

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS vulnerabilities (
    id TEXT PRIMARY KEY,
    severity TEXT,
    cvss REAL,
    status TEXT,
    package_name TEXT,
    current_version TEXT,
    fixed_version TEXT,
    description TEXT,
    published_date TEXT,
    link TEXT,
    risk_factors TEXT,
    source_file TEXT,
    scan_time TEXT
);
"""

_COLUMNS = (
    "id, severity, cvss, status, package_name, current_version, fixed_version, "
    "description, published_date, link, risk_factors, source_file, scan_time"
)

_INSERT = (
    f"INSERT OR IGNORE INTO vulnerabilities ({_COLUMNS}) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)"
)

_SELECT = f"SELECT {_COLUMNS} FROM vulnerabilities"


class StorageError(Exception):
    """Raised when the database cannot be read or written."""


def _to_row(vuln: Vulnerability) -> tuple:
    return (
        vuln.id,
        vuln.severity,
        vuln.cvss,
        vuln.status,
        vuln.package_name,
        vuln.current_version,
        vuln.fixed_version,
        vuln.description,
        format_rfc3339(vuln.published_date),
        vuln.link,
        json.dumps(vuln.risk_factors),
        vuln.source_file,
        format_rfc3339(vuln.scan_time),
    )


def _from_row(row: tuple) -> Vulnerability:
    if any(value is None for value in row):
        raise StorageError("scan: unexpected NULL column")
    (vid, severity, cvss, status, package_name, current_version, fixed_version,
     description, published, link, factors_text, source_file, scanned) = row

    try:
        published_date = parse_rfc3339(published)
    except ValueError as exc:
        raise StorageError(f"invalid published_date: {exc}") from exc
    try:
        scan_time = parse_rfc3339(scanned)
    except ValueError as exc:
        raise StorageError(f"invalid scan_time: {exc}") from exc

    try:
        factors = json.loads(factors_text)
    except (TypeError, ValueError) as exc:
        raise StorageError(f"unmarshal risk_factors: {exc}") from exc
    if factors is not None and (
        not isinstance(factors, list) or not all(isinstance(f, str) for f in factors)
    ):
        raise StorageError("unmarshal risk_factors: expected a list of strings")

    try:
        cvss_value = float(cvss)
    except (TypeError, ValueError) as exc:
        raise StorageError(f"scan: {exc}") from exc

    return Vulnerability(
        id=str(vid),
        severity=str(severity),
        cvss=cvss_value,
        status=str(status),
        package_name=str(package_name),
        current_version=str(current_version),
        fixed_version=str(fixed_version),
        description=str(description),
        published_date=published_date,
        link=str(link),
        risk_factors=factors,
        source_file=str(source_file),
        scan_time=scan_time,
    )


class SQLiteStorage:
    """Stores and queries vulnerabilities in an SQLite database file."""

    def __init__(self, dsn: str) -> None:
        try:
            self._conn = sqlite3.connect(dsn, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"cannot open db: {exc}") from exc
        self._lock = threading.Lock()
        try:
            self._conn.executescript(_SCHEMA)
        except sqlite3.Error as exc:
            self._conn.close()
            raise StorageError(f"cannot apply schema: {exc}") from exc

    def save_vulnerabilities(self, vulns: Iterable[Vulnerability]) -> None:
        """Insert all vulnerabilities in one transaction; existing ids are left alone."""
        rows = [_to_row(v) for v in vulns]
        with self._lock:
            try:
                with self._conn:
                    self._conn.executemany(_INSERT, rows)
            except sqlite3.Error as exc:
                raise StorageError(f"insert: {exc}") from exc
        logger.info("Saved %d vulnerabilities to DB", len(rows))

    def query_by_severity(self, severity: str) -> list[Vulnerability]:
        """Return vulnerabilities of the given severity, or all of them for ``"ALL"``."""
        sql = _SELECT
        params: tuple = ()
        if severity != "ALL":
            sql += " WHERE severity = ?"
            params = (severity,)
        with self._lock:
            try:
                rows = self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as exc:
                raise StorageError(f"query: {exc}") from exc
        results = [_from_row(row) for row in rows]
        logger.info("Fetched %d vulnerabilities with severity %s", len(results), severity)
        return results

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> SQLiteStorage:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()