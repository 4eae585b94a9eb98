"""Parsing of vulnerability scan result files."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from vulnscan.entity import Vulnerability, parse_rfc3339

logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """Raised when a scan file cannot be parsed."""


_STRING_FIELDS = (
    "id",
    "severity",
    "status",
    "package_name",
    "current_version",
    "fixed_version",
    "description",
    "published_date",
    "link",
)


def _shape_error(message: str) -> ParseError:
    return ParseError(f"failed to parse JSON: {message}")


def _object(value: Any, what: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise _shape_error(f"{what} must be an object")
    return value


def _array(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise _shape_error(f"{what} must be an array")
    return value


def _decode_vuln(raw: Any) -> dict[str, Any]:
    obj = _object(raw, "vulnerability")
    decoded: dict[str, Any] = {}
    for key in _STRING_FIELDS:
        value = obj.get(key)
        if value is not None and not isinstance(value, str):
            raise _shape_error(f"field {key!r} must be a string")
        decoded[key] = value or ""

    cvss = obj.get("cvss") or 0.0
    if isinstance(cvss, bool) or not isinstance(cvss, (int, float)):
        raise _shape_error("field 'cvss' must be a number")
    decoded["cvss"] = float(cvss)

    factors = obj.get("risk_factors")
    if factors is not None:
        if not isinstance(factors, list) or not all(f is None or isinstance(f, str) for f in factors):
            raise _shape_error("field 'risk_factors' must be a list of strings")
        factors = [f or "" for f in factors]
    decoded["risk_factors"] = factors
    return decoded


def parse_vulnerabilities(
    data: bytes | str, source_file: str, scan_time: datetime | None = None
) -> list[Vulnerability]:
    """Extract vulnerabilities from a scan file, tagging each with its source and scan time.

    The scan time is read from each scan's own timestamp; the ``scan_time``
    argument is ignored.
    """
    try:
        document = json.loads(data)
    except ValueError as exc:
        raise ParseError(f"failed to parse JSON: {exc}") from exc

    # Decode the whole document first so shape errors win over date errors.
    scans = []
    for wrapper in _array(document, "root"):
        scan = _object(_object(wrapper, "scan wrapper").get("scanResults"), "scanResults")
        timestamp = scan.get("timestamp")
        if timestamp is not None and not isinstance(timestamp, str):
            raise _shape_error("field 'timestamp' must be a string")
        vulns = [_decode_vuln(v) for v in _array(scan.get("vulnerabilities"), "vulnerabilities")]
        scans.append((timestamp or "", vulns))

    results: list[Vulnerability] = []
    for timestamp, vulns in scans:
        try:
            scanned_at = parse_rfc3339(timestamp)
        except ValueError as exc:
            raise ParseError(f"invalid timestamp format: {exc}") from exc
        for raw in vulns:
            try:
                raw["published_date"] = parse_rfc3339(raw["published_date"])
            except ValueError as exc:
                raise ParseError(f"invalid published_date format: {exc}") from exc
            results.append(Vulnerability(**raw, source_file=source_file, scan_time=scanned_at))

    logger.info("Parsed %d vulnerabilities from %s", len(results), source_file)
    return results