"""Domain records for vulnerability scans and queries, plus RFC 3339 helpers."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|([+-])(\d{2}):(\d{2}))"
)

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware datetime; raise ValueError if malformed."""
    match = _RFC3339.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"cannot parse {value!r} as RFC 3339 time")
    parts = [int(part) for part in match.groups()[:6]]
    microsecond = int((match.group(7) or "0")[:6].ljust(6, "0"))
    sign, hours, minutes = match.group(9), match.group(10), match.group(11)
    tz = timezone.utc
    try:
        if sign:
            offset = timedelta(hours=int(hours), minutes=int(minutes))
            if int(hours) > 23 or int(minutes) > 59:
                raise ValueError("time zone offset out of range")
            tz = timezone(offset if sign == "+" else -offset)
        return datetime(*parts, microsecond, tzinfo=tz)
    except ValueError as exc:
        raise ValueError(f"cannot parse {value!r} as RFC 3339 time: {exc}") from exc


def format_rfc3339(moment: datetime, fractional: bool = False) -> str:
    """Format a datetime as RFC 3339; naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    with_fraction = fractional and moment.microsecond
    text = moment.replace(tzinfo=None).isoformat(
        timespec="microseconds" if with_fraction else "seconds"
    )
    if with_fraction:
        text = text.rstrip("0")
    zone = moment.strftime("%z")
    if not moment.utcoffset():
        return text + "Z"
    return f"{text}{zone[:3]}:{zone[3:5]}"


@dataclass
class Vulnerability:
    """A parsed CVE entry together with the scan it came from."""

    id: str = ""
    severity: str = ""
    cvss: float = 0.0
    status: str = ""
    package_name: str = ""
    current_version: str = ""
    fixed_version: str = ""
    description: str = ""
    published_date: datetime = ZERO_TIME
    link: str = ""
    risk_factors: list[str] | None = None
    source_file: str = ""
    scan_time: datetime = ZERO_TIME

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping using the wire field names."""
        data = dict(vars(self))
        data["published_date"] = format_rfc3339(self.published_date, fractional=True)
        data["scan_time"] = format_rfc3339(self.scan_time, fractional=True)
        if self.risk_factors is not None:
            data["risk_factors"] = list(self.risk_factors)
        return data


def _object(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


@dataclass
class ScanRequest:
    """Input of a scan: a repository as ``owner/name`` and the files to fetch."""

    repo: str = ""
    files: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ScanRequest:
        """Build a request from decoded JSON; raise ValueError on wrong shapes."""
        data = _object(data, "scan request")
        repo = data.get("repo") or ""
        if not isinstance(repo, str):
            raise ValueError("field 'repo' must be a string")
        files = data.get("files") or []
        if not isinstance(files, list) or not all(isinstance(f, str) for f in files):
            raise ValueError("field 'files' must be a list of strings")
        return cls(repo=repo, files=list(files))


@dataclass
class QueryRequest:
    """Input of a query: a mapping of filter names to values."""

    filters: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> QueryRequest:
        """Build a request from decoded JSON; raise ValueError on wrong shapes."""
        filters = _object(_object(data, "query request").get("filters"), "field 'filters'")
        result: dict[str, str] = {}
        for key, value in filters.items():
            if value is not None and not isinstance(value, str):
                raise ValueError(f"filter {key!r} must be a string")
            result[str(key)] = value or ""
        return cls(filters=result)