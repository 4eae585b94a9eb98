import threading

import pytest

from vulnscan.entity import QueryRequest, ScanRequest, Vulnerability, parse_rfc3339
from vulnscan.service import Service, ServiceError

SCAN_FILE = b"""
[
  {
    "scanResults": {
      "timestamp": "2024-05-01T12:00:00Z",
      "vulnerabilities": [
        {
          "id": "CVE-9999-0001",
          "severity": "HIGH",
          "cvss": 9.1,
          "status": "open",
          "package_name": "demo",
          "current_version": "1",
          "fixed_version": "2",
          "description": "test",
          "published_date": "2023-01-01T00:00:00Z",
          "link": "https://example.com",
          "risk_factors": ["Remote"]
        }
      ]
    }
  }
]"""


def _scan_file(vuln_id: str, severity: str = "HIGH") -> bytes:
    return SCAN_FILE.replace(b"CVE-9999-0001", vuln_id.encode()).replace(
        b'"HIGH"', f'"{severity}"'.encode()
    )


class MockFetcher:
    def __init__(self, files, failing=()):
        self.files = files
        self.failing = set(failing)
        self.calls = []
        self._lock = threading.Lock()

    def fetch_files(self, repo, files):
        with self._lock:
            self.calls.append((repo, list(files)))
        result = {}
        for name in files:
            if name in self.failing:
                raise RuntimeError(f"boom {name}")
            if name in self.files:
                result[name] = self.files[name]
        return result


class MockStorage:
    def __init__(self, fail=False, query_result=None):
        self.saved = None
        self.save_calls = 0
        self.fail = fail
        self.queried = []
        self.query_result = query_result or []

    def save_vulnerabilities(self, vulns):
        self.save_calls += 1
        if self.fail:
            raise RuntimeError("disk full")
        self.saved = list(vulns)

    def query_by_severity(self, severity):
        self.queried.append(severity)
        return self.query_result


def test_query_missing_severity():
    svc = Service(None, None)
    with pytest.raises(ServiceError, match="missing severity filter"):
        svc.query(QueryRequest(filters={}))


def test_query_empty_severity():
    svc = Service(None, MockStorage())
    with pytest.raises(ServiceError):
        svc.query(QueryRequest(filters={"severity": ""}))


def test_query_passes_severity_to_storage():
    vuln = Vulnerability(id="CVE-9999-0001", severity="HIGH")
    storage = MockStorage(query_result=[vuln])
    svc = Service(None, storage)
    assert svc.query(QueryRequest(filters={"severity": "HIGH"})) == [vuln]
    assert storage.queried == ["HIGH"]


def test_scan_success():
    fetcher = MockFetcher({"file1.json": SCAN_FILE})
    storage = MockStorage()
    svc = Service(fetcher, storage)

    svc.scan(ScanRequest(repo="user/repo", files=["file1.json"]))

    assert len(storage.saved) == 1
    saved = storage.saved[0]
    assert saved.id == "CVE-9999-0001"
    assert saved.source_file == "file1.json"
    assert saved.scan_time == parse_rfc3339("2024-05-01T12:00:00Z")
    assert fetcher.calls == [("user/repo", ["file1.json"])]


@pytest.mark.parametrize(
    "request_",
    [
        ScanRequest(repo="", files=["a.json"]),
        ScanRequest(repo="user/repo", files=[]),
    ],
)
def test_scan_requires_repo_and_files(request_):
    storage = MockStorage()
    svc = Service(MockFetcher({}), storage)
    with pytest.raises(ServiceError, match="repo and files must be provided"):
        svc.scan(request_)
    assert storage.save_calls == 0


def test_scan_collects_all_files():
    files = {f"f{n}.json": _scan_file(f"CVE-2024-000{n}") for n in range(1, 6)}
    storage = MockStorage()
    svc = Service(MockFetcher(files), storage)

    svc.scan(ScanRequest(repo="user/repo", files=list(files)))

    assert storage.save_calls == 1
    assert sorted(v.id for v in storage.saved) == [f"CVE-2024-000{n}" for n in range(1, 6)]
    assert {v.source_file for v in storage.saved} == set(files)


def test_scan_skips_failed_empty_and_invalid_files():
    fetcher = MockFetcher(
        {
            "good.json": SCAN_FILE,
            "empty.json": b"",
            "bad.json": b"{ not json }",
        },
        failing={"broken.json"},
    )
    storage = MockStorage()
    svc = Service(fetcher, storage)

    svc.scan(
        ScanRequest(
            repo="user/repo",
            files=["broken.json", "empty.json", "bad.json", "missing.json", "good.json"],
        )
    )

    assert [v.id for v in storage.saved] == ["CVE-9999-0001"]


def test_scan_saves_empty_batch_when_nothing_parsed():
    storage = MockStorage()
    svc = Service(MockFetcher({}, failing={"a.json"}), storage)
    svc.scan(ScanRequest(repo="user/repo", files=["a.json"]))
    assert storage.save_calls == 1
    assert storage.saved == []


def test_scan_wraps_storage_error():
    svc = Service(MockFetcher({"file1.json": SCAN_FILE}), MockStorage(fail=True))
    with pytest.raises(ServiceError, match="saving vulnerabilities: disk full"):
        svc.scan(ScanRequest(repo="user/repo", files=["file1.json"]))


def test_invalid_worker_count():
    with pytest.raises(ValueError):
        Service(None, None, workers=0)