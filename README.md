# vulnscan

vulnscan is a small HTTP server. It pulls vulnerability scan reports, stored as
JSON files, from GitHub repositories and keeps the findings in an SQLite
database. You can then ask it for the stored findings of a given severity.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Running the server

```
vulnscan [--db PATH] [--host ADDRESS] [--port PORT]
```

| Option   | Default    | Meaning                         |
|----------|------------|---------------------------------|
| `--db`   | `vulns.db` | SQLite database file            |
| `--host` | `0.0.0.0`  | Address to listen on            |
| `--port` | `8080`     | Port to listen on               |

The database file is created on first use. The server is Flask's built-in
server, so use it for development or on a trusted network.

## Endpoints

### `POST /scan`

The body names a repository as `owner/name` and the files to read from it:

```json
{"repo": "example-org/reports", "files": ["nightly.json", "weekly.json"]}
```

Each file is downloaded through the GitHub contents API, with up to three
files in flight at once. A download that fails is tried once more after a
short pause. The file is then parsed. If a file cannot be downloaded, is empty
or cannot be parsed, a warning is logged and the file is skipped. The findings
from all the other files are saved in one transaction. If a finding's id is
already in the database, the stored row is kept.

The server answers only after all of this is done:

- `202 Scan started` on success.
- `400 invalid JSON` if the body is not a valid request.
- `500` with the error text if `repo` or `files` is missing or empty, or if
  saving fails.

### `POST /query`

```json
{"filters": {"severity": "CRITICAL"}}
```

The server returns the stored findings whose severity matches exactly, as a
JSON array. The severity `"ALL"` returns every stored finding. If nothing
matches, the body is `null`. A missing or empty severity gives
`500 missing severity filter`.

Each finding has these fields: `id`, `severity`, `cvss`, `status`,
`package_name`, `current_version`, `fixed_version`, `description`,
`published_date`, `link`, `risk_factors`, `source_file` and `scan_time`. The
dates are RFC 3339 strings.

## Report file format

A report file is a JSON array. Each entry holds a `scanResults` object with an
RFC 3339 `timestamp` and a list of `vulnerabilities`:

```json
[
  {
    "scanResults": {
      "timestamp": "2025-02-10T06:30:00Z",
      "vulnerabilities": [
        {
          "id": "CVE-2025-0042",
          "severity": "CRITICAL",
          "cvss": 9.8,
          "status": "fixed",
          "package_name": "examplelib",
          "current_version": "2.3.0",
          "fixed_version": "2.3.4",
          "description": "Heap overflow in the example parser.",
          "published_date": "2025-01-20T00:00:00Z",
          "link": "https://example.com/advisories/CVE-2025-0042",
          "risk_factors": ["Network", "No authentication"]
        }
      ]
    }
  }
]
```

Each finding takes its `scan_time` from the timestamp of the entry it appears
in, and its `source_file` from the name of the file it was read from. If a
timestamp or `published_date` is not valid RFC 3339, the whole file is
rejected.

## Using it as a library

```python
from vulnscan.entity import QueryRequest, ScanRequest
from vulnscan.fetcher import GitHubFetcher
from vulnscan.service import Service
from vulnscan.storage import SQLiteStorage

with SQLiteStorage("vulns.db") as storage:
    service = Service(GitHubFetcher(), storage)
    service.scan(ScanRequest(repo="example-org/reports", files=["nightly.json"]))
    for vuln in service.query(QueryRequest(filters={"severity": "CRITICAL"})):
        print(vuln.id, vuln.cvss, vuln.package_name)
```

- `vulnscan.parser.parse_vulnerabilities(data, source_file)` turns the bytes
  of one report into `Vulnerability` records. It raises `ParseError` if the
  report is invalid.
- `GitHubFetcher(session=None, *, base_url=..., timeout=10.0, attempts=2,
  retry_delay=0.3)` has a `fetch_files(repo, files)` method. It returns a dict
  that maps each file name to its decoded bytes, and raises `FetchError` on
  failure.
- `SQLiteStorage(path)` provides `save_vulnerabilities`, `query_by_severity`
  and `close`. It raises `StorageError` on database errors.
- `vulnscan.api.create_app(service)` returns the Flask application for a
  `Service` you have built yourself.

## Limitations

- Requests to GitHub carry no credentials. Only public repositories can be
  read, and GitHub's limits for unauthenticated requests apply.
- Queries filter on severity only.
- A scan runs inside the request, so large scans keep the client waiting.