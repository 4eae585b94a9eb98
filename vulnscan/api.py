"""HTTP interface: the scan and query endpoints and the server entry point."""

from __future__ import annotations

import argparse
import json
import logging
from typing import Any

import requests
from flask import Flask, Response, request

from vulnscan.entity import QueryRequest, ScanRequest
from vulnscan.fetcher import GitHubFetcher
from vulnscan.service import Service
from vulnscan.storage import SQLiteStorage, StorageError

logger = logging.getLogger(__name__)

_TEXT = "text/plain; charset=utf-8"


def _error(message: str, status: int) -> Response:
    return Response(
        message + "\n",
        status=status,
        content_type=_TEXT,
        headers={"X-Content-Type-Options": "nosniff"},
    )


def _decode_body(raw: bytes) -> Any:
    """Decode the first JSON value of a request body; raise ValueError if there is none."""
    text = raw.decode("utf-8")
    value, _ = json.JSONDecoder().raw_decode(text.lstrip())
    return value


def create_app(service: Service) -> Flask:
    """Build the web application serving ``POST /scan`` and ``POST /query``."""
    app = Flask(__name__)

    @app.post("/scan")
    def scan() -> Response:
        try:
            scan_request = ScanRequest.from_dict(_decode_body(request.get_data()))
        except ValueError:
            return _error("invalid JSON", 400)
        try:
            service.scan(scan_request)
        except Exception as exc:
            return _error(str(exc), 500)
        return Response("Scan started", status=202, content_type=_TEXT)

    @app.post("/query")
    def query() -> Response:
        try:
            query_request = QueryRequest.from_dict(_decode_body(request.get_data()))
        except ValueError:
            return _error("invalid JSON", 400)
        try:
            results = service.query(query_request)
        except Exception as exc:
            return _error(str(exc), 500)
        payload = [v.to_dict() for v in results] if results else None
        body = json.dumps(payload, ensure_ascii=False) + "\n"
        return Response(body, status=200, content_type="application/json")

    return app


def main(argv: list[str] | None = None) -> int:
    """Start the vulnerability scan server."""
    parser = argparse.ArgumentParser(description="Vulnerability scan and query server.")
    parser.add_argument("--db", default="vulns.db", help="SQLite database file")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    fetcher = GitHubFetcher(requests.Session(), timeout=10.0)
    try:
        storage = SQLiteStorage(args.db)
    except StorageError as exc:
        logger.error("failed to init storage: %s", exc)
        return 1

    app = create_app(Service(fetcher, storage))
    logger.info("Server starting on :%d", args.port)
    try:
        app.run(host=args.host, port=args.port)
    finally:
        storage.close()
    return 0