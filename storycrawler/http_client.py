from __future__ import annotations

import json
import ssl
import urllib.parse
from typing import Any
from urllib.error import HTTPError
from urllib.request import HTTPSHandler, Request, build_opener

from .errors import CdpError

USER_AGENT = "storycrawler/1.0"


class HttpClientError(CdpError):
    pass


def _build_request(url: str, timeout: float) -> tuple[Request, float]:
    req = Request(url, headers={"User-Agent": USER_AGENT})
    return req, timeout


def http_get(url: str, *, timeout: float = 10.0, max_bytes: int = 1_000_000) -> dict[str, Any]:
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise HttpClientError("Only http/https are supported")
    req, timeout = _build_request(url, timeout)
    try:
        ctx = ssl.create_default_context()
        opener = build_opener(HTTPSHandler(context=ctx))
        with opener.open(req, timeout=timeout) as resp:
            body = resp.read(max_bytes + 1)
            truncated = len(body) > max_bytes
            if truncated:
                body = body[:max_bytes]
            return {
                "status": resp.status,
                "headers": dict(resp.headers),
                "body": body.decode(errors="replace"),
                "truncated": truncated,
            }
    except HTTPError as exc:
        # Error statuses are returned, not raised.
        body = exc.read(max_bytes) if exc.fp is not None else b""
        return {
            "status": exc.code,
            "headers": dict(exc.headers or {}),
            "body": body.decode(errors="replace"),
            "truncated": False,
        }
    except OSError as exc:
        raise HttpClientError(str(exc)) from exc


def http_get_json(url: str, timeout: float = 2.0) -> Any:
    """Fetch JSON from URL (CDP discovery endpoints)."""
    response = http_get(url, timeout=timeout)
    if int(response.get("status") or 0) >= 400:
        raise HttpClientError(f"HTTP {response['status']} from {url}")
    try:
        return json.loads(response["body"])
    except json.JSONDecodeError as exc:
        raise HttpClientError(f"Invalid JSON from {url}: {exc}") from exc


__all__ = ["HttpClientError", "http_get", "http_get_json"]
