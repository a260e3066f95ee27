from __future__ import annotations

import logging
import urllib.parse

from .errors import StorybookConnectionError
from .http_client import HttpClientError, http_get

logger = logging.getLogger("storycrawler.connection")

# Selecting a kind/story pair that does not exist keeps Storybook from rendering any real story.
PROBE_KIND = "story-crawler-kind"
PROBE_STORY = "story-crawler-story"
PROBE_PATH = f"/iframe.html?selectedKind={PROBE_KIND}&selectedStory={PROBE_STORY}"


def normalize_base_url(raw: str) -> str:
    url = (raw or "").strip()
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise StorybookConnectionError(f"Storybook URL must be http(s): {raw!r}")
    if not parsed.netloc:
        raise StorybookConnectionError(f"Storybook URL has no host: {raw!r}")
    return url.rstrip("/")


class StorybookConnection:
    """Base address of a running Storybook instance."""

    def __init__(self, url: str, *, timeout: float = 10.0) -> None:
        self.url = normalize_base_url(url)
        self.timeout = timeout
        self.connected = False

    def __repr__(self) -> str:
        return f"StorybookConnection(url={self.url!r})"

    @property
    def probe_url(self) -> str:
        return self.url + PROBE_PATH

    def connect(self) -> StorybookConnection:
        """Check that the server answers before a browser is pointed at it."""
        try:
            resp = http_get(self.url, timeout=self.timeout, max_bytes=64_000)
        except HttpClientError as exc:
            raise StorybookConnectionError(f"Storybook server {self.url} is not reachable: {exc}") from exc
        status = int(resp.get("status") or 0)
        if status >= 400:
            raise StorybookConnectionError(f"Storybook server {self.url} responded with HTTP {status}")
        logger.debug("connected to %s (HTTP %s)", self.url, status)
        self.connected = True
        return self


__all__ = ["PROBE_KIND", "PROBE_PATH", "PROBE_STORY", "StorybookConnection", "normalize_base_url"]
