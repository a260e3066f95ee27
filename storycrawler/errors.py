"""Error taxonomy for story enumeration."""

from __future__ import annotations


class StoryCrawlerError(Exception):
    pass


class NoStoriesError(StoryCrawlerError):
    """The registry was reached but neither story shape could be read."""

    def __init__(self, message: str = "No stories were found in the Storybook registry") -> None:
        super().__init__(message)


class RegistryNeverAppearedError(StoryCrawlerError):
    """`window.__STORYBOOK_CLIENT_API__` did not become defined within the configured bound."""


class RegistryPayloadError(StoryCrawlerError):
    """The in-page reader resolved with a payload that violates the result contract."""


class StorybookConnectionError(StoryCrawlerError):
    pass


class CdpError(StoryCrawlerError):
    """CDP transport or command failure."""


class NavigationError(CdpError):
    pass


class NavigationTimeout(CdpError):
    def __init__(self, url: str, timeout: float) -> None:
        super().__init__(f"Navigation to {url} timed out after {timeout:g}s")
        self.url = url
        self.timeout = timeout


class WaitTimeoutError(CdpError):
    pass


class PageEvaluationError(CdpError):
    pass


__all__ = [
    "CdpError",
    "NavigationError",
    "NavigationTimeout",
    "NoStoriesError",
    "PageEvaluationError",
    "RegistryNeverAppearedError",
    "RegistryPayloadError",
    "StoryCrawlerError",
    "StorybookConnectionError",
    "WaitTimeoutError",
]
