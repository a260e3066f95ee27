"""Enumerate the stories of a running Storybook through Chrome DevTools Protocol."""

from __future__ import annotations

from .config import CrawlerConfig
from .connection import StorybookConnection
from .errors import (
    CdpError,
    NavigationError,
    NavigationTimeout,
    NoStoriesError,
    PageEvaluationError,
    RegistryNeverAppearedError,
    RegistryPayloadError,
    StoryCrawlerError,
    StorybookConnectionError,
    WaitTimeoutError,
)
from .flatten import flatten_stories
from .launcher import BrowserLauncher
from .page import BrowserPage
from .registry_reader import read_registry
from .stories_browser import StoriesBrowser, get_stories
from .story_types import CanonicalResult, LegacyKindGroup, LegacyResult, RegistryReadResult, StoryRecord

__all__ = [
    "BrowserLauncher",
    "BrowserPage",
    "CanonicalResult",
    "CdpError",
    "CrawlerConfig",
    "LegacyKindGroup",
    "LegacyResult",
    "NavigationError",
    "NavigationTimeout",
    "NoStoriesError",
    "PageEvaluationError",
    "RegistryNeverAppearedError",
    "RegistryPayloadError",
    "RegistryReadResult",
    "StoriesBrowser",
    "StoryCrawlerError",
    "StoryRecord",
    "StorybookConnection",
    "StorybookConnectionError",
    "WaitTimeoutError",
    "flatten_stories",
    "get_stories",
    "read_registry",
]
