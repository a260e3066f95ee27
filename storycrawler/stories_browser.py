"""Story enumeration against a running Storybook instance."""

from __future__ import annotations

import logging
from typing import Any

from .config import CrawlerConfig
from .connection import StorybookConnection
from .errors import NoStoriesError, RegistryNeverAppearedError, StoryCrawlerError, WaitTimeoutError
from .flatten import flatten_stories
from .launcher import BrowserLauncher
from .page import BrowserPage
from .registry_reader import REGISTRY_GLOBAL, read_registry, registry_defined_expression
from .session_cdp import CdpConnection
from .story_types import LegacyResult, StoryRecord

logger = logging.getLogger("storycrawler.stories")


class StoriesBrowser:
    """
    Fetches the id, kind and name of every story registered in a Storybook.

    The Storybook version (v4 legacy, v5 raw, v6 configuring registry) is
    detected automatically.

    Either pass a ready page (it is used as-is and never closed here) or call
    boot()/use the instance as a context manager to get a dedicated tab.
    """

    def __init__(
        self,
        connection: StorybookConnection,
        config: CrawlerConfig | None = None,
        *,
        page: Any = None,
        launcher: BrowserLauncher | None = None,
    ) -> None:
        self.connection = connection
        self.config = config or CrawlerConfig.from_env()
        self.page = page
        self._launcher = launcher
        self._owns_page = False
        self._target_id: str | None = None

    def __enter__(self) -> StoriesBrowser:
        return self.boot()

    def __exit__(self, *args):
        self.close()

    def boot(self) -> StoriesBrowser:
        """Make sure Chrome is reachable and open a dedicated tab."""
        if self.page is not None:
            return self
        if self._launcher is None:
            self._launcher = BrowserLauncher(self.config)
        result = self._launcher.ensure_running()
        logger.debug(result.message)
        try:
            target_id, ws_url = self._launcher.open_target()
            self._target_id = target_id
            self.page = BrowserPage(CdpConnection(ws_url, timeout=10.0), target_id=target_id)
        except StoryCrawlerError:
            if self._target_id:
                self._launcher.close_target(self._target_id)
                self._target_id = None
            self._launcher.stop()
            raise
        self._owns_page = True
        return self

    def close(self) -> None:
        if not self._owns_page:
            return
        page, self.page = self.page, None
        self._owns_page = False
        if page is not None:
            page.close()
        if self._launcher is not None:
            if self._target_id:
                self._launcher.close_target(self._target_id)
            self._target_id = None
            # Only a launcher-owned process is stopped; attached browsers keep running.
            self._launcher.stop()

    def get_stories(self) -> list[StoryRecord]:
        """Fetch every story registered in the Storybook.

        Raises NoStoriesError when the registry exposed no story list at all,
        NavigationTimeout when a navigation exceeds its bound, and
        RegistryNeverAppearedError when a registry timeout is configured and exceeded.
        """
        page = self.page
        if page is None:
            raise StoryCrawlerError("StoriesBrowser has no page; call boot() first")

        logger.debug("Wait for stories definition.")
        page.navigate(self.connection.url)
        page.navigate(
            self.connection.probe_url,
            timeout=self.config.navigation_timeout,
            wait_until="domcontentloaded",
        )

        registry_timeout = self.config.registry_timeout
        try:
            page.wait_for_function(registry_defined_expression(), timeout=registry_timeout)
        except WaitTimeoutError as exc:
            raise RegistryNeverAppearedError(
                f"window.{REGISTRY_GLOBAL} was not defined within {registry_timeout:g}s at {self.connection.probe_url}"
            ) from exc

        result = read_registry(page, timeout=self.config.evaluate_timeout)
        if result is None:
            raise NoStoriesError()
        if isinstance(result, LegacyResult):
            stories = flatten_stories(result.kinds)
        else:
            stories = list(result.stories)

        logger.debug("stories (%d): %s", len(stories), [s.to_dict() for s in stories])
        return stories


def get_stories(url: str, config: CrawlerConfig | None = None, *, check_connection: bool = True) -> list[StoryRecord]:
    """Convenience wrapper: connect, boot a tab, enumerate, tear down."""
    config = config or CrawlerConfig.from_env()
    connection = StorybookConnection(url, timeout=config.http_timeout)
    if check_connection:
        connection.connect()
    with StoriesBrowser(connection, config) as browser:
        return browser.get_stories()


__all__ = ["StoriesBrowser", "get_stories"]
