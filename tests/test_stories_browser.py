from __future__ import annotations

import logging
from typing import Any

import pytest

from storycrawler.config import CrawlerConfig
from storycrawler.connection import StorybookConnection
from storycrawler.errors import (
    NavigationTimeout,
    NoStoriesError,
    RegistryNeverAppearedError,
    StoryCrawlerError,
    WaitTimeoutError,
)
from storycrawler.registry_reader import REGISTRY_READER_JS
from storycrawler.stories_browser import StoriesBrowser
from storycrawler.story_types import StoryRecord


class FakePage:
    """Records the page operations in order and answers the reader with a canned payload."""

    def __init__(self, payload: Any = None, *, nav_error: Exception | None = None, wait_error: Exception | None = None):
        self.payload = payload
        self.nav_error = nav_error
        self.wait_error = wait_error
        self.ops: list[tuple[str, Any, dict[str, Any]]] = []
        self.closed = False

    def navigate(self, url: str, **kwargs: Any) -> str:
        self.ops.append(("navigate", url, kwargs))
        if self.nav_error is not None and len([o for o in self.ops if o[0] == "navigate"]) == 2:
            raise self.nav_error
        return url

    def wait_for_function(self, expression: str, **kwargs: Any) -> Any:
        self.ops.append(("wait_for_function", expression, kwargs))
        if self.wait_error is not None:
            raise self.wait_error
        return True

    def evaluate(self, expression: str, **kwargs: Any) -> Any:
        self.ops.append(("evaluate", expression, kwargs))
        return self.payload

    def close(self) -> None:
        self.closed = True


def _config(**overrides: Any) -> CrawlerConfig:
    return CrawlerConfig(binary_path="chromium", profile_path="/tmp/storycrawler-test", **overrides)


def _browser(page: FakePage, **config_overrides: Any) -> StoriesBrowser:
    return StoriesBrowser(StorybookConnection("http://sb.test:6006/"), _config(**config_overrides), page=page)


def test_get_stories_runs_probe_sequence_in_order() -> None:
    page = FakePage({"variant": "v5", "stories": [], "kinds": None})
    _browser(page).get_stories()

    assert [op for op, _, _ in page.ops] == ["navigate", "navigate", "wait_for_function", "evaluate"]

    base_nav, probe_nav, wait, evaluate = page.ops
    assert base_nav[1] == "http://sb.test:6006"
    assert probe_nav[1] == (
        "http://sb.test:6006/iframe.html?selectedKind=story-crawler-kind&selectedStory=story-crawler-story"
    )
    assert probe_nav[2] == {"timeout": 60.0, "wait_until": "domcontentloaded"}
    assert "__STORYBOOK_CLIENT_API__" in wait[1]
    assert wait[2] == {"timeout": None}
    assert evaluate[1] == REGISTRY_READER_JS
    assert evaluate[2] == {"timeout": 30.0}


def test_get_stories_passes_canonical_result_through() -> None:
    page = FakePage(
        {
            "variant": "v6",
            "stories": [
                {"id": "button--primary", "kind": "Button", "name": "Primary"},
                {"id": "alert--warning", "kind": "Alert", "name": "Warning"},
            ],
            "kinds": None,
            "configureWaitCount": 2,
            "configureTimedOut": False,
        }
    )
    assert _browser(page).get_stories() == [
        StoryRecord(id="button--primary", kind="Button", name="Primary", version="v5"),
        StoryRecord(id="alert--warning", kind="Alert", name="Warning", version="v5"),
    ]


def test_get_stories_flattens_legacy_result() -> None:
    page = FakePage(
        {
            "variant": "v4",
            "stories": None,
            "kinds": [
                {"kind": "Button", "names": ["Primary", "Secondary"]},
                {"kind": "Alert", "names": ["Warning"]},
            ],
        }
    )
    stories = _browser(page).get_stories()
    assert [(s.id, s.kind, s.name) for s in stories] == [
        ("", "Button", "Primary"),
        ("", "Button", "Secondary"),
        ("", "Alert", "Warning"),
    ]


def test_get_stories_empty_canonical_list_is_not_an_error() -> None:
    page = FakePage({"variant": "v5", "stories": [], "kinds": None})
    assert _browser(page).get_stories() == []


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {"variant": None, "stories": None, "kinds": None},
        {"configureWaitCount": 0},
    ],
)
def test_get_stories_raises_when_no_variant_was_read(payload: Any) -> None:
    with pytest.raises(NoStoriesError):
        _browser(FakePage(payload)).get_stories()


def test_navigation_timeout_propagates_unchanged() -> None:
    timeout = NavigationTimeout("http://sb.test:6006/iframe.html", 60.0)
    page = FakePage(nav_error=timeout)
    with pytest.raises(NavigationTimeout) as excinfo:
        _browser(page).get_stories()
    assert excinfo.value is timeout
    assert [op for op, _, _ in page.ops] == ["navigate", "navigate"]


def test_registry_wait_uses_configured_bound() -> None:
    page = FakePage(wait_error=WaitTimeoutError("not yet"))
    with pytest.raises(RegistryNeverAppearedError, match="__STORYBOOK_CLIENT_API__"):
        _browser(page, registry_timeout=5.0).get_stories()
    assert page.ops[-1][2] == {"timeout": 5.0}


def test_navigation_timeout_is_configurable() -> None:
    page = FakePage({"variant": "v5", "stories": [], "kinds": None})
    _browser(page, navigation_timeout=15.0).get_stories()
    assert page.ops[1][2]["timeout"] == 15.0


def test_get_stories_logs_fetched_list_at_debug(caplog: pytest.LogCaptureFixture) -> None:
    page = FakePage({"variant": "v5", "stories": [{"id": "a--b", "kind": "A", "name": "B"}], "kinds": None})
    with caplog.at_level(logging.DEBUG, logger="storycrawler.stories"):
        _browser(page).get_stories()
    assert any("a--b" in rec.getMessage() for rec in caplog.records if rec.name == "storycrawler.stories")


def test_get_stories_without_page_requires_boot() -> None:
    browser = StoriesBrowser(StorybookConnection("http://sb.test"), _config())
    with pytest.raises(StoryCrawlerError, match="boot"):
        browser.get_stories()


def test_explicit_page_is_not_closed() -> None:
    page = FakePage({"variant": "v5", "stories": [], "kinds": None})
    with StoriesBrowser(StorybookConnection("http://sb.test"), _config(), page=page) as browser:
        browser.get_stories()
    assert page.closed is False


class FakeLauncher:
    def __init__(self) -> None:
        self.calls: list[str] = []

    def ensure_running(self) -> Any:
        self.calls.append("ensure_running")

        class _Result:
            message = "Chrome launched"

        return _Result()

    def open_target(self, url: str = "about:blank") -> tuple[str, str]:
        self.calls.append("open_target")
        return "T1", "ws://127.0.0.1:9222/devtools/page/T1"

    def close_target(self, target_id: str) -> bool:
        self.calls.append(f"close_target:{target_id}")
        return True

    def stop(self) -> bool:
        self.calls.append("stop")
        return True


def test_boot_opens_dedicated_tab_and_close_tears_it_down(monkeypatch: pytest.MonkeyPatch) -> None:
    opened: list[str] = []

    class _Conn:
        def __init__(self, ws_url: str, timeout: float = 5.0) -> None:
            opened.append(ws_url)
            self.closed = False

        def close(self) -> None:
            self.closed = True

    monkeypatch.setattr("storycrawler.stories_browser.CdpConnection", _Conn)
    launcher = FakeLauncher()
    browser = StoriesBrowser(StorybookConnection("http://sb.test"), _config(), launcher=launcher)

    with browser:
        assert browser.page is not None
        assert browser.page.target_id == "T1"
        conn = browser.page.conn

    assert opened == ["ws://127.0.0.1:9222/devtools/page/T1"]
    assert conn.closed is True
    assert browser.page is None
    assert launcher.calls == ["ensure_running", "open_target", "close_target:T1", "stop"]
