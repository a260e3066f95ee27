"""Navigable page on top of a CDP connection.

Only the three operations story enumeration needs are exposed:
`navigate`, `wait_for_function` and `evaluate`.
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import suppress
from typing import Any

from .errors import NavigationError, NavigationTimeout, PageEvaluationError, WaitTimeoutError
from .http_client import HttpClientError
from .session_cdp import CdpConnection

logger = logging.getLogger("storycrawler.page")

LIFECYCLE_EVENTS: dict[str, str] = {
    "load": "Page.loadEventFired",
    "domcontentloaded": "Page.domContentEventFired",
}

# Evaluation errors that mean "the document is being replaced", not "the expression is broken".
_TRANSIENT_EVAL_MARKERS = (
    "execution context was destroyed",
    "cannot find context with specified id",
    "inspected target navigated or closed",
)


def _is_transient_eval_error(exc: Exception) -> bool:
    msg = str(exc).lower()
    return any(marker in msg for marker in _TRANSIENT_EVAL_MARKERS)


class BrowserPage:
    """
    High-level page for a single tab.

    Wraps CdpConnection with navigation, polling waits and JS evaluation.
    Use as context manager for automatic cleanup.
    """

    def __init__(self, connection: CdpConnection, target_id: str = "", url: str = ""):
        self.conn = connection
        self.target_id = target_id
        self.url = url
        self._page_enabled = False
        self._runtime_enabled = False

    def __enter__(self) -> BrowserPage:
        return self

    def __exit__(self, *args):
        self.close()

    def close(self) -> None:
        """Close the page connection."""
        self.conn.close()

    def _enable_domains(self) -> None:
        if not self._page_enabled:
            self.conn.send("Page.enable")
            self._page_enabled = True
        if not self._runtime_enabled:
            self.conn.send("Runtime.enable")
            self._runtime_enabled = True

    # ─────────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────────

    def navigate(self, url: str, *, timeout: float = 30.0, wait_until: str = "load") -> str:
        """Navigate to URL and wait for the given lifecycle event.

        Raises NavigationTimeout when the event does not arrive within `timeout` seconds.
        """
        event_name = LIFECYCLE_EVENTS.get(wait_until)
        if event_name is None:
            raise ValueError(f"Unsupported wait_until: {wait_until!r} (use one of: {', '.join(LIFECYCLE_EVENTS)})")

        self._enable_domains()
        # Events of the previous document must not satisfy this navigation.
        with suppress(AttributeError):
            self.conn.clear_events(*LIFECYCLE_EVENTS.values())

        deadline = time.time() + timeout
        logger.debug("navigate url=%s wait_until=%s timeout=%s", url, wait_until, timeout)
        try:
            result = self.conn.send("Page.navigate", {"url": url}, timeout=timeout)
        except HttpClientError as exc:
            if "timed out" in str(exc).lower():
                raise NavigationTimeout(url, timeout) from exc
            raise
        error_text = result.get("errorText") if isinstance(result, dict) else None
        if error_text:
            raise NavigationError(f"Navigation to {url} failed: {error_text}")

        remaining = deadline - time.time()
        if remaining <= 0 or self.conn.wait_for_event(event_name, timeout=remaining) is None:
            raise NavigationTimeout(url, timeout)
        self.url = url
        return url

    # ─────────────────────────────────────────────────────────────────────────
    # JavaScript
    # ─────────────────────────────────────────────────────────────────────────

    def evaluate(self, expression: str, *, timeout: float | None = None) -> Any:
        """Evaluate JavaScript, awaiting a returned promise, and return its JSON value."""
        self._enable_domains()
        result = self.conn.send(
            "Runtime.evaluate",
            {
                "expression": expression,
                "returnByValue": True,
                "awaitPromise": True,
            },
            timeout=timeout,
        )

        details = result.get("exceptionDetails")
        if isinstance(details, dict):
            exc_obj = details.get("exception") if isinstance(details.get("exception"), dict) else {}
            message = exc_obj.get("description") or details.get("text") or "Uncaught exception"
            raise PageEvaluationError(str(message))

        if "result" not in result:
            return None
        value = result["result"]
        # CDP reports undefined as {"type": "undefined"} with no "value" field.
        if isinstance(value, dict) and value.get("type") == "undefined":
            return None
        if isinstance(value, dict) and value.get("type") == "object" and value.get("subtype") == "null":
            return None
        return value.get("value", value)

    def wait_for_function(self, expression: str, *, timeout: float | None = None, polling: float = 0.1) -> Any:
        """Poll until `expression` is truthy in the page and return its value.

        With `timeout=None` this waits forever.
        """
        predicate = f"(() => {{ const v = ({expression}); return v ? (typeof v === 'object' || typeof v === 'function' ? true : v) : false; }})()"
        deadline = None if timeout is None else time.time() + timeout
        polls = 0
        while True:
            polls += 1
            try:
                value = self.evaluate(predicate)
            except (PageEvaluationError, HttpClientError) as exc:
                if not _is_transient_eval_error(exc):
                    raise
                value = None
            if value:
                logger.debug("wait_for_function satisfied after %d poll(s): %s", polls, expression)
                return value
            if deadline is not None and time.time() >= deadline:
                raise WaitTimeoutError(f"Condition not met within {timeout:g}s: {json.dumps(expression)}")
            time.sleep(polling)


__all__ = ["BrowserPage", "LIFECYCLE_EVENTS"]
