"""Raw CDP connection over websocket-client."""

from __future__ import annotations

import json
import socket
import time
from contextlib import suppress
from typing import Any

import websocket

from .http_client import HttpClientError


class CdpConnection:
    """Low-level CDP WebSocket connection."""

    def __init__(self, ws_url: str, timeout: float = 5.0):
        try:
            self.ws = websocket.create_connection(ws_url, timeout=timeout)
        except (OSError, websocket.WebSocketException) as exc:
            raise HttpClientError(f"CDP connect to {ws_url} failed: {exc}") from exc
        self.ws_url = ws_url
        self.timeout = timeout
        self._next_id = 1
        # Events received while waiting for command responses are kept, otherwise
        # lifecycle waits (load/domcontentloaded) race the navigate response.
        self._event_queue: list[dict[str, Any]] = []
        self._max_event_queue = 2000

    def _push_event(self, event: dict[str, Any]) -> None:
        """Store an event for later consumption (bounded)."""
        if not isinstance(event, dict) or not isinstance(event.get("method"), str):
            return
        self._event_queue.append(event)
        if len(self._event_queue) > self._max_event_queue:
            del self._event_queue[: len(self._event_queue) - self._max_event_queue]

    def pop_event(self, event_name: str) -> dict[str, Any] | None:
        """Pop the oldest queued event params for the given event name."""
        if not event_name:
            return None
        for i, ev in enumerate(self._event_queue):
            if ev.get("method") == event_name:
                self._event_queue.pop(i)
                params = ev.get("params")
                return params if isinstance(params, dict) else {}
        return None

    def clear_events(self, *event_names: str) -> int:
        """Drop queued events (all of them, or only the given names)."""
        before = len(self._event_queue)
        if not event_names:
            self._event_queue.clear()
        else:
            names = set(event_names)
            self._event_queue = [ev for ev in self._event_queue if ev.get("method") not in names]
        return before - len(self._event_queue)

    def send(self, method: str, params: dict[str, Any] | None = None, *, timeout: float | None = None) -> dict[str, Any]:
        """Send CDP command and wait for response."""
        msg_id = self._next_id
        self._next_id += 1

        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params

        try:
            self.ws.settimeout(min(2.0, max(0.5, float(self.timeout))))
            self.ws.send(json.dumps(msg))
        except Exception as exc:  # noqa: BLE001
            raise HttpClientError(str(exc)) from exc

        return self._recv_until(msg_id, self.timeout if timeout is None else float(timeout))

    def _recv_until(self, expected_id: int, timeout: float) -> dict[str, Any]:
        """Wait for response with specific ID."""
        deadline = time.time() + timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                raise HttpClientError("CDP response timed out")

            # recv() blocks indefinitely unless a socket timeout is set.
            try:
                self.ws.settimeout(min(0.5, remaining))
                raw = self.ws.recv()
            except websocket.WebSocketTimeoutException:
                continue
            except Exception as exc:  # noqa: BLE001
                if isinstance(exc, TimeoutError) or "timed out" in str(exc).lower():
                    continue
                raise HttpClientError(str(exc)) from exc

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                continue

            if isinstance(data, dict) and isinstance(data.get("method"), str) and "id" not in data:
                self._push_event(data)
                continue

            if isinstance(data, dict) and data.get("id") == expected_id:
                if "error" in data:
                    raise HttpClientError(str(data["error"]))
                return data.get("result", {})

    def wait_for_event(self, event_name: str, timeout: float = 10.0) -> dict | None:
        """Wait for specific CDP event."""
        queued = self.pop_event(event_name)
        if queued is not None:
            return queued

        deadline = time.time() + timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                return None

            try:
                self.ws.settimeout(min(0.5, remaining))
                raw = self.ws.recv()
            except websocket.WebSocketTimeoutException:
                continue
            except Exception as exc:  # noqa: BLE001
                if isinstance(exc, TimeoutError) or "timed out" in str(exc).lower():
                    continue
                raise HttpClientError(str(exc)) from exc

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                continue

            if isinstance(data, dict) and isinstance(data.get("method"), str) and "id" not in data:
                if data.get("method") == event_name:
                    params = data.get("params")
                    return params if isinstance(params, dict) else {}
                self._push_event(data)

    def abort(self) -> None:
        """Hard break of the underlying socket.

        websocket-client close() runs a close handshake that can hang when the
        page is wedged; shutting the raw socket down cannot.
        """
        sock = getattr(self.ws, "sock", None)
        if sock is not None:
            with suppress(OSError):
                sock.shutdown(socket.SHUT_RDWR)
            with suppress(OSError):
                sock.close()

    def close(self) -> None:
        """Close the WebSocket connection."""
        self.abort()


__all__ = ["CdpConnection"]
