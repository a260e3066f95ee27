from __future__ import annotations

import contextlib
import logging
import socket
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

from .config import CrawlerConfig, expand_path
from .http_client import HttpClientError, http_get_json
from .session_cdp import CdpConnection

logger = logging.getLogger("storycrawler.launcher")


@dataclass
class LaunchResult:
    command: list[str]
    started: bool
    message: str


class BrowserLauncher:
    def __init__(self, config: CrawlerConfig | None = None) -> None:
        self.config = config or CrawlerConfig.from_env()
        self.process: subprocess.Popen | None = None

    @property
    def cdp_base(self) -> str:
        return f"http://127.0.0.1:{self.config.cdp_port}"

    def cdp_ready(self, timeout: float = 0.4) -> bool:
        """Return True if the CDP HTTP endpoint responds."""
        try:
            http_get_json(f"{self.cdp_base}/json/version", timeout=timeout)
        except HttpClientError:
            return False
        return True

    def _port_available(self, timeout: float = 0.2) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            try:
                return sock.connect_ex(("127.0.0.1", self.config.cdp_port)) != 0
            except OSError:
                return False

    def build_launch_command(self, extra: list[str] | None = None) -> list[str]:
        flags = [
            f"--remote-debugging-port={self.config.cdp_port}",
            f"--user-data-dir={expand_path(self.config.profile_path)}",
            "--remote-allow-origins=*",
            "--no-first-run",
            "--no-default-browser-check",
            "--disable-gpu",
            "--disable-dev-shm-usage",
        ]
        if self.config.headless:
            flags.append("--headless=new")
        flags.extend(self.config.extra_flags)
        if extra:
            flags.extend(extra)
        return [self.config.binary_path, *flags]

    def ensure_running(self, timeout: float = 10.0) -> LaunchResult:
        if self.config.mode == "attach":
            if self.cdp_ready():
                return LaunchResult([], False, "Attached to existing Chrome on CDP port")
            raise HttpClientError(
                f"Attach mode: no Chrome listening on CDP port {self.config.cdp_port} "
                "(start Chrome with --remote-debugging-port)"
            )

        if self.cdp_ready():
            return LaunchResult([], False, "Chrome already listening on CDP port")
        if not self._port_available():
            raise HttpClientError(f"Port {self.config.cdp_port} already in use but CDP is not reachable")

        with contextlib.suppress(OSError):
            Path(expand_path(self.config.profile_path)).mkdir(parents=True, exist_ok=True)

        cmd = self.build_launch_command()
        logger.info("launching %s", " ".join(cmd))
        try:
            self.process = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as exc:
            raise HttpClientError(f"Failed to launch {self.config.binary_path}: {exc}") from exc

        deadline = time.time() + timeout
        while time.time() < deadline:
            if self.cdp_ready():
                return LaunchResult(cmd, True, "Chrome launched")
            if self.process.poll() is not None:
                raise HttpClientError(f"Chrome exited during startup (code {self.process.returncode})")
            time.sleep(0.1)
        self.stop()
        raise HttpClientError("Chrome launch timed out")

    def stop(self, *, timeout: float = 2.0) -> bool:
        """Stop the launcher-owned Chrome process, if any."""
        proc = self.process
        if proc is None:
            return False
        self.process = None
        if proc.poll() is not None:
            return True

        with contextlib.suppress(OSError):
            proc.terminate()
        try:
            proc.wait(timeout=max(0.1, float(timeout)))
        except subprocess.TimeoutExpired:
            with contextlib.suppress(OSError):
                proc.kill()
        return True

    def _browser_ws(self) -> str:
        version = http_get_json(f"{self.cdp_base}/json/version")
        ws_url = version.get("webSocketDebuggerUrl") if isinstance(version, dict) else None
        if not ws_url:
            raise HttpClientError("CDP browser WebSocket URL not found")
        return ws_url

    def list_targets(self) -> list[dict]:
        try:
            targets = http_get_json(f"{self.cdp_base}/json/list")
        except HttpClientError:
            return []
        return targets if isinstance(targets, list) else []

    def open_target(self, url: str = "about:blank") -> tuple[str, str]:
        """Create a new tab, return (target id, page WebSocket URL)."""
        conn = CdpConnection(self._browser_ws(), timeout=5.0)
        try:
            result = conn.send("Target.createTarget", {"url": url})
        finally:
            conn.close()
        target_id = result.get("targetId")
        if not target_id:
            raise HttpClientError("Failed to create browser tab")

        deadline = time.time() + 5.0
        while time.time() < deadline:
            for target in self.list_targets():
                if target.get("id") == target_id and target.get("webSocketDebuggerUrl"):
                    return target_id, target["webSocketDebuggerUrl"]
            time.sleep(0.05)
        raise HttpClientError(f"WebSocket URL for tab {target_id} not found")

    def close_target(self, target_id: str) -> bool:
        try:
            conn = CdpConnection(self._browser_ws(), timeout=3.0)
        except HttpClientError:
            return False
        try:
            conn.send("Target.closeTarget", {"targetId": target_id})
            return True
        except HttpClientError:
            return False
        finally:
            conn.close()

    @staticmethod
    def find_free_port() -> int:
        with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
            s.bind(("127.0.0.1", 0))
            return s.getsockname()[1]


__all__ = ["BrowserLauncher", "LaunchResult"]
