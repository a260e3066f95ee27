from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BINARY_CANDIDATES: list[str] = [
    # Prefer Chromium for better compatibility.
    # Snap builds ignore --user-data-dir, so they come last.
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/opt/chromium/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "C:\\Program Files\\Chromium\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Chromium\\Application\\chrome.exe",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "/opt/google/chrome/chrome",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    "/snap/bin/chromium",
]

DEFAULT_NAVIGATION_TIMEOUT = 60.0
DEFAULT_EVALUATE_TIMEOUT = 30.0


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.environ.get(name) or "").strip().lower()
    if not raw:
        return default
    return raw not in {"0", "false", "no", "off"}


@dataclass
class CrawlerConfig:
    binary_path: str
    profile_path: str
    cdp_port: int = 9222
    mode: str = "launch"
    headless: bool = True
    extra_flags: list[str] = field(default_factory=list)
    navigation_timeout: float = DEFAULT_NAVIGATION_TIMEOUT
    # None keeps the registry wait unbounded.
    registry_timeout: float | None = None
    evaluate_timeout: float = DEFAULT_EVALUATE_TIMEOUT
    http_timeout: float = 10.0

    @staticmethod
    def normalize_mode(raw: str | None) -> str:
        mode = (raw or "").strip().lower()
        if mode in {"attach", "connect", "external"}:
            return "attach"
        return "launch"

    @staticmethod
    def normalize_registry_timeout(raw: float | None) -> float | None:
        if raw is None or raw <= 0:
            return None
        return float(raw)

    @classmethod
    def detect_binary(cls) -> str:
        env_path = os.environ.get("STORYCRAWLER_BROWSER_BINARY")
        if env_path:
            return expand_path(env_path)
        for candidate in DEFAULT_BINARY_CANDIDATES:
            path = Path(candidate)
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        # Last resort: rely on PATH lookup
        for name in ("chromium", "chromium-browser", "google-chrome"):
            found = shutil.which(name)
            if found:
                return found
        return "google-chrome"

    @classmethod
    def from_env(cls) -> CrawlerConfig:
        mode = cls.normalize_mode(os.environ.get("STORYCRAWLER_BROWSER_MODE"))
        profile = expand_path(os.environ.get("STORYCRAWLER_PROFILE", "~/.cache/storycrawler/profile"))
        try:
            port = int(os.environ.get("STORYCRAWLER_CDP_PORT", "9222"))
        except ValueError:
            port = 9222
        flags_raw = os.environ.get("STORYCRAWLER_BROWSER_FLAGS", "")
        extra_flags = [flag.strip() for flag in flags_raw.split(",") if flag.strip()]
        registry_timeout = cls.normalize_registry_timeout(_env_float("STORYCRAWLER_REGISTRY_TIMEOUT", 0.0))
        return cls(
            binary_path=cls.detect_binary(),
            profile_path=profile,
            cdp_port=port,
            mode=mode,
            headless=_env_bool("STORYCRAWLER_HEADLESS", True),
            extra_flags=extra_flags,
            navigation_timeout=_env_float("STORYCRAWLER_NAVIGATION_TIMEOUT", DEFAULT_NAVIGATION_TIMEOUT),
            registry_timeout=registry_timeout,
            evaluate_timeout=_env_float("STORYCRAWLER_EVALUATE_TIMEOUT", DEFAULT_EVALUATE_TIMEOUT),
            http_timeout=_env_float("STORYCRAWLER_HTTP_TIMEOUT", 10.0),
        )
