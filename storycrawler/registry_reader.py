"""In-page Storybook registry reader.

The reader runs inside the page as a single promise. It picks one registry
variant up front and resolves exactly once with a JSON-only payload (see
`story_types` for the contract):

- v6: `raw()` and `store()` exist; `store()._configuring` is polled every
  CONFIGURE_POLL_INTERVAL_MS until false, at most MAX_CONFIGURE_WAIT_COUNT
  times, then `raw()` is read regardless.
- v5: `raw()` exists.
- v4: only `getStorybook()` exists; stories are grouped by kind, without ids.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .story_types import RegistryReadResult, parse_registry_payload

logger = logging.getLogger("storycrawler.registry")

REGISTRY_GLOBAL = "__STORYBOOK_CLIENT_API__"
MAX_CONFIGURE_WAIT_COUNT = 100
CONFIGURE_POLL_INTERVAL_MS = 16


def registry_defined_expression(global_name: str = REGISTRY_GLOBAL) -> str:
    return f"window[{json.dumps(global_name)}]"


def build_registry_reader_js(
    max_wait_count: int = MAX_CONFIGURE_WAIT_COUNT,
    interval_ms: int = CONFIGURE_POLL_INTERVAL_MS,
    global_name: str = REGISTRY_GLOBAL,
) -> str:
    """Build the in-page reader expression (evaluates to a promise)."""
    return f"""
    new Promise((resolve, reject) => {{
        const MAX_CONFIGURE_WAIT_COUNT = {int(max_wait_count)};
        const CONFIGURE_POLL_INTERVAL_MS = {int(interval_ms)};
        const api = window[{json.dumps(global_name)}];

        const detectVariant = (api) => {{
            if (!api) return null;
            if (typeof api.raw === 'function') {{
                return typeof api.store === 'function' ? 'v6' : 'v5';
            }}
            if (typeof api.getStorybook === 'function') return 'v4';
            return null;
        }};

        const finish = (variant, stories, kinds, attempt, timedOut) => resolve({{
            variant,
            stories,
            kinds,
            configureWaitCount: attempt,
            configureTimedOut: timedOut,
        }});

        const readRaw = () => api.raw().map(s => ({{
            id: String(s.id),
            kind: String(s.kind),
            name: String(s.name),
        }}));

        const readLegacy = () => api.getStorybook().map(({{ kind, stories }}) => ({{
            kind: String(kind),
            names: (stories || []).map(s => String(s.name)),
        }}));

        const isConfiguring = () => {{
            const store = api.store();
            return !!(store && store._configuring);
        }};

        const waitConfigured = (attempt) => {{
            try {{
                if (isConfiguring()) {{
                    if (attempt < MAX_CONFIGURE_WAIT_COUNT) {{
                        setTimeout(() => waitConfigured(attempt + 1), CONFIGURE_POLL_INTERVAL_MS);
                        return;
                    }}
                    finish('v6', readRaw(), null, attempt, true);
                    return;
                }}
                finish('v6', readRaw(), null, attempt, false);
            }} catch (e) {{
                reject(e);
            }}
        }};

        const variant = detectVariant(api);
        switch (variant) {{
            case 'v6':
                waitConfigured(0);
                break;
            case 'v5':
                finish('v5', readRaw(), null, 0, false);
                break;
            case 'v4':
                finish('v4', null, readLegacy(), 0, false);
                break;
            default:
                finish(null, null, null, 0, false);
        }}
    }})
    """


REGISTRY_READER_JS = build_registry_reader_js()


def read_registry(page: Any, *, timeout: float | None = None) -> RegistryReadResult | None:
    """Run the reader in `page` and decode its single resolution.

    Returns None when the registry exposed neither a canonical nor a legacy story list.
    """
    payload = page.evaluate(REGISTRY_READER_JS, timeout=timeout)
    if isinstance(payload, dict):
        logger.debug(
            "registry variant=%s configureWaitCount=%s",
            payload.get("variant"),
            payload.get("configureWaitCount"),
        )
        if payload.get("configureTimedOut"):
            logger.warning(
                "Storybook was still configuring after %d retries; reading stories anyway",
                MAX_CONFIGURE_WAIT_COUNT,
            )
    return parse_registry_payload(payload)


__all__ = [
    "CONFIGURE_POLL_INTERVAL_MS",
    "MAX_CONFIGURE_WAIT_COUNT",
    "REGISTRY_GLOBAL",
    "REGISTRY_READER_JS",
    "build_registry_reader_js",
    "read_registry",
    "registry_defined_expression",
]
