"""Story records and the registry read result crossing the page boundary.

The in-page reader resolves with a JSON payload of this shape::

    {
      "variant": "v6" | "v5" | "v4" | null,
      "stories": [{"id": str, "kind": str, "name": str}] | null,
      "kinds": [{"kind": str, "names": [str]}] | null,
      "configureWaitCount": int,
      "configureTimedOut": bool
    }

`parse_registry_payload` is the only place that payload is turned back into Python objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from .errors import RegistryPayloadError


# Shape tag carried by records read through `raw()` (v5 and v6 registries).
RAW_STORY_VERSION = "v5"


@dataclass(frozen=True)
class StoryRecord:
    id: str
    kind: str
    name: str
    version: str | None = None

    @property
    def key(self) -> str:
        """Identity of the record: its id, or kind/name for id-less legacy records."""
        return self.id or f"{self.kind}/{self.name}"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "kind": self.kind, "name": self.name}
        if self.version:
            out["version"] = self.version
        return out


@dataclass(frozen=True)
class LegacyKindGroup:
    kind: str
    names: tuple[str, ...] = ()


@dataclass(frozen=True)
class CanonicalResult:
    stories: tuple[StoryRecord, ...]
    variant: str = RAW_STORY_VERSION
    configure_wait_count: int = 0
    configure_timed_out: bool = False


@dataclass(frozen=True)
class LegacyResult:
    kinds: tuple[LegacyKindGroup, ...]
    variant: str = "v4"


RegistryReadResult = Union[CanonicalResult, LegacyResult]


def _require_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise RegistryPayloadError(f"{what} must be a string, got {type(value).__name__}")
    return value


def _parse_story(raw: Any, index: int) -> StoryRecord:
    if not isinstance(raw, dict):
        raise RegistryPayloadError(f"stories[{index}] must be an object")
    return StoryRecord(
        id=_require_str(raw.get("id"), f"stories[{index}].id"),
        kind=_require_str(raw.get("kind"), f"stories[{index}].kind"),
        name=_require_str(raw.get("name"), f"stories[{index}].name"),
        version=RAW_STORY_VERSION,
    )


def _parse_kind(raw: Any, index: int) -> LegacyKindGroup:
    if not isinstance(raw, dict):
        raise RegistryPayloadError(f"kinds[{index}] must be an object")
    names = raw.get("names")
    if not isinstance(names, list):
        raise RegistryPayloadError(f"kinds[{index}].names must be a list")
    return LegacyKindGroup(
        kind=_require_str(raw.get("kind"), f"kinds[{index}].kind"),
        names=tuple(_require_str(n, f"kinds[{index}].names[{i}]") for i, n in enumerate(names)),
    )


def parse_registry_payload(payload: Any) -> RegistryReadResult | None:
    """Decode the reader payload.

    Returns None when neither variant is populated. Raises RegistryPayloadError
    when both are populated or the payload is malformed.
    """
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise RegistryPayloadError(f"Registry payload must be an object, got {type(payload).__name__}")

    stories = payload.get("stories")
    kinds = payload.get("kinds")
    if stories is not None and kinds is not None:
        raise RegistryPayloadError("Registry payload populated both the canonical and the legacy variant")
    if stories is None and kinds is None:
        return None

    variant = payload.get("variant")
    if stories is not None:
        if not isinstance(stories, list):
            raise RegistryPayloadError("stories must be a list")
        return CanonicalResult(
            stories=tuple(_parse_story(s, i) for i, s in enumerate(stories)),
            variant=variant if variant in ("v5", "v6") else RAW_STORY_VERSION,
            configure_wait_count=int(payload.get("configureWaitCount") or 0),
            configure_timed_out=bool(payload.get("configureTimedOut")),
        )

    if not isinstance(kinds, list):
        raise RegistryPayloadError("kinds must be a list")
    return LegacyResult(kinds=tuple(_parse_kind(k, i) for i, k in enumerate(kinds)))


__all__ = [
    "CanonicalResult",
    "LegacyKindGroup",
    "LegacyResult",
    "RAW_STORY_VERSION",
    "RegistryReadResult",
    "StoryRecord",
    "parse_registry_payload",
]
