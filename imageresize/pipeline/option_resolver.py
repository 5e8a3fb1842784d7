"""
Option resolution: raw caller options -> canonical options + cache key.

Processing order (it determines the final cache key):
  1. Key aliases (fill, grayscale, colourise)
  2. Deprecated `preset` expansion
  3. Named `filter` rules, with the caller's own set values captured first
  4. Caller values re-applied over the filter's
  5. Merge onto settings defaults, canonicalise types
  6. Hash
"""

from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from imageresize.config import Settings
from imageresize.models.enums import FitPosition, ResizeMode
from imageresize.pipeline.formats import normalize_format
from imageresize.storage.paths import cache_key

logger = structlog.get_logger(__name__)

KEY_ALIASES: dict[str, str] = {
    "fill": "background",
    "grayscale": "greyscale",
    "colourise": "colorize",
}

# None means "drop the key"
PRESETS: dict[str, dict[str, Any]] = {
    "low": {"format": "jpg", "quality": 50},
    "medium": {"format": "jpg", "quality": 80},
    "high": {"format": None, "quality": 100},
}

DIMENSION_KEYS = ("width", "height", "min_width", "min_height", "max_width", "max_height")
BOOL_KEYS = ("upsize", "cache")
_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
MODES = tuple(mode.value for mode in ResizeMode)
POSITIONS = tuple(position.value for position in FitPosition)


@dataclass
class ResolvedOptions:
    source: Optional[str]
    options: dict[str, Any]
    cache_key: str
    # Caller-set values captured when a filter was used; re-applied after any
    # later forced values so the caller still wins
    overrides: dict[str, Any] = field(default_factory=dict)


def _is_set(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value not in ("", "0")
    if isinstance(value, (int, float)):
        return value != 0
    return True


def _positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


class OptionResolver:
    """Turns raw option maps into canonical options and cache keys."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def defaults(self) -> dict[str, Any]:
        return {
            "driver": self.settings.DRIVER,
            "mode": self.settings.DEFAULT_MODE,
            "quality": self.settings.DEFAULT_QUALITY,
            "format": self.settings.DEFAULT_FORMAT,
        }

    def resolve(
        self,
        source: Optional[str],
        width: Optional[int] = None,
        height: Optional[int] = None,
        options: Optional[dict[str, Any]] = None,
    ) -> ResolvedOptions:
        raw = dict(options or {})
        if width is not None:
            raw["width"] = _positive_int(width)
        if height is not None:
            raw["height"] = _positive_int(height)

        for alias, canonical in KEY_ALIASES.items():
            if alias in raw:
                raw[canonical] = raw.pop(alias)

        preset = raw.get("preset")
        if preset:
            if isinstance(preset, str) and preset in PRESETS:
                raw.update(PRESETS[preset])
            else:
                logger.warning("unknown_preset", preset=preset)

        overrides: dict[str, Any] = {}
        if _is_set(raw.get("filter")):
            overrides = {key: value for key, value in raw.items() if _is_set(value)}
            resize_filter = self.settings.find_filter(str(raw["filter"]))
            if resize_filter is None:
                logger.warning("unknown_filter", filter=raw["filter"])
            else:
                for rule in resize_filter.rules:
                    raw[rule.modifier] = rule.value
            raw.update(overrides)

        explicit = {key: value for key, value in raw.items() if value is not None}
        options = self.canonicalize({**self.defaults(), **explicit})
        return ResolvedOptions(
            source=source,
            options=options,
            cache_key=cache_key(source, options),
            overrides=overrides,
        )

    def canonicalize(self, options: dict[str, Any]) -> dict[str, Any]:
        """Coerce core keys to their canonical types and drop unset values."""
        result: dict[str, Any] = {}

        for key, value in options.items():
            if value is None:
                continue

            if key in DIMENSION_KEYS:
                number = _positive_int(value)
                if number is None:
                    logger.warning("option_dropped", option=key, value=value)
                    continue
                value = number

            elif key == "quality":
                number = _positive_int(value)
                if number is None or number > 100:
                    logger.warning("option_defaulted", option=key, value=value)
                    number = self.settings.DEFAULT_QUALITY
                value = number

            elif key == "mode":
                if value not in MODES:
                    logger.warning("option_defaulted", option=key, value=value)
                    value = self.settings.DEFAULT_MODE

            elif key == "format":
                fmt = str(value).lower()
                if fmt != "auto":
                    fmt = normalize_format(fmt)
                    if fmt is None:
                        logger.warning("option_defaulted", option=key, value=value)
                        fmt = self.settings.DEFAULT_FORMAT
                value = fmt

            elif key == "fit_position":
                if value not in POSITIONS:
                    logger.warning("option_defaulted", option=key, value=value)
                    value = FitPosition.CENTER.value

            elif key in BOOL_KEYS:
                value = _to_bool(value)

            result[key] = value

        return result
