"""Configuration management for collectra.

Two sections:
- resolution: default pick mode, tag inheritance and zero-weight handling
- defaults: library path, log level and base seed used by the CLI

Config resolution order (highest priority first):
1. Programmatic (CollectraConfig constructed in code)
2. Environment variables (COLLECTRA_LIBRARY_PATH, COLLECTRA_SEED, etc.)
3. Config file (~/.config/collectra/config.json, managed by `collectra config`)
4. Hardcoded defaults
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .core.models.entry import PickMode, TagInheritance

logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "collectra"
CONFIG_FILE = CONFIG_DIR / "config.json"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class ResolutionConfig:
    """Defaults applied when a caller does not choose a policy.

    - default_pick_mode: a PickMode value ("ascending", "weighted_random", ...)
    - default_tag_inheritance: comma-separated TagInheritance names
    - include_zero_weight: `do_not_ignore_invalid_entries` for library collections
      that leave it unset
    """

    default_pick_mode: str = PickMode.WEIGHTED_RANDOM.value
    default_tag_inheritance: str = ""
    include_zero_weight: bool = False

    def pick_mode(self) -> PickMode:
        return PickMode(self.default_pick_mode)

    def tag_inheritance(self) -> TagInheritance:
        return TagInheritance.parse(self.default_tag_inheritance)


@dataclass
class DefaultsConfig:
    """CLI defaults."""

    library_path: str = "./library.yaml"
    log_level: str = "WARNING"
    seed: int = 0


@dataclass
class CollectraConfig:
    """Top-level collectra configuration.

    Examples:
        # Package use, no files needed
        config = CollectraConfig(resolution=ResolutionConfig(default_pick_mode="random"))

        # CLI use, loads from ~/.config/collectra/config.json
        config = CollectraConfig.load()
    """

    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)

    @classmethod
    def load(cls) -> "CollectraConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: Load from config file if it exists
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError, ValueError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: Env var overrides
        if val := os.environ.get("COLLECTRA_LIBRARY_PATH"):
            config.defaults.library_path = val
        if val := os.environ.get("COLLECTRA_LOG_LEVEL"):
            if val.upper() in LOG_LEVELS:
                config.defaults.log_level = val.upper()
            else:
                logger.warning("Invalid COLLECTRA_LOG_LEVEL=%r, ignoring", val)
        if val := os.environ.get("COLLECTRA_SEED"):
            try:
                config.defaults.seed = int(val)
            except ValueError:
                logger.warning("Invalid COLLECTRA_SEED=%r, ignoring", val)
        if val := os.environ.get("COLLECTRA_PICK_MODE"):
            try:
                config.resolution.default_pick_mode = PickMode(val).value
            except ValueError:
                logger.warning("Invalid COLLECTRA_PICK_MODE=%r, ignoring", val)

        return config

    def save(self) -> None:
        """Save config to ~/.config/collectra/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        data: dict[str, Any] = {"resolution": asdict(self.resolution)}
        if self.defaults != DefaultsConfig():
            data["defaults"] = asdict(self.defaults)
        with open(CONFIG_FILE, "w") as f:
            json.dump(data, f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display."""
        return {
            "resolution": asdict(self.resolution),
            "defaults": asdict(self.defaults),
        }


# =============================================================================
# Config dict application
# =============================================================================

_BOOL_FIELDS = {"include_zero_weight"}
_INT_FIELDS = {"seed"}


def _check_value(key: str, value: Any) -> Any:
    """Coerce a config.json value, raising ValueError for one that cannot be used."""
    if key in _INT_FIELDS:
        return int(value)
    if key in _BOOL_FIELDS:
        return bool(value)
    if key == "default_pick_mode":
        return PickMode(value).value
    if key == "default_tag_inheritance":
        TagInheritance.parse(str(value))
        return str(value)
    if key == "log_level":
        if str(value).upper() not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return str(value).upper()
    return value


def _apply_dict(config: CollectraConfig, data: dict) -> None:
    """Apply a dict of values onto a CollectraConfig, skipping invalid ones."""
    for section_name in ("resolution", "defaults"):
        section = data.get(section_name)
        if not isinstance(section, dict):
            continue
        target = getattr(config, section_name)
        for k, v in section.items():
            if not hasattr(target, k):
                continue
            try:
                v = _check_value(k, v)
            except (TypeError, ValueError):
                logger.warning(
                    "Invalid %s.%s=%r in %s, ignoring", section_name, k, v, CONFIG_FILE
                )
                continue
            setattr(target, k, v)


# =============================================================================
# Global config singleton
# =============================================================================

_config: CollectraConfig | None = None


def get_config() -> CollectraConfig:
    """Get the global CollectraConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Use configure() to replace the global config programmatically.
    """
    global _config
    if _config is None:
        _config = CollectraConfig.load()
    return _config


def configure(config: CollectraConfig) -> None:
    """Set the global CollectraConfig programmatically."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
