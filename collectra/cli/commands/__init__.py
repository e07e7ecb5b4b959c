"""CLI commands for collectra."""

from . import (
    config_cmd,
    flatten,
    inspect,
    pick,
    validate,
)

__all__ = [
    "config_cmd",
    "flatten",
    "inspect",
    "pick",
    "validate",
]
