"""Command-line interface for collectra."""

from .app import app

__all__ = ["app"]
