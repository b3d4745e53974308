"""Command-line interface for ZoneCert."""

from .main import cli

__all__ = ["cli"]
