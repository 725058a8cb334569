"""Command-line interface for flatxml."""

from .main import main

__all__ = ["main"]
