"""Presentation layer package."""

from vidrelay.presentation.cli import main

__all__ = ["main"]
