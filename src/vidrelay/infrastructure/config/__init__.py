"""Configuration package."""

from vidrelay.infrastructure.config.loader import ConfigLoader, AppConfig

__all__ = ["ConfigLoader", "AppConfig"]
