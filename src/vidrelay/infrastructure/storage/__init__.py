"""Storage package."""

from vidrelay.infrastructure.storage.temp_storage import TempStorage

__all__ = ["TempStorage"]
