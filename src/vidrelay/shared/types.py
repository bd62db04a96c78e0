"""Common type definitions."""

from typing import Callable, Union
from pathlib import Path

# Type alias for paths
PathLike = Union[str, Path]

# (percent, message) -> None, percent in [0, 100]
ProgressCallback = Callable[[float, str], None]

# Injectable time sources
Clock = Callable[[], float]
Sleeper = Callable[[float], None]
