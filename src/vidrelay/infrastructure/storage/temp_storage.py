"""Temporary storage management."""

import tempfile
import shutil
import threading
from pathlib import Path
from typing import Optional, Dict

from vidrelay.shared.logging import get_logger

logger = get_logger(__name__)


class TempStorage:
    """
    Manages transient workspaces used while encoding.
    Implements ITempStorage protocol.
    """

    def __init__(self, base_dir: Optional[Path] = None, prefix: str = 'vidrelay_'):
        """
        Initialize temp storage manager.

        Args:
            base_dir: Base directory for temp files (defaults to system temp)
            prefix: Directory name prefix for workspaces
        """
        self.base_dir = Path(base_dir) if base_dir else Path(tempfile.gettempdir())
        self.prefix = prefix
        self._logger = get_logger(__name__)
        self._lock = threading.Lock()
        self._workspaces: Dict[str, Path] = {}

    def create_workspace(self, job_id: str) -> Path:
        """Create a fresh workspace directory for a job."""
        self.base_dir.mkdir(parents=True, exist_ok=True)
        workspace = Path(tempfile.mkdtemp(prefix=f"{self.prefix}{job_id}_", dir=self.base_dir))

        with self._lock:
            self._workspaces[job_id] = workspace
        self._logger.debug(f"Created workspace: {workspace}")

        return workspace

    def cleanup(self, workspace: Path) -> None:
        """
        Remove a workspace directory.

        Raises:
            OSError: If the directory exists but cannot be removed
        """
        with self._lock:
            for job_id, ws in list(self._workspaces.items()):
                if ws == workspace:
                    del self._workspaces[job_id]

        if not workspace.exists():
            return

        shutil.rmtree(workspace)
        self._logger.debug(f"Cleaned up workspace: {workspace}")

    def cleanup_quietly(self, workspace: Path) -> bool:
        """Best-effort cleanup; failures are logged and reported as False."""
        try:
            self.cleanup(workspace)
            return True
        except OSError as e:
            self._logger.warning(f"Failed to cleanup workspace {workspace}: {e}")
            return False

    def cleanup_all(self) -> int:
        """
        Remove every workspace still tracked, e.g. left behind by an encode
        interrupted at shutdown. Returns how many were removed.
        """
        with self._lock:
            leftovers = list(self._workspaces.values())

        removed = sum(1 for workspace in leftovers if self.cleanup_quietly(workspace))
        if leftovers:
            self._logger.info(f"Removed {removed}/{len(leftovers)} leftover workspaces")
        return removed

