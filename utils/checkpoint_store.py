"""
Checkpoint persistence for resuming interrupted ingestion runs.
"""
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, NamedTuple, Optional

from utils.errors import CheckpointError

logger = logging.getLogger(__name__)


class Checkpoint(NamedTuple):
    project: str
    last_completed_page: int
    saved_at: Optional[str] = None


class CheckpointStore:
    """
    Durable mapping of project key to last completed page.

    The whole document is read, updated and rewritten on every save, so
    entries for other projects are preserved.
    """

    def __init__(self, checkpoint_file: Path):
        """
        Initialize checkpoint store.

        Args:
            checkpoint_file: Path to the progress document
        """
        self.checkpoint_file = Path(checkpoint_file)

    def _read_all(self) -> Dict:
        if not self.checkpoint_file.exists():
            return {}
        with open(self.checkpoint_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Checkpoint document is not a mapping: {type(data).__name__}")
        return data

    def get(self, project: str) -> Optional[Checkpoint]:
        """
        Get the checkpoint for a project.

        A missing, unreadable or malformed entry is treated as no
        checkpoint, so the project starts fresh.
        """
        try:
            entry = self._read_all().get(project)
        except (json.JSONDecodeError, ValueError, OSError) as e:
            logger.warning(f"Failed to load checkpoint for {project}: {e}. Starting fresh.")
            return None

        if not isinstance(entry, dict):
            return None
        page = entry.get("lastPage")
        if not isinstance(page, int) or isinstance(page, bool) or page < 0:
            logger.warning(f"Ignoring malformed checkpoint for {project}: {entry}")
            return None
        return Checkpoint(project, page, entry.get("timestamp"))

    def load(self, project: str) -> int:
        """Return the last completed page for a project, or 0 when none exists."""
        checkpoint = self.get(project)
        return checkpoint.last_completed_page if checkpoint else 0

    def _write_all(self, data: Dict, context: Dict):
        """
        Atomically replace the checkpoint document.

        Raises:
            CheckpointError: If the document cannot be written
        """
        tmp_file = self.checkpoint_file.with_name(self.checkpoint_file.name + ".tmp")
        try:
            self.checkpoint_file.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_file, self.checkpoint_file)
        except OSError as e:
            if tmp_file.exists():
                tmp_file.unlink()
            raise CheckpointError(
                "Failed to save checkpoint",
                dict(context, path=str(self.checkpoint_file)),
            ) from e

    def save(self, project: str, page: int) -> Checkpoint:
        """
        Record ``page`` as the last completed page of ``project``.

        Raises:
            CheckpointError: If the document cannot be written
        """
        try:
            data = self._read_all()
        except (json.JSONDecodeError, ValueError, OSError) as e:
            logger.warning(f"Checkpoint file unreadable, rewriting it: {e}")
            data = {}

        saved_at = datetime.now(timezone.utc).isoformat()
        data[project] = {"lastPage": page, "timestamp": saved_at}
        self._write_all(data, {"project": project, "page": page})

        logger.debug(f"Progress saved: {project} - page {page}")
        return Checkpoint(project, page, saved_at)

    def reset(self, project: Optional[str] = None):
        """
        Forget one project's checkpoint, or all of them.

        Raises:
            CheckpointError: If the updated document cannot be written
        """
        if project is None:
            if self.checkpoint_file.exists():
                self.checkpoint_file.unlink()
            logger.info("Checkpoints reset")
            return
        try:
            data = self._read_all()
        except (json.JSONDecodeError, ValueError, OSError):
            data = {}
        if data.pop(project, None) is not None:
            self._write_all(data, {"project": project})
            logger.info(f"Checkpoint reset for {project}")
