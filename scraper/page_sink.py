"""
Durable storage of raw issue pages.
"""
import json
import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from utils.errors import PageStoreError

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RawPageSink:
    """
    Writes one JSON file per (project, page).

    Files are written to a temporary name and renamed into place, so a
    page is either fully present or absent. Storing the same page again
    replaces the previous file.
    """

    def __init__(self, raw_dir: Path, clock: Optional[Callable[[], str]] = None):
        """
        Args:
            raw_dir: Directory holding raw page files
            clock: Returns the fetch timestamp written into each page
        """
        self.raw_dir = Path(raw_dir)
        self.clock = clock or _utc_now

    def page_path(self, project: str, page: int) -> Path:
        return self.raw_dir / f"{project}_page_{page}.json"

    def store(self, project: str, page: int, issues: List[Dict], total: int) -> Path:
        """
        Persist one page of raw issues.

        Args:
            project: Jira project key
            page: Zero-based page index
            issues: Raw issue dictionaries as returned by the API
            total: Total number of issues the API reported for the project

        Returns:
            Path of the written file

        Raises:
            PageStoreError: If the page could not be written
        """
        target = self.page_path(project, page)
        tmp = target.with_name(target.name + ".tmp")
        data = {
            "project": project,
            "page": page,
            "fetched_at": self.clock(),
            "total": total,
            "count": len(issues),
            "issues": issues,
        }

        try:
            self.raw_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        except (OSError, TypeError, ValueError) as e:
            try:
                tmp.unlink()
            except OSError:
                pass
            raise PageStoreError(
                "Failed to save raw page",
                {"project": project, "page": page, "path": str(target), "error": str(e)},
            ) from e

        logger.debug(f"Saved {len(issues)} issues to {target}")
        return target

    def list_pages(self, project: str) -> List[Tuple[int, Path]]:
        """
        List stored pages of a project, ordered by page index.

        Returns:
            List of (page index, path) tuples
        """
        if not self.raw_dir.is_dir():
            return []

        pattern = re.compile(rf"^{re.escape(project)}_page_(\d+)\.json$")
        pages = []
        for path in self.raw_dir.iterdir():
            match = pattern.match(path.name)
            if match and path.is_file():
                pages.append((int(match.group(1)), path))
        pages.sort(key=lambda item: item[0])
        return pages

    @staticmethod
    def read_page(path: Path) -> List[Dict]:
        """
        Read the issues of one stored page.

        Handles both the legacy format (a bare list of issues) and the
        current format (an object wrapping an ``issues`` list).

        Raises:
            ValueError: If the file holds neither format
            OSError: If the file cannot be read
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            issues = data.get("issues") or []
            if not isinstance(issues, list):
                raise ValueError(f"'issues' in {path} is not a list")
            return issues
        raise ValueError(f"Unexpected page format in {path}: {type(data).__name__}")
