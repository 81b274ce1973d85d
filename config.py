"""
Configuration settings for the Jira ingestion pipeline.
"""
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

# Base directory
BASE_DIR = Path(__file__).parent

# Apache Jira base URL
JIRA_BASE_URL = "https://issues.apache.org/jira/rest/api/2"

# Projects to ingest
PROJECTS = ["SPARK", "HADOOP", "KAFKA"]

# Pagination
ISSUES_PER_PAGE = 50

# Retry configuration
MAX_RETRIES = 5
RETRY_DELAY_MS = 2000  # milliseconds
TIMEOUT = 30  # seconds
RATE_LIMIT_MULTIPLIER = 3
SERVER_ERROR_MULTIPLIER = 2
PAGE_RETRY_LIMIT = 10

# What to do when a page fails for an unclassified reason
UNCLASSIFIED_POLICIES = ("skip", "retry", "abort")
UNCLASSIFIED_FAILURE_POLICY = "skip"

# Output directories
DATA_DIR = BASE_DIR / "data"
RAW_DATA_DIR = DATA_DIR / "raw"
FINAL_DATA_DIR = DATA_DIR / "final"

# Progress file
PROGRESS_FILE = BASE_DIR / "progress.json"

# Fields to request
ISSUE_FIELDS = [
    "key",
    "summary",
    "description",
    "status",
    "reporter",
    "assignee",
    "created",
    "updated",
    "comment",
]


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable settings handed to the client, scraper and transformer."""

    api_base_url: str = JIRA_BASE_URL
    projects: Tuple[str, ...] = tuple(PROJECTS)
    page_size: int = ISSUES_PER_PAGE
    retry_count: int = MAX_RETRIES
    base_retry_delay_ms: int = RETRY_DELAY_MS
    request_timeout: float = TIMEOUT
    raw_storage_path: Path = RAW_DATA_DIR
    final_storage_path: Path = FINAL_DATA_DIR
    checkpoint_file_path: Path = PROGRESS_FILE
    issue_fields: Tuple[str, ...] = tuple(ISSUE_FIELDS)
    rate_limit_multiplier: int = RATE_LIMIT_MULTIPLIER
    server_error_multiplier: int = SERVER_ERROR_MULTIPLIER
    page_retry_limit: int = PAGE_RETRY_LIMIT
    unclassified_failure_policy: str = UNCLASSIFIED_FAILURE_POLICY
    checkpoint_failure_fatal: bool = True
    refetch_last_page: bool = True
    show_progress: bool = True
    log_level: str = "INFO"

    def __post_init__(self):
        # Coerce list/str inputs so callers can pass plain values
        object.__setattr__(self, "projects", tuple(self.projects))
        object.__setattr__(self, "issue_fields", tuple(self.issue_fields))
        object.__setattr__(self, "raw_storage_path", Path(self.raw_storage_path))
        object.__setattr__(self, "final_storage_path", Path(self.final_storage_path))
        object.__setattr__(self, "checkpoint_file_path", Path(self.checkpoint_file_path))

        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")
        if self.retry_count < 0:
            raise ValueError(f"retry_count must not be negative, got {self.retry_count}")
        if self.base_retry_delay_ms < 0:
            raise ValueError(
                f"base_retry_delay_ms must not be negative, got {self.base_retry_delay_ms}"
            )
        if self.page_retry_limit <= 0:
            raise ValueError(f"page_retry_limit must be positive, got {self.page_retry_limit}")
        if self.unclassified_failure_policy not in UNCLASSIFIED_POLICIES:
            raise ValueError(
                f"unclassified_failure_policy must be one of {UNCLASSIFIED_POLICIES}, "
                f"got {self.unclassified_failure_policy!r}"
            )

    @property
    def base_delay(self) -> float:
        """Base inter-page delay in seconds."""
        return self.base_retry_delay_ms / 1000.0

    def with_overrides(self, **changes) -> "PipelineConfig":
        return replace(self, **changes)

    @classmethod
    def from_env(cls, projects: Optional[List[str]] = None) -> "PipelineConfig":
        """
        Build configuration from environment variables (and a .env file).

        Args:
            projects: Explicit project list, overriding JIRA_PROJECTS

        Returns:
            PipelineConfig instance
        """
        return cls(
            api_base_url=os.getenv("JIRA_BASE_URL", JIRA_BASE_URL),
            projects=projects or _env_list("JIRA_PROJECTS", PROJECTS),
            page_size=_env_int("PAGE_SIZE", ISSUES_PER_PAGE),
            retry_count=_env_int("RETRY_COUNT", MAX_RETRIES),
            base_retry_delay_ms=_env_int("RETRY_DELAY_MS", RETRY_DELAY_MS),
            request_timeout=_env_int("REQUEST_TIMEOUT", TIMEOUT),
            raw_storage_path=Path(os.getenv("RAW_DATA_PATH", str(RAW_DATA_DIR))),
            final_storage_path=Path(os.getenv("FINAL_DATA_PATH", str(FINAL_DATA_DIR))),
            checkpoint_file_path=Path(os.getenv("PROGRESS_FILE", str(PROGRESS_FILE))),
            page_retry_limit=_env_int("PAGE_RETRY_LIMIT", PAGE_RETRY_LIMIT),
            unclassified_failure_policy=os.getenv(
                "UNCLASSIFIED_FAILURE_POLICY", UNCLASSIFIED_FAILURE_POLICY
            ).lower(),
            checkpoint_failure_fatal=_env_bool("CHECKPOINT_FAILURE_FATAL", True),
            refetch_last_page=_env_bool("REFETCH_LAST_PAGE", True),
            show_progress=_env_bool("SHOW_PROGRESS", True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
