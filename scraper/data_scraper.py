"""
Main data scraper that drives checkpointed, paginated ingestion from Jira.
"""
import logging
import time
from enum import Enum
from typing import Callable, List, NamedTuple, Optional

from tqdm import tqdm

from config import PipelineConfig
from scraper.jira_client import JiraClient
from scraper.page_sink import RawPageSink
from utils.checkpoint_store import CheckpointStore
from utils.errors import CheckpointError, FetchError, PageStoreError
from utils.reporter import LoggingReporter, Reporter
from utils.retry import RetryAction, RetryPolicy

logger = logging.getLogger(__name__)


class IngestionState(Enum):
    IDLE = "idle"
    RESUMING = "resuming"
    FETCHING = "fetching"
    STORING = "storing"
    CHECKPOINTING = "checkpointing"
    DELAYING = "delaying"
    DONE = "done"
    ABORTED = "aborted"


class IngestionResult(NamedTuple):
    project: str
    state: IngestionState
    pages_stored: int
    pages_skipped: int
    issues_stored: int
    total: Optional[int]
    last_page: Optional[int]
    reason: str = ""

    @property
    def completed(self) -> bool:
        return self.state is IngestionState.DONE


class DataScraper:
    """Fetches every page of a project, storing and checkpointing each one."""

    def __init__(
        self,
        config: PipelineConfig,
        client: Optional[JiraClient] = None,
        sink: Optional[RawPageSink] = None,
        checkpoints: Optional[CheckpointStore] = None,
        policy: Optional[RetryPolicy] = None,
        reporter: Optional[Reporter] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize data scraper.

        Args:
            config: Pipeline configuration
            client: Remote page fetcher
            sink: Raw page storage
            checkpoints: Checkpoint store for resume capability
            policy: Reaction to classified fetch failures
            reporter: Receives structured progress and failure events
            sleep: Sleep function, replaceable in tests
        """
        self.config = config
        self.client = client or JiraClient(config)
        self.sink = sink or RawPageSink(config.raw_storage_path)
        self.checkpoints = checkpoints or CheckpointStore(config.checkpoint_file_path)
        self.policy = policy or RetryPolicy.from_config(config)
        self.reporter = reporter or LoggingReporter(logger)
        self.sleep = sleep
        self.state = IngestionState.IDLE

    def _start_page(self, project_key: str) -> int:
        checkpoint = self.checkpoints.get(project_key)
        if checkpoint is None:
            return 0
        start = checkpoint.last_completed_page
        if not self.config.refetch_last_page:
            start += 1
        self.reporter.info(
            "resuming",
            project=project_key,
            last_completed_page=checkpoint.last_completed_page,
            start_page=start,
        )
        return start

    def scrape_project(self, project_key: str) -> IngestionResult:
        """
        Ingest all remaining pages of one project.

        Args:
            project_key: Jira project key

        Returns:
            IngestionResult whose state is DONE or ABORTED

        Raises:
            PageStoreError: Only when storage is exhausted (disk full,
                read-only), which no other project could survive either
        """
        page_size = self.config.page_size
        self.state = IngestionState.RESUMING
        page = self._start_page(project_key)
        total: Optional[int] = None
        attempt = 0
        pages_stored = 0
        pages_skipped = 0
        issues_stored = 0
        last_page: Optional[int] = None
        pbar = None

        def finish(state: IngestionState, reason: str = "") -> IngestionResult:
            self.state = state
            if pbar is not None:
                pbar.close()
            result = IngestionResult(
                project_key, state, pages_stored, pages_skipped,
                issues_stored, total, last_page, reason
            )
            if state is IngestionState.DONE:
                self.reporter.info(
                    "project_completed",
                    project=project_key,
                    pages=pages_stored,
                    skipped=pages_skipped,
                    issues=issues_stored,
                    total=total,
                )
            else:
                self.reporter.error(
                    "project_aborted",
                    project=project_key,
                    reason=reason,
                    pages=pages_stored,
                    last_page=last_page,
                )
            return result

        self.reporter.info("project_started", project=project_key, start_page=page)

        while total is None or page * page_size < total:
            start_at = page * page_size
            self.state = IngestionState.FETCHING
            try:
                response = self.client.fetch_page(project_key, start_at, page_size)
            except FetchError as e:
                attempt += 1
                decision = self.policy.decide(attempt, e.kind)
                self.reporter.warning(
                    "fetch_failed",
                    project=project_key,
                    page=page,
                    attempt=attempt,
                    kind=e.kind.value,
                    status=e.status_code,
                    action=decision.action.value,
                    error=e.message,
                )
                if decision.action is RetryAction.RETRY:
                    self.sleep(decision.delay)
                    continue
                if decision.action is RetryAction.SKIP and total is not None:
                    pages_skipped += 1
                    page += 1
                    attempt = 0
                    if page * page_size < total:
                        self.state = IngestionState.DELAYING
                        self.sleep(self.config.base_delay)
                    continue
                if decision.action is RetryAction.SKIP:
                    return finish(IngestionState.ABORTED, "first page failed, total unknown")
                return finish(IngestionState.ABORTED, f"{e.kind.value} failure at page {page}")

            attempt = 0
            total = response.total
            issues = response.issues

            if pbar is None and self.config.show_progress:
                pbar = tqdm(
                    total=total,
                    initial=min(start_at, total),
                    desc=f"Ingesting {project_key}",
                    unit="issues"
                )

            if not issues:
                if start_at < total:
                    self.reporter.warning(
                        "empty_page_before_total",
                        project=project_key,
                        page=page,
                        total=total,
                    )
                break

            self.state = IngestionState.STORING
            try:
                self.sink.store(project_key, page, issues, total)
            except PageStoreError as e:
                if e.is_resource_exhaustion:
                    finish(IngestionState.ABORTED, str(e))
                    raise
                return finish(IngestionState.ABORTED, str(e))
            pages_stored += 1
            issues_stored += len(issues)
            last_page = page

            self.state = IngestionState.CHECKPOINTING
            try:
                self.checkpoints.save(project_key, page)
            except CheckpointError as e:
                if self.config.checkpoint_failure_fatal:
                    return finish(IngestionState.ABORTED, str(e))
                self.reporter.error("checkpoint_not_saved", project=project_key, page=page, error=str(e))

            self.reporter.debug(
                "page_stored",
                project=project_key,
                page=page,
                issues=len(issues),
                total=total,
            )
            if pbar is not None:
                pbar.update(len(issues))

            page += 1
            if page * page_size < total:
                self.state = IngestionState.DELAYING
                self.sleep(self.config.base_delay)

        return finish(IngestionState.DONE)

    def scrape_all_projects(self, project_keys: List[str]) -> List[IngestionResult]:
        """
        Ingest projects one after another.

        A failure in one project is reported and the next project proceeds.

        Args:
            project_keys: List of project keys to ingest

        Returns:
            One IngestionResult per project
        """
        self.reporter.info("ingestion_started", projects=",".join(project_keys))

        if not self.client.test_connection():
            self.reporter.warning("connection_check_failed", base_url=self.config.api_base_url)

        results = []
        for project_key in project_keys:
            try:
                results.append(self.scrape_project(project_key))
            except PageStoreError:
                raise
            except Exception as e:
                self.state = IngestionState.ABORTED
                self.reporter.error("project_failed", project=project_key, error=str(e))
                results.append(IngestionResult(
                    project_key, IngestionState.ABORTED, 0, 0, 0, None, None, str(e)
                ))

        completed = sum(1 for r in results if r.completed)
        self.reporter.info(
            "ingestion_finished",
            completed=completed,
            aborted=len(results) - completed,
            issues=sum(r.issues_stored for r in results),
        )
        return results
