"""
Pytest configuration and fixtures
"""

import pytest

from config import PipelineConfig
from scraper.jira_client import PageResult
from utils.errors import FetchError
from utils.reporter import Reporter


class RecordingReporter(Reporter):
    """Keeps every emitted event for assertions"""

    def __init__(self):
        self.events = []

    def emit(self, level, event, fields):
        self.events.append((level, event, dict(fields)))

    def names(self):
        return [event for _, event, _ in self.events]

    def find(self, name):
        return [fields for _, event, fields in self.events if event == name]


class ScriptedClient:
    """
    Fake page fetcher.

    ``pages`` maps a start offset to a list of outcomes consumed in order;
    an outcome is either a list of issues or a FetchError to raise. The
    last outcome of an offset repeats once the list is exhausted.
    """

    def __init__(self, total, pages, connected=True):
        self.total = total
        self.pages = {start: list(outcomes) for start, outcomes in pages.items()}
        self.connected = connected
        self.calls = []

    def fetch_page(self, project_key, start_at, max_results):
        self.calls.append((project_key, start_at, max_results))
        outcomes = self.pages.get(start_at, [[]])
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, FetchError):
            raise outcome
        return PageResult(list(outcome), self.total, start_at)

    def test_connection(self):
        return self.connected


def make_issue(key, summary="Summary", description="Description", comments=None, **fields):
    """Build a raw issue in the shape the search API returns"""
    issue_fields = {
        "summary": summary,
        "description": description,
        "status": {"name": "Open"},
        "reporter": {"displayName": "Alice"},
        "assignee": {"displayName": "Bob"},
        "created": "2024-01-15T10:00:00.000+0000",
        "updated": "2024-01-16T10:00:00.000+0000",
        "comment": {"comments": [{"body": body} for body in (comments or [])]},
    }
    issue_fields.update(fields)
    return {"key": key, "fields": issue_fields}


@pytest.fixture
def config(tmp_path):
    """Pipeline configuration rooted in a temporary directory"""
    return PipelineConfig(
        projects=["DEMO"],
        page_size=2,
        retry_count=0,
        base_retry_delay_ms=1000,
        raw_storage_path=tmp_path / "raw",
        final_storage_path=tmp_path / "final",
        checkpoint_file_path=tmp_path / "progress.json",
        page_retry_limit=3,
        show_progress=False,
    )


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def sleeps():
    """Collects requested sleep durations instead of sleeping"""
    return []


@pytest.fixture
def scripted_client():
    return ScriptedClient


@pytest.fixture
def issue_factory():
    return make_issue


@pytest.fixture
def fixed_clock():
    return lambda: "2024-01-20T00:00:00+00:00"
