"""
Jira API client with retry and failure classification.
"""
import logging
from typing import Dict, List, NamedTuple, Optional

import requests

from config import PipelineConfig
from utils.errors import FailureKind, FetchError
from utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


class PageResult(NamedTuple):
    issues: List[Dict]
    total: int
    start_at: int


def classify_error(exc: requests.exceptions.RequestException) -> FetchError:
    """
    Convert a transport or HTTP error into a classified FetchError.

    Args:
        exc: Error raised by requests

    Returns:
        FetchError with the matching FailureKind
    """
    status_code = None
    response = getattr(exc, "response", None)
    if response is not None:
        status_code = response.status_code

    if isinstance(exc, requests.exceptions.ConnectionError) and not isinstance(
        exc, requests.exceptions.ConnectTimeout
    ):
        kind = FailureKind.CONNECTIVITY
    elif isinstance(exc, (
        requests.exceptions.Timeout,
        requests.exceptions.ChunkedEncodingError
    )):
        # Slow or truncated responses are server-side
        kind = FailureKind.SERVER
    elif status_code == 429:
        kind = FailureKind.RATE_LIMITED
    elif status_code is not None and status_code >= 500:
        kind = FailureKind.SERVER
    else:
        kind = FailureKind.UNCLASSIFIED

    return FetchError(str(exc)[:200], kind, status_code)


class JiraClient:
    """Client for the Jira REST search API."""

    def __init__(
        self,
        config: PipelineConfig,
        session: Optional[requests.Session] = None,
        backoff_initial_delay: float = 1.0,
        backoff_max_delay: float = 60.0
    ):
        """
        Initialize Jira client.

        Args:
            config: Pipeline configuration (base URL, timeout, fields, retries)
            session: Pre-built session, mainly for tests
            backoff_initial_delay: First low-level retry delay in seconds
            backoff_max_delay: Upper bound of the low-level retry delay
        """
        self.base_url = config.api_base_url.rstrip('/')
        self.timeout = config.request_timeout
        self.fields = list(config.issue_fields)
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': 'Jira-Ingest/1.0'
        })
        if session is None:
            # Retries are handled by retry_with_backoff, not urllib3
            adapter = requests.adapters.HTTPAdapter(
                pool_connections=4,
                pool_maxsize=4,
                max_retries=0
            )
            self.session.mount('https://', adapter)
            self.session.mount('http://', adapter)

        self._get_json = retry_with_backoff(
            max_retries=config.retry_count,
            initial_delay=backoff_initial_delay,
            max_delay=backoff_max_delay
        )(self._request)

    def _request(self, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """
        Issue one GET request and decode the JSON body.

        Raises:
            requests.exceptions.RequestException: On transport or HTTP failure
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise requests.exceptions.InvalidJSONError(
                f"Invalid JSON from {url}: {e}", response=response
            ) from e

    def fetch_page(self, project_key: str, start_at: int, max_results: int) -> PageResult:
        """
        Fetch one page of issues for a project.

        Args:
            project_key: Jira project key
            start_at: Offset of the first issue of the page
            max_results: Page size

        Returns:
            PageResult with the raw issues and the total reported by the API

        Raises:
            FetchError: If the page could not be fetched after low-level retries
        """
        params = {
            "jql": f"project={project_key} ORDER BY created ASC",
            "startAt": start_at,
            "maxResults": max_results,
            "fields": ",".join(self.fields)
        }

        try:
            data = self._get_json("search", params=params)
        except requests.exceptions.RequestException as e:
            error = classify_error(e)
            error.context.update({"project": project_key, "start_at": start_at})
            raise error from e

        if not isinstance(data, dict):
            raise FetchError(
                "Unexpected search response",
                FailureKind.UNCLASSIFIED,
                context={"project": project_key, "start_at": start_at},
            )

        issues = data.get("issues") or []
        total = data.get("total")
        if not isinstance(total, int):
            total = start_at + len(issues)
        return PageResult(issues, total, start_at)

    def test_connection(self) -> bool:
        """
        Test connection to Jira API.

        A single attempt, without the low-level retries.

        Returns:
            True if connection is successful
        """
        try:
            self._request("serverInfo")
            logger.info("Successfully connected to Jira API")
            return True
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to connect to Jira API: {e}")
            return False
