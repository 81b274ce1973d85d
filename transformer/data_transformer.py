"""
Normalize raw Jira issues into flat records for downstream LLM tasks.
"""
import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 10000
MAX_COMMENTS = 10

DERIVED_TASKS = {
    "summarization": "Summarize the issue and comments.",
    "classification": "Classify the issue type and priority.",
    "qna": "Generate Q&A pairs from description and comments.",
    "code_analysis": "Analyze any code snippets or technical details.",
}

_WHITESPACE = re.compile(r'\s+')


def clean_text(text: Any) -> str:
    """
    Clean and normalize text.

    Line endings are unified, whitespace runs collapse to one space, the
    ends are trimmed and the result is capped at MAX_TEXT_LENGTH.
    Applying it twice gives the same result as applying it once.
    """
    if not text or not isinstance(text, str):
        return ""

    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = _WHITESPACE.sub(' ', text).strip()
    return text[:MAX_TEXT_LENGTH].rstrip()


def _display_name(value: Any, *attrs: str) -> Optional[str]:
    """Name of a Jira object (``{"displayName": ...}``) or an already flat string."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        for attr in attrs:
            name = value.get(attr)
            if isinstance(name, str) and name:
                return name
    return None


def _timestamp(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


class DataTransformer:
    """Maps raw Jira issues to the flat normalized schema."""

    def normalize(self, issue: Any) -> Optional[Dict]:
        """
        Normalize a single issue.

        Args:
            issue: Raw issue dictionary as stored by the scraper

        Returns:
            Normalized record, or None when the issue has no key or no
            fields and cannot be repaired
        """
        if not isinstance(issue, dict):
            logger.debug("Skipping invalid issue: not an object")
            return None

        key = issue.get("key")
        fields = issue.get("fields")
        if not key or not isinstance(key, str) or not isinstance(fields, dict):
            logger.debug(f"Skipping invalid issue: {key or 'unknown'}")
            return None

        try:
            return {
                "id": key,
                "title": clean_text(fields.get("summary")),
                "description": clean_text(fields.get("description")),
                "status": _display_name(fields.get("status"), "name") or "Unknown",
                "reporter": _display_name(fields.get("reporter"), "displayName", "name") or "Unknown",
                "assignee": _display_name(fields.get("assignee"), "displayName", "name"),
                "created": _timestamp(fields.get("created")),
                "updated": _timestamp(fields.get("updated")),
                "comments": self.extract_comments(fields),
                "derived_tasks": dict(DERIVED_TASKS),
            }
        except Exception as e:
            logger.warning(f"Failed to transform issue {key}: {e}")
            return None

    def extract_comments(self, fields: Dict) -> List[str]:
        """
        Extract up to MAX_COMMENTS cleaned, non-empty comment bodies.

        Accepts the API shape (``comment.comments``), a bare list under
        ``comment`` and an enriched ``comments`` list.
        """
        container = fields.get("comment")
        if isinstance(container, dict):
            entries = container.get("comments")
        elif isinstance(container, list):
            entries = container
        else:
            entries = fields.get("comments")

        if not isinstance(entries, list):
            return []

        comments = []
        for entry in entries:
            body = entry.get("body") if isinstance(entry, dict) else entry
            text = clean_text(body)
            if text:
                comments.append(text)
                if len(comments) >= MAX_COMMENTS:
                    break
        return comments
