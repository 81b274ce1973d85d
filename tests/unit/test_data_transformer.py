"""
Unit tests for issue normalization
"""

import pytest

from transformer.data_transformer import (
    DERIVED_TASKS,
    MAX_TEXT_LENGTH,
    DataTransformer,
    clean_text,
)


class TestCleanText:
    """Test text cleaning"""

    def test_collapses_whitespace_and_line_endings(self):
        assert clean_text("  Line one\r\nLine\ttwo\r\r\n\n  three  ") == "Line one Line two three"

    def test_non_strings_become_empty(self):
        assert clean_text(None) == ""
        assert clean_text(42) == ""
        assert clean_text({"type": "doc"}) == ""

    def test_caps_length(self):
        assert len(clean_text("x" * (MAX_TEXT_LENGTH + 500))) == MAX_TEXT_LENGTH

    @pytest.mark.parametrize("text", [
        "a  b\n\nc",
        " \t\r\n ",
        "y" * (MAX_TEXT_LENGTH - 1) + " tail",
        ("word " * 3000),
        " unicode spaces ",
    ])
    def test_idempotent_and_bounded(self, text):
        once = clean_text(text)
        assert clean_text(once) == once
        assert len(once) <= MAX_TEXT_LENGTH


class TestDataTransformer:
    """Test normalization of raw issues"""

    def test_normalize_full_issue(self, issue_factory):
        issue = issue_factory(
            "SPARK-1",
            summary="  Crash on\r\nstartup ",
            description="Stack trace\n\n  attached",
            comments=["First", "   ", "Second"],
        )

        record = DataTransformer().normalize(issue)

        assert record == {
            "id": "SPARK-1",
            "title": "Crash on startup",
            "description": "Stack trace attached",
            "status": "Open",
            "reporter": "Alice",
            "assignee": "Bob",
            "created": "2024-01-15T10:00:00.000+0000",
            "updated": "2024-01-16T10:00:00.000+0000",
            "comments": ["First", "Second"],
            "derived_tasks": DERIVED_TASKS,
        }

    def test_missing_optional_fields_use_defaults(self):
        record = DataTransformer().normalize({"key": "SPARK-2", "fields": {}})

        assert record["id"] == "SPARK-2"
        assert record["title"] == ""
        assert record["description"] == ""
        assert record["status"] == "Unknown"
        assert record["reporter"] == "Unknown"
        assert record["assignee"] is None
        assert record["created"] is None
        assert record["updated"] is None
        assert record["comments"] == []

    def test_null_fields_use_defaults(self):
        issue = {"key": "SPARK-3", "fields": {
            "summary": None, "status": None, "reporter": None,
            "assignee": None, "created": None, "comment": None,
        }}

        record = DataTransformer().normalize(issue)

        assert record["status"] == "Unknown"
        assert record["reporter"] == "Unknown"
        assert record["assignee"] is None
        assert record["comments"] == []

    @pytest.mark.parametrize("issue", [
        None,
        "SPARK-4",
        {"fields": {"summary": "no key"}},
        {"key": "", "fields": {}},
        {"key": "SPARK-4"},
        {"key": "SPARK-4", "fields": None},
    ])
    def test_invalid_issues_return_none(self, issue):
        assert DataTransformer().normalize(issue) is None

    def test_comment_cap_keeps_first_ten_in_order(self, issue_factory):
        bodies = [f"Comment {i}" for i in range(25)]

        record = DataTransformer().normalize(issue_factory("SPARK-5", comments=bodies))

        assert record["comments"] == bodies[:10]

    def test_comment_shapes(self):
        transformer = DataTransformer()
        assert transformer.extract_comments({"comment": [{"body": "bare list"}]}) == ["bare list"]
        assert transformer.extract_comments({"comments": [{"body": "enriched"}]}) == ["enriched"]
        assert transformer.extract_comments({"comment": {"comments": "oops"}}) == []

    def test_flattened_people_and_status(self):
        issue = {"key": "SPARK-6", "fields": {
            "status": "Resolved",
            "reporter": "Carol",
            "assignee": {"name": "dave"},
        }}

        record = DataTransformer().normalize(issue)

        assert record["status"] == "Resolved"
        assert record["reporter"] == "Carol"
        assert record["assignee"] == "dave"

    def test_derived_tasks_are_independent_copies(self, issue_factory):
        transformer = DataTransformer()
        first = transformer.normalize(issue_factory("SPARK-7"))
        second = transformer.normalize(issue_factory("SPARK-8", summary="Different"))

        first["derived_tasks"]["qna"] = "changed"

        assert second["derived_tasks"] == DERIVED_TASKS
        assert set(DERIVED_TASKS) == {"summarization", "classification", "qna", "code_analysis"}
