"""
Stream normalized issues from stored raw pages into JSONL files.
"""
import json
import logging
import math
import os
from pathlib import Path
from typing import List, NamedTuple, Optional

from config import PipelineConfig
from scraper.page_sink import RawPageSink
from transformer.data_transformer import DataTransformer
from utils.reporter import LoggingReporter, Reporter

logger = logging.getLogger(__name__)


class TransformResult(NamedTuple):
    project: str
    written: int
    invalid: int
    unreadable_pages: int
    output_path: Optional[Path]


def format_file_size(size: int) -> str:
    """Format a byte count in human readable form."""
    units = ["Bytes", "KB", "MB", "GB"]
    if size <= 0:
        return "0 Bytes"
    i = min(int(math.log(size, 1024)), len(units) - 1)
    return f"{round(size / 1024 ** i, 2)} {units[i]}"


class TransformStreamWriter:
    """Reads a project's raw pages in page order and writes one record per line."""

    def __init__(
        self,
        config: PipelineConfig,
        sink: Optional[RawPageSink] = None,
        transformer: Optional[DataTransformer] = None,
        reporter: Optional[Reporter] = None
    ):
        self.config = config
        self.sink = sink or RawPageSink(config.raw_storage_path)
        self.transformer = transformer or DataTransformer()
        self.reporter = reporter or LoggingReporter(logger)

    def output_path(self, project: str) -> Path:
        return self.config.final_storage_path / f"{project}_issues.jsonl"

    def transform(self, project: str) -> TransformResult:
        """
        Transform all stored pages of a project.

        Args:
            project: Jira project key

        Returns:
            TransformResult with the number of records written

        Raises:
            OSError: If the output file cannot be written
        """
        pages = self.sink.list_pages(project)
        if not pages:
            self.reporter.warning("no_raw_pages", project=project, raw_dir=str(self.sink.raw_dir))
            return TransformResult(project, 0, 0, 0, None)

        output_path = self.output_path(project)
        tmp_path = output_path.with_name(output_path.name + ".tmp")
        output_path.parent.mkdir(parents=True, exist_ok=True)

        written = 0
        invalid = 0
        unreadable = 0
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                for page, path in pages:
                    try:
                        issues = self.sink.read_page(path)
                    except (OSError, ValueError) as e:
                        unreadable += 1
                        self.reporter.error("page_unreadable", project=project, page=page, error=str(e))
                        continue

                    page_written = 0
                    for issue in issues:
                        record = self.transformer.normalize(issue)
                        if record is None:
                            invalid += 1
                            continue
                        f.write(json.dumps(record, ensure_ascii=False) + '\n')
                        page_written += 1

                    written += page_written
                    self.reporter.debug("page_transformed", project=project, page=page, records=page_written)
            os.replace(tmp_path, output_path)
        except OSError:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

        if invalid:
            self.reporter.warning("invalid_issues_dropped", project=project, count=invalid)

        self.reporter.info(
            "transform_completed",
            project=project,
            records=written,
            output=str(output_path),
            size=format_file_size(output_path.stat().st_size),
        )
        return TransformResult(project, written, invalid, unreadable, output_path)

    def transform_all_projects(self, projects: List[str]) -> List[TransformResult]:
        """Transform projects one after another; one failure does not stop the rest."""
        results = []
        for project in projects:
            try:
                results.append(self.transform(project))
            except OSError as e:
                self.reporter.error("transform_failed", project=project, error=str(e))
        return results
