"""
Main entry point for the Jira ingestion and transformation pipeline.
"""
import argparse
import logging
import signal
import sys
import time
from typing import List, Optional

from config import PipelineConfig
from scraper.data_scraper import DataScraper
from transformer.stream_writer import TransformStreamWriter
from utils.checkpoint_store import CheckpointStore

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Configure logging to a file and stdout."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('pipeline.log'),
            logging.StreamHandler(sys.stdout)
        ]
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _handle_termination(signum, frame):
    logger.warning(f"Received {signal.Signals(signum).name}, shutting down gracefully...")
    sys.exit(0)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest Jira issues and transform them to JSONL")
    parser.add_argument(
        "--projects",
        help="Comma-separated project keys (defaults to JIRA_PROJECTS or the built-in list)"
    )
    parser.add_argument("--skip-scrape", action="store_true", help="Only transform stored pages")
    parser.add_argument("--skip-transform", action="store_true", help="Only fetch and store pages")
    parser.add_argument(
        "--reset-checkpoints",
        action="store_true",
        help="Forget saved progress of the selected projects before starting"
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function."""
    args = parse_args(argv)
    projects = None
    if args.projects:
        projects = [p.strip() for p in args.projects.split(",") if p.strip()]
    config = PipelineConfig.from_env(projects=projects)

    setup_logging(config.log_level)
    signal.signal(signal.SIGTERM, _handle_termination)

    logger.info("=" * 60)
    logger.info("Jira Ingestion and Transformation Pipeline")
    logger.info("=" * 60)
    logger.info(f"Projects: {', '.join(config.projects)}")
    logger.info(f"Page size: {config.page_size}, retry count: {config.retry_count}")

    start_time = time.monotonic()
    try:
        if args.reset_checkpoints:
            checkpoints = CheckpointStore(config.checkpoint_file_path)
            for project in config.projects:
                checkpoints.reset(project)

        if not args.skip_scrape:
            scraper = DataScraper(config)
            results = scraper.scrape_all_projects(list(config.projects))
            for result in results:
                logger.info(
                    f"{result.project}: {result.state.value}, "
                    f"{result.pages_stored} pages, {result.issues_stored} issues"
                    + (f" ({result.reason})" if result.reason else "")
                )

        if not args.skip_transform:
            writer = TransformStreamWriter(config)
            for result in writer.transform_all_projects(list(config.projects)):
                logger.info(f"{result.project}: {result.written} records written")

    except KeyboardInterrupt:
        logger.warning("Pipeline interrupted by user. Progress saved. Resume by running again.")
        return 0
    except Exception as e:
        logger.error(f"Pipeline failed with error: {e}", exc_info=True)
        return 1

    duration = (time.monotonic() - start_time) / 60
    logger.info("=" * 60)
    logger.info(f"Pipeline completed in {duration:.2f} minutes")
    logger.info("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
