"""Command line interface for Puppet Scraper."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import List, Optional

from puppet_scraper.browser import bind_page_handler, launch_browser
from puppet_scraper.checkpoint import CheckpointStore, checkpoint_path_for
from puppet_scraper.config import Config, load_config, parse_bool
from puppet_scraper.errors import HandlerFailure, ScraperError
from puppet_scraper.handler import load_handler
from puppet_scraper.logging_utils import configure_logging, get_logger
from puppet_scraper.query import parse_query
from puppet_scraper.runner import RunConfig, Runner, RunSummary
from puppet_scraper.storage import DatasetStore, default_output_path, dump_document

logger = get_logger(__name__)

# IMPORTANT: Only scrape websites you are authorized to access. Respect robots.txt and terms of service.

BROWSERS = ("chromium", "firefox", "webkit")


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return number


def _non_negative_float(value: str) -> float:
    number = float(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative number, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Puppet Scraper CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scrape = subparsers.add_parser("scrape", help="Run a scraping script over items selected from a JSON dataset")
    scrape.add_argument("-d", "--dataset", required=True, help="Path to JSON file with the dataset")
    scrape.add_argument("-o", "--output", help="Path to JSON file where the output will be stored")
    scrape.add_argument("-s", "--script", required=True, help="Path to scraping script")
    scrape.add_argument("-q", "--query", help="JSONPath to the elements in the dataset (default $)")
    scrape.add_argument("-p", "--pretty", action="store_true", default=None, help="Store dataset in pretty JSON format")
    scrape.add_argument(
        "-t", "--dryrun", "--dry-run", dest="dry_run", action="store_true", help="Run the query without scraping"
    )
    scrape.add_argument("-w", "--delay", type=_non_negative_float, help="Delay in ms before each item scrape")
    scrape.add_argument("-l", "--limit", type=_non_negative_int, help="Maximum number of items to scrape")
    scrape.add_argument("--headful", type=str, default=None, help="Run the browser headful true/false")
    scrape.add_argument("--browser", choices=BROWSERS, help="Playwright browser engine")
    scrape.add_argument("--log-file", type=str, help="Optional log file path")
    scrape.add_argument("--log-level", type=str, help="Logging level")

    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    if args.query is not None:
        config.query = args.query
    if args.delay is not None:
        config.delay_ms = args.delay
    if args.limit is not None:
        config.limit = args.limit
    if args.pretty:
        config.pretty = True
    if args.headful is not None:
        config.headful = parse_bool(args.headful)
    if args.browser:
        config.browser = args.browser
    if args.log_file:
        config.log_file = Path(args.log_file)
    if args.log_level:
        config.log_level = args.log_level.upper()
    return config


def log_banner(config: Config, script_path: Path, dataset_path: Path, output_path: Path, dry_run: bool) -> None:
    logger.info("Starting Puppet Scraper")
    logger.info(" - Script:   %s", script_path)
    logger.info(" - Dataset:  %s", dataset_path)
    logger.info(" - Output:   %s", output_path)
    logger.info(" - Query:    %s", config.query)
    logger.info(" - Limit:    %s", "Off" if config.limit is None else config.limit)
    logger.info(" - Delay:    %sms", config.delay_ms)
    logger.info(" - Pretty:   %s", "On" if config.pretty else "Off")
    logger.info(" - Dry Run:  %s", "On" if dry_run else "Off")


async def run_scrape(
    config: Config,
    run_config: RunConfig,
    dataset_path: Path,
    output_path: Path,
    script_path: Path,
) -> RunSummary:
    query = parse_query(config.query)
    dataset = DatasetStore(dataset_path, output_path, pretty=config.pretty)
    checkpoint = CheckpointStore(checkpoint_path_for(dataset_path, script_path))
    script = load_handler(script_path)

    if run_config.dry_run:
        return await Runner(query, dataset, checkpoint, None, run_config).run()

    async with launch_browser(headful=config.headful, browser_name=config.browser) as browser:
        runner = Runner(query, dataset, checkpoint, bind_page_handler(browser, script), run_config)
        summary = await runner.run()

    logger.debug("Dataset:\n%s", dump_document(dataset.document, pretty=True))
    return summary


async def scrape_command(args: argparse.Namespace) -> int:
    try:
        config = apply_overrides(load_config(), args)
        configure_logging(config)
        run_config = RunConfig(delay_ms=config.delay_ms, item_limit=config.limit, dry_run=args.dry_run)
    except (ValueError, OSError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    dataset_path = Path(args.dataset).resolve()
    script_path = Path(args.script).resolve()
    output_path = Path(args.output).resolve() if args.output else default_output_path(dataset_path)

    log_banner(config, script_path, dataset_path, output_path, args.dry_run)

    try:
        summary = await run_scrape(config, run_config, dataset_path, output_path, script_path)
    except HandlerFailure as exc:
        logger.error("%s", exc)
        logger.error("Progress kept at %s completed items; rerun the same command to retry", exc.index)
        return 1
    except ScraperError as exc:
        logger.error("Scrape aborted: %s", exc)
        return 1
    except OSError as exc:
        logger.error("Scrape aborted on I/O error: %s", exc)
        return 1

    if summary.dry_run:
        logger.info("Dry run inspected %s of %s items", len(summary.inspected), summary.total)
    elif summary.completed:
        logger.info("Processed %s items, all %s done. The job is done.", summary.processed, summary.total)
    else:
        logger.info(
            "Processed %s items, %s of %s done. Rerun to continue.",
            summary.processed,
            summary.progress,
            summary.total,
        )
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "scrape":
        raise SystemExit(asyncio.run(scrape_command(args)))
    parser.error("Unknown command")


if __name__ == "__main__":
    main()
