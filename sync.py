#!/usr/bin/env python3
"""
Notion to Markdown Sync Tool - Main CLI Entry Point

This script synchronizes the pages of a Notion database into Markdown files
with front matter, downloading embedded images next to them and skipping
documents that have not changed since the last run.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from config_loader import ConfigLoader, get_nested
from errors import ConfigurationError, ConnectivityError
from exporters import ImageLocalizer, MarkdownWriter
from fetchers import PostFetcher
from logger import log_config, log_section, setup_logging
from notion_api_client import NotionClient
from orchestrator import SyncOrchestrator, SyncReport

__version__ = "1.0.0"

DEFAULT_CONFIG_PATH = 'sync.yaml'
DEFAULT_ENV_FILE = '.env.local'


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Sync a Notion database into Markdown files with front matter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync using NOTION_TOKEN / NOTION_DATABASE_ID from .env.local
  python sync.py

  # Only documents tagged with both Study.Log and Rust
  python sync.py --tags "Study.Log,Rust"

  # Show the database property schema before syncing
  python sync.py --inspect -v

  # Custom output locations and a JSON report
  python sync.py --output-dir content/posts --images-dir static/images/notion --report sync-report.json
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help=f'Path to configuration YAML file (default: {DEFAULT_CONFIG_PATH} if present)'
    )

    parser.add_argument(
        '--env-file',
        type=str,
        default=DEFAULT_ENV_FILE,
        help=f'Environment file loaded before reading NOTION_* variables (default: {DEFAULT_ENV_FILE})'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        help='Directory for Markdown files (default: src/content/blog)'
    )

    parser.add_argument(
        '--images-dir',
        type=str,
        help='Directory for downloaded images (default: public/images/notion)'
    )

    parser.add_argument(
        '--tags',
        type=str,
        help='Comma-separated tag names every synced document must carry (overrides NOTION_REQUIRED_TAGS)'
    )

    parser.add_argument(
        '--inspect',
        action='store_true',
        help='Log the database property names and types before syncing'
    )

    parser.add_argument(
        '--report',
        type=str,
        help='Write a JSON report of the run to this path'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def load_configuration(args: argparse.Namespace) -> dict:
    """
    Build the effective configuration: file, then environment, then CLI.

    Raises:
        ConfigurationError: If the configuration is missing or invalid
    """
    if args.env_file and Path(args.env_file).is_file():
        load_dotenv(dotenv_path=args.env_file, override=False)

    config_path = args.config
    if config_path is None and Path(DEFAULT_CONFIG_PATH).is_file():
        config_path = DEFAULT_CONFIG_PATH

    config = ConfigLoader.load(config_path)
    config = ConfigLoader.from_environment(config, os.environ)
    config = ConfigLoader.merge_with_args(config, args)
    ConfigLoader.validate(config)
    return config


def build_client(config: dict) -> NotionClient:
    advanced = config.get('advanced', {})
    return NotionClient(
        token=get_nested(config, 'notion.token'),
        api_version=get_nested(config, 'notion.api_version', '2022-06-28'),
        timeout=advanced.get('request_timeout', 30),
        max_retries=advanced.get('max_retries', 3),
        retry_backoff_factor=advanced.get('retry_backoff_factor', 2.0),
        rate_limit=advanced.get('rate_limit', 0.34)
    )


def run_sync(config: dict, args: argparse.Namespace, logger: logging.Logger) -> int:
    """Execute the complete sync pipeline."""
    client = build_client(config)
    fetcher = PostFetcher(client, get_nested(config, 'notion.database_id'), config)

    try:
        log_section("Connecting to Notion")
        if not fetcher.test_connection():
            raise ConnectivityError("Cannot reach the Notion database with the configured token")

        if args.inspect:
            log_section("Database schema")
            fetcher.inspect_database()

        writer = MarkdownWriter(Path(get_nested(config, 'output.content_directory')))
        localizer = ImageLocalizer.from_config(config)
        writer.ensure_directory()
        localizer.ensure_directory()

        orchestrator = SyncOrchestrator(config, fetcher, image_localizer=localizer, writer=writer, logger=logger)
        stats = orchestrator.run(get_nested(config, 'notion.required_tags', []))

        reporter = SyncReport(logger)
        report = reporter.generate_report(stats, orchestrator.duration, localizer.get_stats())
        print(reporter.format_console_report(report))

        report_path = get_nested(config, 'report.path')
        if report_path:
            reporter.export_json_report(report, report_path)

        # Per-document errors are reported, not fatal
        return 0

    finally:
        client.close()


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        config = load_configuration(args)

        setup_logging(
            level=get_nested(config, 'logging.level', 'INFO'),
            log_file=get_nested(config, 'logging.file')
        )
        logger = logging.getLogger('notion_markdown_sync')

        log_section("Notion to Markdown Sync")
        logger.info(f"Version: {__version__}")
        log_config(config)

        return run_sync(config, args, logger)

    except ConfigurationError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except ConnectivityError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nSync interrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"ERROR: Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
