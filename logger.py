"""Structured logging infrastructure with colored console output and progress tracking."""

import logging
import logging.handlers
import time
from collections import Counter
from typing import Any, Dict, Iterable, Optional

import colorlog

LOGGER_NAME = 'notion_markdown_sync'

LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}

SENSITIVE_KEYS = ('token', 'secret', 'api_key', 'password', 'auth_header')
REDACTED = '***REDACTED***'

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    log_format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT
) -> logging.Logger:
    """
    Configure the ``notion_markdown_sync`` logger.

    Console output is colored; ``log_file`` adds a rotating plain-text file
    (10 MB, 5 backups). Third-party loggers stay at WARNING.

    Args:
        level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL
        log_file: Optional path to log file
        log_format: Log record format
        date_format: Timestamp format

    Returns:
        The package logger

    Raises:
        ValueError: If ``level`` is not a known level name
    """
    level_name = (level or 'INFO').upper()
    if level_name not in LEVELS:
        raise ValueError(f"Invalid log level '{level}'. Must be one of: {', '.join(LEVELS)}")
    log_level = getattr(logging, level_name)

    logging.basicConfig(level=logging.WARNING, format=log_format, datefmt=date_format)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()
    logger.propagate = False

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        fmt='%(log_color)s' + log_format,
        datefmt=date_format,
        log_colors=LOG_COLORS
    ))
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding='utf-8'
            )
        except OSError as e:
            logger.warning(f"Cannot write log file {log_file}: {e}")
        else:
            file_handler.setLevel(log_level)
            file_handler.setFormatter(logging.Formatter(fmt=log_format, datefmt=date_format))
            logger.addHandler(file_handler)
            logger.info(f"Also logging to {log_file}")

    logger.debug(f"Log level: {level_name}")
    return logger


def format_duration(seconds: float) -> str:
    """``12.5s``, ``3m 4s`` or ``1h 2m 3s``."""
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"

    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m {secs}s"


class ProgressTracker:
    """
    Counts per-item outcomes of a run and logs periodic progress.

    Outcomes are free-form labels (the sync uses ``created``, ``updated``,
    ``skipped`` and ``errored``). Anything listed in ``failure_outcomes``
    counts as a failure and is logged immediately.
    """

    def __init__(
        self,
        total_items: int,
        item_type: str = "documents",
        log_every: int = 10,
        failure_outcomes: Iterable[str] = ('errored',)
    ):
        self.total_items = total_items
        self.item_type = item_type
        self.log_every = max(1, log_every)
        self.failure_outcomes = frozenset(failure_outcomes)
        self.outcomes: Counter = Counter()
        self.start_time: Optional[float] = None
        self.logger = logging.getLogger(LOGGER_NAME)

    @property
    def processed_items(self) -> int:
        return sum(self.outcomes.values())

    @property
    def failed_items(self) -> int:
        return sum(count for outcome, count in self.outcomes.items() if outcome in self.failure_outcomes)

    def __enter__(self) -> 'ProgressTracker':
        self.start_time = time.time()
        self.logger.info(f"Syncing {self.total_items} {self.item_type}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is None:
            return

        failed = self.failed_items
        if failed and failed == self.total_items:
            log_method = self.logger.error
        elif failed:
            log_method = self.logger.warning
        else:
            log_method = self.logger.info

        breakdown = ', '.join(f"{count} {outcome}" for outcome, count in sorted(self.outcomes.items()))
        log_method(
            f"Finished {self.processed_items}/{self.total_items} {self.item_type} "
            f"in {format_duration(time.time() - self.start_time)}"
            + (f" ({breakdown})" if breakdown else "")
        )

    def increment(self, outcome: str = 'created') -> None:
        """Record the outcome of one item."""
        self.outcomes[outcome] += 1
        processed = self.processed_items

        if outcome in self.failure_outcomes or processed % self.log_every == 0:
            self.logger.info(
                f"Progress {processed}/{self.total_items} {self.item_type} "
                f"({self.total_items - processed} remaining), last: {outcome}"
            )

    def get_stats(self) -> Dict[str, Any]:
        elapsed = 0.0 if self.start_time is None else time.time() - self.start_time
        return {
            'total': self.total_items,
            'processed': self.processed_items,
            'failed': self.failed_items,
            'outcomes': dict(self.outcomes),
            'elapsed_time': elapsed,
            'elapsed_time_formatted': format_duration(elapsed)
        }


def log_section(title: str) -> None:
    """Log a banner line for a phase of the run."""
    logger = logging.getLogger(LOGGER_NAME)
    separator = "=" * 60
    logger.info(separator)
    logger.info(f"  {title.upper()}")
    logger.info(separator)


def log_config(config: Dict[str, Any]) -> None:
    """Log the effective settings with secrets redacted."""
    logger = logging.getLogger(LOGGER_NAME)
    safe = redact_secrets(config)

    log_section("Configuration")

    notion = safe.get('notion', {})
    logger.info(f"Database ID: {notion.get('database_id') or 'Not Set'}")
    logger.info(f"Token: {notion.get('token') or 'Not Set'}")
    logger.info(f"API Version: {notion.get('api_version', '2022-06-28')}")
    required_tags = notion.get('required_tags') or []
    logger.info(f"Required Tags: {', '.join(required_tags) if required_tags else 'None (all documents)'}")

    output = safe.get('output', {})
    logger.info(f"Content Directory: {output.get('content_directory', 'src/content/blog')}")
    logger.info(f"Images Directory: {output.get('images_directory', 'public/images/notion')}")
    logger.info(f"Image URL Prefix: {output.get('image_url_prefix', '/images/notion')}")

    advanced = safe.get('advanced', {})
    logger.info(f"Request Timeout: {advanced.get('request_timeout', 30)}s")
    logger.info(f"Rate Limit: {advanced.get('rate_limit', 0.34)}s")
    logger.info(f"Tag Batch Size: {advanced.get('tag_batch_size', 10)}")
    logger.info(f"Image Workers: {advanced.get('image_workers', 4)}")


def redact_secrets(data: Any) -> Any:
    """
    Copy of ``data`` with string values under sensitive keys replaced.

    A key is sensitive when it contains one of SENSITIVE_KEYS
    (case-insensitive). Nested dicts and lists are walked.
    """
    if isinstance(data, dict):
        return {
            key: REDACTED
            if isinstance(value, str) and any(s in str(key).lower() for s in SENSITIVE_KEYS)
            else redact_secrets(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_secrets(item) for item in data]
    return data


__all__ = [
    'LOGGER_NAME',
    'setup_logging',
    'ProgressTracker',
    'format_duration',
    'log_section',
    'log_config',
    'redact_secrets'
]
