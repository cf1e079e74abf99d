"""Target filenames, change detection and writing of synced Markdown files."""

import logging
import re
from pathlib import Path
from typing import Dict, Optional

from dateutil.parser import isoparse

from errors import WriteError
from models import Document

from .frontmatter import normalize_timestamp, read_existing, timestamp_date

logger = logging.getLogger('notion_markdown_sync.exporters.markdown_writer')

MAX_SLUG_LENGTH = 100


def slugify(title: str) -> str:
    """
    Filesystem-safe slug of a title.

    Invalid path characters are dropped, whitespace becomes ``-``, only ASCII
    word characters, ``-`` and ``.`` are kept, the result is lowercased, stripped of
    leading/trailing dots and hyphens and capped at 100 characters. May be empty.
    """
    slug = re.sub(r'[<>:"/\\|?*]', '', title or '')
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'[^\w\-.]', '', slug, flags=re.ASCII)
    slug = slug.lower().strip('.-')
    return slug[:MAX_SLUG_LENGTH].strip('.-')


def fallback_name(document: Document) -> str:
    """``untitled-YYYYMMDD`` from the document's creation date."""
    try:
        created = isoparse(document.created_time)
        stamp = created.strftime('%Y%m%d')
    except (ValueError, TypeError):
        stamp = re.sub(r'\D', '', (document.created_time or '')[:10]) or 'unknown'
    return f"untitled-{stamp}"


class MarkdownWriter:
    """Writes documents into a flat content directory."""

    def __init__(self, content_dir: Path, logger: Optional[logging.Logger] = None):
        """
        Args:
            content_dir: Directory receiving ``<slug>.md`` files
            logger: Logger instance
        """
        self.content_dir = Path(content_dir)
        self.logger = logger or logging.getLogger('notion_markdown_sync.exporters.markdown_writer')

    def ensure_directory(self) -> None:
        self.content_dir.mkdir(parents=True, exist_ok=True)

    def filename_for(self, title: str, document: Document) -> str:
        slug = slugify(title)
        if not slug:
            slug = fallback_name(document)
            self.logger.debug(f"Empty slug for '{title}', using {slug}")
        return f"{slug}.md"

    def target_path(self, title: str, document: Document) -> Path:
        return self.content_dir / self.filename_for(title, document)

    def is_unchanged(self, path: Path, document: Document) -> bool:
        """
        True when the file at ``path`` was written from the same remote revision.

        The stored ``updatedAt`` (else ``updatedDate``) is compared with the
        document's last-edited time: as full timestamps when the stored value
        has a time part, as dates otherwise.
        """
        existing = read_existing(path)
        return is_same_revision(existing, document.last_edited_time)

    def write(self, path: Path, frontmatter: str, body: str) -> None:
        """
        Write header, blank line and body, overwriting any existing file.

        Raises:
            WriteError: If the file cannot be written
        """
        content = f"{frontmatter}\n\n{body}" if body else f"{frontmatter}\n"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding='utf-8')
        except OSError as e:
            raise WriteError(f"Failed to write {path}: {e}", path=str(path)) from e
        self.logger.debug(f"Wrote {path} ({len(content)} chars)")


def is_same_revision(existing: Dict[str, str], last_edited_time: str) -> bool:
    stored = existing.get('updatedAt') or existing.get('updatedDate')
    if not stored or not last_edited_time:
        return False

    try:
        if 'T' in stored:
            return normalize_timestamp(stored) == normalize_timestamp(last_edited_time)
        return stored == timestamp_date(last_edited_time)
    except ValueError:
        return False


__all__ = ['MarkdownWriter', 'slugify', 'fallback_name', 'is_same_revision']
