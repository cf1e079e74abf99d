"""Front matter generation and parsing for synced Markdown files."""

import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from dateutil.parser import isoparse

from models import UNKNOWN_TAG_NAME, Document, extract_title, plain_text

logger = logging.getLogger('notion_markdown_sync.exporters.frontmatter')

FRONTMATTER_PATTERN = re.compile(r'^---\n([\s\S]*?)\n---')
DEFAULT_HERO_ALT = 'Hero image'


def normalize_timestamp(value: str) -> str:
    """
    Normalize an ISO 8601 timestamp to UTC with millisecond precision.

    ``2024-03-01T10:00:00+09:00`` becomes ``2024-03-01T01:00:00.000Z``.

    Raises:
        ValueError: If the value is not an ISO 8601 timestamp
    """
    parsed = isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime('%Y-%m-%dT%H:%M:%S.') + f"{parsed.microsecond // 1000:03d}Z"


def timestamp_date(value: str) -> str:
    """UTC calendar date (YYYY-MM-DD) of an ISO 8601 timestamp."""
    return normalize_timestamp(value).split('T')[0]


def _escape(value: str) -> str:
    escaped = value.replace('\\', '\\\\').replace('"', '\\"')
    return escaped.replace('\r\n', '\n').replace('\n', '\\n')


def _unescape(value: str) -> str:
    return re.sub(r'\\(.)', lambda match: '\n' if match.group(1) == 'n' else match.group(1), value)


def _quoted(value: Any) -> str:
    return f'"{_escape(str(value))}"'


class FrontmatterGenerator:
    """Derives the metadata header of a synced document from its properties."""

    def __init__(self, today: Optional[date] = None):
        """
        Args:
            today: Fallback publication date (defaults to the current UTC date)
        """
        self._today = today

    @property
    def today(self) -> str:
        return (self._today or datetime.now(timezone.utc).date()).isoformat()

    def generate(self, document: Document, tag_names: Optional[List[str]] = None) -> str:
        """Render the front matter block for a document."""
        return self.render(self.build_metadata(document, tag_names))

    def build_metadata(self, document: Document, tag_names: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Collect header values in output order.

        Args:
            document: Source document
            tag_names: Resolved names of the document's tag relations, if any

        Returns:
            Ordered dictionary without empty values
        """
        metadata: Dict[str, Any] = {
            'title': extract_title(document.properties),
            'description': self._description(document),
            'pubDate': self._pub_date(document),
            'heroImage': self._hero_image(document),
            'tags': self._tags(document, tag_names),
            'series': self._series(document),
        }

        if document.last_edited_time:
            try:
                metadata['updatedDate'] = timestamp_date(document.last_edited_time)
                metadata['updatedAt'] = normalize_timestamp(document.last_edited_time)
            except ValueError:
                logger.warning(f"Unparseable last_edited_time '{document.last_edited_time}' "
                               f"for document {document.id}")

        return {key: value for key, value in metadata.items() if value not in (None, '', [], {})}

    @staticmethod
    def render(metadata: Dict[str, Any]) -> str:
        """
        Serialize metadata as a ``---`` delimited header.

        Strings are double-quoted, lists become ``  - "item"`` lines and
        mappings become indented ``  key: "value"`` lines.
        """
        lines = ['---']

        for key, value in metadata.items():
            if value is None:
                continue
            if isinstance(value, bool) or isinstance(value, (int, float)):
                lines.append(f"{key}: {str(value).lower() if isinstance(value, bool) else value}")
            elif isinstance(value, (list, tuple)):
                lines.append(f"{key}:")
                lines.extend(f"  - {_quoted(item)}" for item in value)
            elif isinstance(value, dict):
                lines.append(f"{key}:")
                lines.extend(f"  {sub_key}: {_quoted(sub_value)}" for sub_key, sub_value in value.items())
            else:
                lines.append(f"{key}: {_quoted(value)}")

        lines.append('---')
        return '\n'.join(lines)

    def _description(self, document: Document) -> str:
        for name in ('Description', 'Summary'):
            prop = document.get_property(name, 'rich_text')
            if prop:
                text = plain_text(prop.get('rich_text')).strip()
                if text:
                    return text
        return ''

    def _pub_date(self, document: Document) -> str:
        for name in ('PublishDate', 'Date'):
            prop = document.get_property(name, 'date')
            start = ((prop or {}).get('date') or {}).get('start')
            if not start:
                continue
            try:
                # Date properties may carry a time; keep the calendar date as written
                return isoparse(start).date().isoformat()
            except ValueError:
                logger.warning(f"Unparseable {name} '{start}' for document {document.id}")

        created = document.get_property('Created', 'created_time')
        if created and created.get('created_time'):
            return created['created_time'].split('T')[0]

        return self.today

    def _hero_image(self, document: Document) -> Optional[Dict[str, str]]:
        for name in ('HeroImage', 'Image'):
            prop = document.get_property(name, 'files')
            files = (prop or {}).get('files') or []
            if not files:
                continue
            first = files[0]
            src = (first.get('file') or {}).get('url') or (first.get('external') or {}).get('url')
            if src:
                return {'src': src, 'alt': first.get('name') or DEFAULT_HERO_ALT}
        return None

    def _tags(self, document: Document, tag_names: Optional[List[str]]) -> List[str]:
        for name in ('Tags', 'Category'):
            prop = document.get_property(name, 'multi_select')
            options = (prop or {}).get('multi_select') or []
            if options:
                return [option['name'] for option in options if option.get('name')]

        if tag_names and document.get_property('Tags', 'relation'):
            return [tag for tag in tag_names if tag and tag != UNKNOWN_TAG_NAME]

        return []

    def _series(self, document: Document) -> Optional[str]:
        prop = document.get_property('Series', 'select')
        select = (prop or {}).get('select') or {}
        return select.get('name')


def read_existing(path: Union[str, Path]) -> Dict[str, str]:
    """
    Read the top-level ``key: value`` pairs of a file's front matter.

    Quoted values are unquoted and unescaped; nested lines are ignored.
    Missing files, files without a header and unreadable content yield ``{}``.
    """
    try:
        content = Path(path).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError):
        return {}

    match = FRONTMATTER_PATTERN.match(content.replace('\r\n', '\n'))
    if not match:
        return {}

    metadata: Dict[str, str] = {}
    for line in match.group(1).split('\n'):
        if not line or line[0].isspace() or ':' not in line:
            continue
        key, _, value = line.partition(':')
        key = key.strip()
        if not key:
            continue
        value = value.strip()
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = _unescape(value[1:-1])
        metadata[key] = value

    return metadata


__all__ = [
    'FrontmatterGenerator',
    'read_existing',
    'normalize_timestamp',
    'timestamp_date'
]
