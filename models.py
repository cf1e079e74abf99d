"""Data models for the Notion to Markdown sync pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

UNKNOWN_TAG_NAME = 'Unknown'
UNTITLED = 'Untitled'


def plain_text(rich_text: Optional[List[Dict[str, Any]]]) -> str:
    """Concatenate the plain_text of a rich text array."""
    if not rich_text:
        return ''
    return ''.join(item.get('plain_text', '') for item in rich_text if isinstance(item, dict))


def extract_title(properties: Dict[str, Any]) -> str:
    """
    Derive a page title from its properties.

    Looks at ``Title`` then ``Name``, then any title-typed property, then any
    rich text property. Returns ``"Untitled"`` when nothing has text.
    """
    for name in ('Title', 'Name'):
        prop = properties.get(name)
        if isinstance(prop, dict):
            text = plain_text(prop.get('title') or prop.get('rich_text')).strip()
            if text:
                return text

    for prop_type in ('title', 'rich_text'):
        for prop in properties.values():
            if isinstance(prop, dict) and prop.get('type') == prop_type:
                text = plain_text(prop.get(prop_type)).strip()
                if text:
                    return text

    return UNTITLED


class BlockType(Enum):
    """Notion block types the converter knows how to render."""
    PARAGRAPH = "paragraph"
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    TO_DO = "to_do"
    TOGGLE = "toggle"
    CODE = "code"
    QUOTE = "quote"
    CALLOUT = "callout"
    DIVIDER = "divider"
    TABLE = "table"
    TABLE_ROW = "table_row"
    IMAGE = "image"
    EMBED = "embed"
    BOOKMARK = "bookmark"
    LINK_PREVIEW = "link_preview"
    VIDEO = "video"
    AUDIO = "audio"
    FILE = "file"
    PDF = "pdf"
    EQUATION = "equation"
    CHILD_PAGE = "child_page"
    CHILD_DATABASE = "child_database"
    COLUMN_LIST = "column_list"
    COLUMN = "column"
    SYNCED_BLOCK = "synced_block"
    TABLE_OF_CONTENTS = "table_of_contents"
    BREADCRUMB = "breadcrumb"
    UNKNOWN = "unknown"

    @classmethod
    def from_api(cls, value: Optional[str]) -> 'BlockType':
        """Map an API type string to a member, unknown types to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_list_item(self) -> bool:
        return self in (BlockType.BULLETED_LIST_ITEM, BlockType.NUMBERED_LIST_ITEM, BlockType.TO_DO)


class SyncStatus(Enum):
    """Terminal outcome of one document in a sync run."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    ERRORED = "errored"


@dataclass(frozen=True)
class Document:
    """Snapshot of a Notion database page taken at the start of a run."""

    id: str
    created_time: str
    last_edited_time: str
    properties: Dict[str, Any] = field(default_factory=dict)
    archived: bool = False
    url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Document':
        """Build a document from a page object returned by the Notion API."""
        return cls(
            id=data['id'],
            created_time=data.get('created_time', ''),
            last_edited_time=data.get('last_edited_time', ''),
            properties=data.get('properties') or {},
            archived=bool(data.get('archived', False) or data.get('in_trash', False)),
            url=data.get('url')
        )

    def get_property(self, name: str, expected_type: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Return the raw property dict, optionally only when its type matches."""
        prop = self.properties.get(name)
        if not isinstance(prop, dict):
            return None
        if expected_type and prop.get('type', expected_type) != expected_type:
            return None
        return prop

    def relation_ids(self, name: str = 'Tags') -> List[str]:
        """Return the page ids referenced by a relation property."""
        prop = self.get_property(name, 'relation')
        if not prop:
            return []
        return [item['id'] for item in prop.get('relation') or [] if item.get('id')]


@dataclass
class Block:
    """One node of a page's block tree."""

    id: str
    type: BlockType
    raw_type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    has_children: bool = False
    children: List['Block'] = field(default_factory=list)
    parent_id: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any], parent_id: Optional[str] = None) -> 'Block':
        """Build a block (without children) from a block object returned by the API."""
        raw_type = data.get('type', 'unsupported')
        return cls(
            id=data.get('id', ''),
            type=BlockType.from_api(raw_type),
            raw_type=raw_type,
            payload=data.get(raw_type) or {},
            has_children=bool(data.get('has_children', False)),
            parent_id=parent_id
        )

    def add_child(self, child: 'Block') -> None:
        """Attach a child block."""
        self.children.append(child)

    def walk(self) -> List['Block']:
        """Return this block and all descendants in document order."""
        blocks = [self]
        for child in self.children:
            blocks.extend(child.walk())
        return blocks


@dataclass(frozen=True)
class Tag:
    """Tag page referenced through a relation property."""

    id: str
    name: str = UNKNOWN_TAG_NAME


@dataclass
class ImageReference:
    """Remote image and where it was stored locally."""

    url: str
    local_path: Optional[str] = None
    filename: Optional[str] = None

    @property
    def localized(self) -> bool:
        return self.local_path is not None


@dataclass
class SyncRecord:
    """Per-document outcome of a sync run."""

    title: str
    status: SyncStatus
    filename: Optional[str] = None
    document_id: Optional[str] = None
    error: Optional[str] = None
    timestamp: Optional[str] = None

    def __post_init__(self) -> None:
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = datetime.utcnow().isoformat()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize record to dictionary."""
        return {
            'title': self.title,
            'status': self.status.value,
            'filename': self.filename,
            'document_id': self.document_id,
            'error': self.error,
            'timestamp': self.timestamp
        }


@dataclass
class SyncStats:
    """Aggregate statistics for one sync run."""

    total: int = 0
    success: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    records: List[SyncRecord] = field(default_factory=list)

    def record(self, record: SyncRecord) -> None:
        """Append a document outcome and update the counters."""
        self.records.append(record)

        if record.status == SyncStatus.ERRORED:
            self.errors += 1
            return

        self.success += 1
        if record.status == SyncStatus.CREATED:
            self.created += 1
        elif record.status == SyncStatus.UPDATED:
            self.updated += 1
        elif record.status == SyncStatus.SKIPPED:
            self.skipped += 1

    @property
    def has_errors(self) -> bool:
        return self.errors > 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize counters (without records) to dictionary."""
        return {
            'total': self.total,
            'success': self.success,
            'created': self.created,
            'updated': self.updated,
            'skipped': self.skipped,
            'errors': self.errors
        }


__all__ = [
    'UNKNOWN_TAG_NAME',
    'UNTITLED',
    'plain_text',
    'extract_title',
    'BlockType',
    'SyncStatus',
    'Document',
    'Block',
    'Tag',
    'ImageReference',
    'SyncRecord',
    'SyncStats'
]
