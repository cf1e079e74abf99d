"""Run-scoped resolution of tag relation ids to tag names."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

import requests

from models import UNKNOWN_TAG_NAME, Document, Tag, extract_title
from notion_api_client import NotionClient

logger = logging.getLogger('notion_markdown_sync.fetchers.tag_cache')

DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY = 0.1


class TagCache:
    """
    Maps tag page ids to tag names for the duration of one sync run.

    Built once from every relation id referenced by the candidate documents;
    read-only afterwards.
    """

    def __init__(self, names: Mapping[str, str]):
        self._names = MappingProxyType(dict(names))

    @classmethod
    def build(
        cls,
        client: NotionClient,
        documents: Iterable[Document],
        relation_property: str = 'Tags',
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY
    ) -> 'TagCache':
        """
        Resolve every distinct relation id referenced by ``documents``.

        Lookups run concurrently within a batch of ``batch_size`` ids, with
        ``batch_delay`` seconds between batches. A failed lookup resolves to
        ``"Unknown"`` and never aborts the batch.
        """
        tag_ids: List[str] = []
        seen = set()
        for document in documents:
            for tag_id in document.relation_ids(relation_property):
                if tag_id not in seen:
                    seen.add(tag_id)
                    tag_ids.append(tag_id)

        logger.info(f"Resolving {len(tag_ids)} unique tags")

        names = {}
        for start in range(0, len(tag_ids), batch_size):
            batch = tag_ids[start:start + batch_size]

            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                for tag in executor.map(lambda tag_id: cls._resolve_tag(client, tag_id), batch):
                    names[tag.id] = tag.name

            if start + batch_size < len(tag_ids) and batch_delay > 0:
                time.sleep(batch_delay)

        logger.debug(f"Tag cache built: {sorted(set(names.values()))}")
        return cls(names)

    @staticmethod
    def _resolve_tag(client: NotionClient, tag_id: str) -> Tag:
        try:
            page = client.retrieve_page(tag_id)
            return Tag(id=tag_id, name=extract_title(page.get('properties') or {}))
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Failed to resolve tag {tag_id}: {e}")
            return Tag(id=tag_id, name=UNKNOWN_TAG_NAME)

    @property
    def names(self) -> Mapping[str, str]:
        """Read-only id -> name view."""
        return self._names

    def get(self, tag_id: str, default: Optional[str] = UNKNOWN_TAG_NAME) -> Optional[str]:
        return self._names.get(tag_id, default)

    def names_for(self, document: Document, relation_property: str = 'Tags') -> List[str]:
        """Resolved tag names of a document, ``"Unknown"`` for ids not in the cache."""
        return [self.get(tag_id) for tag_id in document.relation_ids(relation_property)]

    def matches(self, document: Document, required_tags: List[str], relation_property: str = 'Tags') -> bool:
        """
        True when every required tag is among the document's resolved names.

        Exact, case-sensitive comparison. An empty requirement matches everything;
        a document without tags never matches a non-empty requirement.
        """
        if not required_tags:
            return True

        tag_names = self.names_for(document, relation_property)
        if not tag_names:
            return False

        return all(required in tag_names for required in required_tags)

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, tag_id: object) -> bool:
        return tag_id in self._names


__all__ = ['TagCache', 'DEFAULT_BATCH_SIZE', 'DEFAULT_BATCH_DELAY']
