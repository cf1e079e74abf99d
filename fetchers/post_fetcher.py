"""Retrieval of documents and block trees from a Notion database."""

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from errors import RetrievalError
from models import UNTITLED, Block, BlockType, Document, extract_title
from notion_api_client import NotionClient

from .tag_cache import DEFAULT_BATCH_DELAY, DEFAULT_BATCH_SIZE, TagCache

logger = logging.getLogger('notion_markdown_sync.fetchers.post_fetcher')

CREATED_DESCENDING = [{'timestamp': 'created_time', 'direction': 'descending'}]

# Separate pages in Notion; their content is not part of the parent document
NON_DESCENDING_TYPES = {BlockType.CHILD_PAGE, BlockType.CHILD_DATABASE}


class PostFetcher:
    """Lists the documents of one Notion database and fetches their content."""

    def __init__(self, client: NotionClient, database_id: str, config: Optional[Dict[str, Any]] = None):
        """
        Args:
            client: Configured Notion API client
            database_id: Database holding the documents
            config: Optional configuration dictionary (``advanced`` section is used)
        """
        self.client = client
        self.database_id = database_id
        advanced = (config or {}).get('advanced', {})
        self.tag_batch_size = advanced.get('tag_batch_size', DEFAULT_BATCH_SIZE)
        self.tag_batch_delay = advanced.get('tag_batch_delay', DEFAULT_BATCH_DELAY)
        self.resolve_tag_names = advanced.get('resolve_tag_names', False)

    def test_connection(self) -> bool:
        """Check that the database is reachable with the configured token. Never raises."""
        try:
            database = self.client.retrieve_database(self.database_id)
            title = ''.join(t.get('plain_text', '') for t in database.get('title') or [])
            logger.info(f"Connected to Notion database '{title or self.database_id}'")
            return True
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else 'unknown'
            if status in (401, 403):
                logger.error(f"Notion rejected the credentials (HTTP {status}); "
                             f"check NOTION_TOKEN and that the integration is shared with the database")
            else:
                logger.error(f"Connection test failed with HTTP {status}")
            return False
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Connection test failed: {e}")
            return False

    def inspect_database(self) -> Dict[str, str]:
        """Return and log the property schema (name -> type) of the database."""
        database = self.client.retrieve_database(self.database_id)
        schema = {
            name: prop.get('type', 'unknown')
            for name, prop in (database.get('properties') or {}).items()
        }

        logger.info("Database properties:")
        for name, prop_type in schema.items():
            logger.info(f"  {name}: {prop_type}")

        return schema

    def fetch_all_documents(self) -> List[Document]:
        """All non-archived documents, newest first."""
        documents = []
        archived = 0

        for page in self.client.query_database(self.database_id, sorts=CREATED_DESCENDING):
            document = Document.from_api(page)
            if document.archived:
                archived += 1
                continue
            documents.append(document)

        logger.info(f"Fetched {len(documents)} documents from database"
                    + (f" ({archived} archived ignored)" if archived else ""))
        return documents

    def build_tag_cache(self, documents: List[Document]) -> TagCache:
        return TagCache.build(
            self.client,
            documents,
            batch_size=self.tag_batch_size,
            batch_delay=self.tag_batch_delay
        )

    def list_published_with_tags(
        self, required_tags: Optional[List[str]] = None
    ) -> Tuple[List[Document], Optional[TagCache]]:
        """
        Fetch documents and keep those carrying every required tag.

        Tag pages are only looked up when a filter is given, or when
        ``advanced.resolve_tag_names`` asks for relation names in the header.

        Returns:
            Tuple of (matching documents, tag cache built for this run or None)
        """
        documents = self.fetch_all_documents()

        if not required_tags:
            tag_cache = self.build_tag_cache(documents) if self.resolve_tag_names else None
            return documents, tag_cache

        tag_cache = self.build_tag_cache(documents)

        matching = [doc for doc in documents if tag_cache.matches(doc, required_tags)]
        logger.info(f"Tag filter [{', '.join(required_tags)}]: "
                    f"{len(matching)}/{len(documents)} documents match")

        if not matching:
            available = sorted(set(tag_cache.names.values()))
            logger.warning(f"No documents carry all required tags. Available tags: {available}")

        return matching, tag_cache

    def list_published(self, required_tags: Optional[List[str]] = None) -> List[Document]:
        """Documents carrying every required tag (all documents when none are required)."""
        documents, _ = self.list_published_with_tags(required_tags)
        return documents

    def fetch_block_tree(self, document_id: str) -> List[Block]:
        """
        Fetch the complete block tree of a document.

        Raises:
            RetrievalError: If any page of children cannot be fetched
        """
        try:
            return self._fetch_children(document_id)
        except (requests.exceptions.RequestException, ValueError) as e:
            raise RetrievalError(f"Failed to fetch blocks: {e}", document_id=document_id) from e

    def _fetch_children(self, parent_id: str) -> List[Block]:
        blocks = []
        for data in self.client.list_block_children(parent_id):
            block = Block.from_api(data, parent_id=parent_id)
            if block.has_children and block.type not in NON_DESCENDING_TYPES:
                for child in self._fetch_children(block.id):
                    block.add_child(child)
            blocks.append(block)
        return blocks

    @staticmethod
    def resolve_title(document: Document) -> str:
        """Title of the document, ``"Untitled"`` when it has none."""
        try:
            return extract_title(document.properties)
        except (AttributeError, TypeError):
            return UNTITLED


__all__ = ['PostFetcher', 'CREATED_DESCENDING']
