"""
Sync orchestrator coordinating the Notion to Markdown pipeline.

Sequences the phases of one run: List → (per document) Convert → Decide → Write.
Documents are processed one at a time; a failing document is recorded and the
run continues with the next one.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from converters import MarkdownConverter
from exporters import FrontmatterGenerator, ImageLocalizer, MarkdownWriter
from fetchers import PostFetcher, TagCache
from logger import ProgressTracker, log_section
from models import Document, SyncRecord, SyncStats, SyncStatus

logger = logging.getLogger('notion_markdown_sync.orchestrator')


class SyncOrchestrator:
    """Central coordinator for one sync run."""

    def __init__(
        self,
        config: Dict[str, Any],
        fetcher: PostFetcher,
        image_localizer: Optional[ImageLocalizer] = None,
        writer: Optional[MarkdownWriter] = None,
        frontmatter: Optional[FrontmatterGenerator] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration dictionary
            fetcher: PostFetcher bound to the source database
            image_localizer: Image localizer shared by every document of the run
            writer: Markdown writer for the content directory
            frontmatter: Front matter generator
            logger: Optional logger instance
        """
        self.config = config
        self.fetcher = fetcher
        self.logger = logger or logging.getLogger('notion_markdown_sync.orchestrator')

        output = config.get('output', {})
        self.image_localizer = image_localizer or ImageLocalizer.from_config(config)
        self.writer = writer or MarkdownWriter(Path(output.get('content_directory', 'src/content/blog')))
        self.frontmatter = frontmatter or FrontmatterGenerator()
        self.converter = MarkdownConverter(fetcher, image_localizer=self.image_localizer,
                                           logger=self.logger, config=config)
        self.show_progress = output.get('progress_bars', True)

        self.stats = SyncStats()
        self.tag_cache: Optional[TagCache] = None
        self.duration = 0.0

    def run(self, required_tags: Optional[List[str]] = None) -> SyncStats:
        """
        Sync every published document carrying the required tags.

        Returns:
            Aggregate statistics with one record per document
        """
        start_time = time.time()
        required_tags = required_tags or []

        log_section("Fetching documents")
        documents, self.tag_cache = self.fetcher.list_published_with_tags(required_tags)
        self.stats.total = len(documents)

        if not documents:
            self.logger.warning("No documents to sync")
            self.duration = time.time() - start_time
            return self.stats

        self.writer.ensure_directory()
        self.image_localizer.ensure_directory()

        log_section("Syncing documents")
        with ProgressTracker(total_items=len(documents), item_type='documents') as tracker:
            for document in self._iterate(documents):
                record = self.process_document(document)
                self.stats.record(record)
                tracker.increment(record.status.value)

        self.duration = time.time() - start_time
        self._log_summary()
        return self.stats

    def process_document(self, document: Document) -> SyncRecord:
        """
        Take one document from Pending to a terminal state.

        Never raises; failures become an ``errored`` record.
        """
        title = self.fetcher.resolve_title(document)
        self.logger.info(f"Processing '{title}'")

        try:
            tag_names = self.tag_cache.names_for(document) if self.tag_cache else None
            header = self.frontmatter.generate(document, tag_names)
            body = self.converter.convert(document.id, title)

            path = self.writer.target_path(title, document)
            exists = path.exists()

            if exists and self.writer.is_unchanged(path, document):
                self.logger.info(f"  Skipped (unchanged in Notion): {path.name}")
                return SyncRecord(title=title, status=SyncStatus.SKIPPED,
                                  filename=path.name, document_id=document.id)

            self.writer.write(path, header, body)

            status = SyncStatus.UPDATED if exists else SyncStatus.CREATED
            self.logger.info(f"  {status.value.capitalize()}: {path.name}")
            return SyncRecord(title=title, status=status, filename=path.name, document_id=document.id)

        except Exception as e:
            self.logger.error(f"Failed to sync '{title}' (ID: {document.id}): {e}",
                              exc_info=self.logger.isEnabledFor(logging.DEBUG))
            return SyncRecord(title=title, status=SyncStatus.ERRORED,
                              document_id=document.id, error=str(e))

    def _iterate(self, documents: List[Document]):
        if self.show_progress and sys.stdout.isatty():
            return tqdm(documents, desc="Syncing documents", unit="doc")
        return documents

    def _log_summary(self) -> None:
        log_section("Sync summary")
        self.logger.info(f"Total: {self.stats.total}")
        self.logger.info(f"Success: {self.stats.success} "
                         f"(created {self.stats.created}, updated {self.stats.updated}, "
                         f"skipped {self.stats.skipped})")
        if self.stats.has_errors:
            self.logger.error(f"Errors: {self.stats.errors}")
        images = self.image_localizer.get_stats()
        self.logger.info(f"Images: {images['downloaded']} downloaded, {images['reused']} reused, "
                         f"{images['failed']} failed")


__all__ = ['SyncOrchestrator']
