"""Notion document to Markdown conversion pipeline."""

import logging
import re
from typing import Any, Dict, List, Optional

from errors import ConversionError, RetrievalError
from models import Block

from .block_renderer import BlockRenderer
from .link_processor import LinkProcessor, fix_code_block_indentation

logger = logging.getLogger('notion_markdown_sync.converters.markdown_converter')


class MarkdownConverter:
    """
    Converts a Notion document to Markdown.

    The pipeline:
    1. Fetch the block tree through the post fetcher
    2. Render blocks through the BlockRenderer dispatch table
    3. Collapse blank lines, strip trailing whitespace, trim
    4. Re-indent fenced code blocks
    5. Normalize internal Notion links
    6. Localize images (when an image localizer is configured)
    """

    def __init__(
        self,
        fetcher,
        image_localizer=None,
        logger: logging.Logger = None,
        config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize converter.

        Args:
            fetcher: Object providing ``fetch_block_tree(document_id)``
            image_localizer: Optional object providing ``localize(markdown, title_hint)``
            logger: Logger instance
            config: Optional configuration dictionary
        """
        self.fetcher = fetcher
        self.image_localizer = image_localizer
        self.logger = logger or logging.getLogger('notion_markdown_sync.converters.markdown_converter')
        self.config = config or {}

        self.renderer = BlockRenderer(logger=self.logger)
        self.link_processor = LinkProcessor(logger=self.logger)

    def convert(self, document_id: str, title: str = 'untitled') -> str:
        """
        Convert one document to Markdown.

        Raises:
            ConversionError: If the block tree cannot be fetched or rendered
        """
        try:
            blocks = self.fetcher.fetch_block_tree(document_id)
        except RetrievalError as e:
            raise ConversionError(str(e), document_id=document_id) from e

        self.logger.debug(f"Fetched {sum(len(b.walk()) for b in blocks)} blocks for '{title}'")

        try:
            markdown = self.render(blocks)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ConversionError(f"Failed to render blocks: {e}", document_id=document_id) from e

        return self.post_process(markdown, title)

    def render(self, blocks: List[Block]) -> str:
        return self.renderer.render_blocks(blocks)

    def post_process(self, markdown: str, title: str = 'untitled') -> str:
        """Clean up rendered Markdown and localize its images."""
        if not markdown:
            return ''

        processed = re.sub(r'\n{3,}', '\n\n', markdown)
        processed = re.sub(r'[ \t]+$', '', processed, flags=re.MULTILINE)
        processed = processed.strip()
        processed = fix_code_block_indentation(processed)
        processed = self.link_processor.normalize_internal_links(processed)

        if self.image_localizer is not None:
            processed = self.image_localizer.localize(processed, title)

        return processed


__all__ = ['MarkdownConverter']
