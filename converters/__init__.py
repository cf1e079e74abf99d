"""Converters package for Notion block tree to Markdown conversion."""

import logging

from .block_renderer import BlockRenderer, render_rich_text
from .link_processor import LinkProcessor
from .markdown_converter import MarkdownConverter

logger = logging.getLogger('notion_markdown_sync.converters')


def convert_document(fetcher, document_id, title='untitled', image_localizer=None, config=None, logger=None):
    """
    Convenience function to convert one Notion document to Markdown.

    Args:
        fetcher: Object providing ``fetch_block_tree(document_id)``
        document_id: Notion page id
        title: Document title, used to name localized images
        image_localizer: Optional ImageLocalizer
        config: Optional configuration dictionary
        logger: Optional logger instance (uses module logger if not provided)

    Returns:
        str: Markdown body

    Raises:
        ConversionError: If the document cannot be fetched or rendered

    Example:
        >>> from converters import convert_document
        >>> body = convert_document(fetcher, page_id, 'My Post')
    """
    if logger is None:
        logger = logging.getLogger('notion_markdown_sync.converters')

    converter = MarkdownConverter(fetcher, image_localizer=image_localizer, logger=logger, config=config)
    return converter.convert(document_id, title)


__all__ = [
    'convert_document',
    'MarkdownConverter',
    'BlockRenderer',
    'LinkProcessor',
    'render_rich_text'
]
