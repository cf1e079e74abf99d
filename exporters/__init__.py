"""Markdown export package for the Notion to Markdown sync pipeline.

Package Structure:
- frontmatter: Derives and parses the metadata header of each file
- image_localizer: Downloads referenced images and rewrites their URLs
- markdown_writer: Target filenames, change detection and file writes

Configuration Referenced:
- output.content_directory: Directory receiving ``<slug>.md`` files
- output.images_directory: Directory receiving downloaded images
- output.image_url_prefix: Public path of the images directory
"""

from .frontmatter import FrontmatterGenerator, read_existing
from .image_localizer import ImageLocalizer
from .markdown_writer import MarkdownWriter, slugify

__all__ = [
    'FrontmatterGenerator',
    'ImageLocalizer',
    'MarkdownWriter',
    'read_existing',
    'slugify'
]
