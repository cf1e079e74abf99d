"""Fetchers package for retrieving documents and tags from a Notion database."""

from .post_fetcher import PostFetcher
from .tag_cache import TagCache

__all__ = [
    'PostFetcher',
    'TagCache'
]
