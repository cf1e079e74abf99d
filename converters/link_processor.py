"""Link and image reference handling for converted Markdown."""

import logging
import re
from typing import List, Tuple
from urllib.parse import urlparse

logger = logging.getLogger('notion_markdown_sync.converters.linkprocessor')

IMAGE_PATTERN = re.compile(r'!\[([^\]]*)\]\(([^)]+)\)')

# Image syntax is excluded by the lookbehind
NOTION_LINK_PATTERN = re.compile(r'(?<!!)\[([^\]]+)\]\(https?://(?:www\.)?notion\.so/[^)]+\)')

CODE_FENCE_PATTERN = re.compile(r'^([ \t]*)```(\w*)\n([\s\S]*?)\n\1```', re.MULTILINE)

IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.webp', '.svg')


def is_image_url(url: str) -> bool:
    """
    True for remote URLs that point at an image.

    Either the path ends in a supported image extension, or the URL is a
    Notion-hosted image (proxy or signed S3 file).
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return False

    if parsed.scheme not in ('http', 'https'):
        return False

    path = parsed.path.lower()
    if path.endswith(IMAGE_EXTENSIONS):
        return True

    host = parsed.netloc.lower()
    if 'notion.so' in host and ('/image/' in url or '.' in path):
        return True

    return host.startswith('prod-files-secure.') or 'secure.notion-static.com' in url


class LinkProcessor:
    """Normalizes links and locates image references in Markdown content."""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger('notion_markdown_sync.converters.linkprocessor')

    def normalize_internal_links(self, markdown: str) -> str:
        """Point links to other Notion pages at ``#``; they have no published counterpart."""
        normalized, count = NOTION_LINK_PATTERN.subn(r'[\1](#)', markdown)
        if count:
            self.logger.debug(f"Normalized {count} internal Notion links")
        return normalized

    @staticmethod
    def extract_images(markdown: str) -> List[Tuple[str, str]]:
        """Return ``(alt, url)`` for every image reference in document order."""
        return [(match.group(1), match.group(2)) for match in IMAGE_PATTERN.finditer(markdown)]


def fix_code_block_indentation(markdown: str) -> str:
    """
    Remove the common leading whitespace of the non-blank lines in each fenced code block.

    Indentation of the fence itself (code nested in a list item) is preserved.
    """
    def dedent(match: re.Match) -> str:
        fence_indent, language, code = match.group(1), match.group(2), match.group(3)
        lines = code.split('\n')
        non_blank = [line for line in lines if line.strip()]
        if not non_blank:
            return match.group(0)

        min_indent = min(len(line) - len(line.lstrip(' \t')) for line in non_blank)
        adjusted = [fence_indent + line[min_indent:] if line.strip() else line for line in lines]

        return f"{fence_indent}```{language}\n" + '\n'.join(adjusted) + f"\n{fence_indent}```"

    return CODE_FENCE_PATTERN.sub(dedent, markdown)


__all__ = ['LinkProcessor', 'IMAGE_PATTERN', 'IMAGE_EXTENSIONS', 'is_image_url', 'fix_code_block_indentation']
