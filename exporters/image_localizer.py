"""Downloads images referenced in Markdown and rewrites them to local paths."""

import hashlib
import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from converters.link_processor import IMAGE_PATTERN, LinkProcessor, is_image_url
from errors import DownloadError
from models import ImageReference

logger = logging.getLogger('notion_markdown_sync.exporters.image_localizer')

CONTENT_TYPE_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/jpg': '.jpg',
    'image/png': '.png',
    'image/gif': '.gif',
    'image/webp': '.webp',
    'image/svg+xml': '.svg',
}
DEFAULT_EXTENSION = '.jpg'
KNOWN_EXTENSIONS = sorted(set(CONTENT_TYPE_EXTENSIONS.values()))

USER_AGENT = 'Mozilla/5.0 (compatible; NotionSync/1.0)'
MAX_TITLE_LENGTH = 30


def sanitize_title(title: str) -> str:
    """Lowercase prefix of at most 30 ASCII word characters and hyphens."""
    name = re.sub(r'[<>:"/\\|?*]', '', title or '')
    name = re.sub(r'\s+', '-', name)
    name = re.sub(r'[^\w\-]', '', name, flags=re.ASCII)
    return name.lower()[:MAX_TITLE_LENGTH]


def extension_for(content_type: Optional[str]) -> str:
    """Map a Content-Type header to a file extension, ``.jpg`` when unknown."""
    media_type = (content_type or '').split(';')[0].strip().lower()
    return CONTENT_TYPE_EXTENSIONS.get(media_type, DEFAULT_EXTENSION)


class ImageLocalizer:
    """
    Stores remote images under the images directory and rewrites Markdown to
    reference them by their public path.

    One instance is used for a whole sync run. URLs localized earlier in the
    run are reused without downloading again.
    """

    def __init__(
        self,
        images_dir: Path,
        url_prefix: str = '/images/notion',
        max_workers: int = 4,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Args:
            images_dir: Directory image files are written to
            url_prefix: Public path prefix used in rewritten Markdown
            max_workers: Concurrent downloads per document
            timeout: HTTP timeout in seconds
            session: Optional HTTP session (used by tests)
            logger: Logger instance
        """
        self.images_dir = Path(images_dir)
        self.url_prefix = url_prefix.rstrip('/')
        self.max_workers = max(1, max_workers)
        self.timeout = timeout
        self.logger = logger or logging.getLogger('notion_markdown_sync.exporters.image_localizer')

        self.session = session or requests.Session()
        self.session.headers['User-Agent'] = USER_AGENT

        self._localized: Dict[str, str] = {}
        self._lock = threading.Lock()

        self.stats = {
            'found': 0,
            'downloaded': 0,
            'reused': 0,
            'failed': 0
        }

    @classmethod
    def from_config(cls, config: Dict[str, Any], session: Optional[requests.Session] = None) -> 'ImageLocalizer':
        output = config.get('output', {})
        advanced = config.get('advanced', {})
        return cls(
            images_dir=Path(output.get('images_directory', 'public/images/notion')),
            url_prefix=output.get('image_url_prefix', '/images/notion'),
            max_workers=advanced.get('image_workers', 4),
            timeout=advanced.get('request_timeout', 30),
            session=session
        )

    def ensure_directory(self) -> None:
        self.images_dir.mkdir(parents=True, exist_ok=True)

    def localize(self, markdown: str, title_hint: str) -> str:
        """
        Download every image referenced in ``markdown`` and rewrite its URL.

        All downloads settle before returning. Failed downloads keep their
        remote URL; the rest of the document is unaffected.
        """
        urls: List[str] = []
        for _, url in LinkProcessor.extract_images(markdown):
            if is_image_url(url) and url not in urls:
                urls.append(url)

        if not urls:
            return markdown

        self.stats['found'] += len(urls)
        self.ensure_directory()
        self.logger.debug(f"Localizing {len(urls)} images for '{title_hint}'")

        references: List[ImageReference] = []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(urls))) as executor:
            future_to_url = {
                executor.submit(self.localize_url, url, title_hint): url
                for url in urls
            }
            for future, url in future_to_url.items():
                try:
                    references.append(future.result())
                except DownloadError as e:
                    self.stats['failed'] += 1
                    self.logger.warning(f"Image kept remote for '{title_hint}': {e}")
                    references.append(ImageReference(url=url))

        replacements = {ref.url: ref.local_path for ref in references if ref.localized}

        def replace(match: re.Match) -> str:
            local_path = replacements.get(match.group(2))
            if local_path is None:
                return match.group(0)
            return f"![{match.group(1)}]({local_path})"

        self.logger.info(f"Images for '{title_hint}': {len(replacements)}/{len(urls)} localized")
        return IMAGE_PATTERN.sub(replace, markdown)

    def localize_url(self, url: str, title_hint: str) -> ImageReference:
        """
        Store one image and return its reference.

        Raises:
            DownloadError: If the image cannot be fetched or written
        """
        with self._lock:
            local_path = self._localized.get(url)
            if local_path is not None:
                self.stats['reused'] += 1
        if local_path is not None:
            return ImageReference(url=url, local_path=local_path, filename=local_path.rsplit('/', 1)[-1])

        stem = self.file_stem(url, title_hint)

        existing = self._find_existing(stem)
        if existing is not None:
            self.logger.debug(f"Image already stored: {existing.name}")
            filename = existing.name
        else:
            filename = self._download(url, stem)

        local_path = f"{self.url_prefix}/{filename}"
        with self._lock:
            # A concurrent call may have stored the same URL first
            local_path = self._localized.setdefault(url, local_path)

        return ImageReference(url=url, local_path=local_path, filename=local_path.rsplit('/', 1)[-1])

    @staticmethod
    def file_stem(url: str, title_hint: str) -> str:
        """``<sanitized title>_<first 8 hex digits of md5(url)>``."""
        url_hash = hashlib.md5(url.encode('utf-8')).hexdigest()[:8]
        return f"{sanitize_title(title_hint)}_{url_hash}"

    def _find_existing(self, stem: str) -> Optional[Path]:
        for extension in KNOWN_EXTENSIONS:
            candidate = self.images_dir / f"{stem}{extension}"
            if candidate.exists():
                return candidate
        return None

    def _download(self, url: str, stem: str) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise DownloadError(f"Request failed for {url[:80]}: {e}", url=url) from e

        if not response.ok:
            raise DownloadError(f"HTTP {response.status_code} for {url[:80]}", url=url)

        filename = f"{stem}{extension_for(response.headers.get('Content-Type'))}"
        file_path = self.images_dir / filename

        if file_path.exists():
            self.logger.debug(f"Image already stored: {filename}")
            return filename

        try:
            file_path.write_bytes(response.content)
        except OSError as e:
            raise DownloadError(f"Failed to write {file_path}: {e}", url=url) from e

        with self._lock:
            self.stats['downloaded'] += 1
        self.logger.debug(f"Saved image {filename} ({len(response.content)} bytes)")
        return filename

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)


__all__ = ['ImageLocalizer', 'sanitize_title', 'extension_for', 'USER_AGENT']
