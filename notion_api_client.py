"""Notion REST API client with retry logic and rate limiting."""

import json
import logging
import threading
import time
from typing import Any, Dict, Iterator, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger('notion_markdown_sync.client')

NOTION_API_BASE = 'https://api.notion.com/v1'
DEFAULT_NOTION_VERSION = '2022-06-28'
PAGE_SIZE = 100


class NotionClient:
    """Notion REST API client with bearer authentication, retry logic and rate limiting."""

    def __init__(
        self,
        token: str,
        api_version: str = DEFAULT_NOTION_VERSION,
        base_url: str = NOTION_API_BASE,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_factor: float = 2.0,
        rate_limit: float = 0.34,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the client.

        Args:
            token: Notion integration token
            api_version: Value for the Notion-Version header
            base_url: API base URL
            timeout: HTTP request timeout in seconds
            max_retries: Maximum retry attempts for transient errors
            retry_backoff_factor: Exponential backoff factor
            rate_limit: Minimum seconds between requests (0.0 = no rate limiting)
            session: Optional pre-built session (used by tests)
        """
        if not token:
            raise ValueError("Notion client requires a token")

        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.rate_limit = rate_limit
        self.last_request_time = 0.0
        self._rate_lock = threading.Lock()

        self.session = session or requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {token}',
            'Notion-Version': api_version,
            'Content-Type': 'application/json',
        })

        if session is None:
            # Notion's database query is a POST, so it must be retried too
            retry_strategy = Retry(
                total=max_retries,
                backoff_factor=retry_backoff_factor,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["HEAD", "GET", "OPTIONS", "POST"],
                respect_retry_after_header=True
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            self.session.mount("http://", adapter)
            self.session.mount("https://", adapter)

        logger.debug(f"Client configured with timeout={timeout}s, max_retries={max_retries}, "
                     f"backoff_factor={retry_backoff_factor}, rate_limit={rate_limit}s")

    def _enforce_rate_limit(self) -> None:
        """Enforce the minimum interval between requests across threads."""
        if self.rate_limit <= 0:
            return

        with self._rate_lock:
            time_since_last = time.time() - self.last_request_time
            if time_since_last < self.rate_limit:
                sleep_time = self.rate_limit - time_since_last
                logger.debug(f"Rate limiting: sleeping for {sleep_time:.2f}s")
                time.sleep(sleep_time)
            self.last_request_time = time.time()

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """
        Make an HTTP request to the Notion API and return the decoded JSON body.

        Raises:
            requests.exceptions.HTTPError: For non-2xx responses
            requests.exceptions.Timeout: For timeout errors
            requests.exceptions.RequestException: For other request errors
        """
        self._enforce_rate_limit()

        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        start_time = time.time()
        logger.debug(f"API Request: {method} {url}")

        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            elapsed = time.time() - start_time
            logger.debug(f"API Response: {response.status_code} {url} ({elapsed:.3f}s)")

            response.raise_for_status()
            return response.json()

        except requests.exceptions.Timeout:
            logger.error(f"Request timeout after {self.timeout}s: {method} {url}")
            raise

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else "unknown"
            logger.error(f"HTTP Error {status_code}: {method} {url}")

            if e.response is not None:
                try:
                    error_data = e.response.json()
                    logger.debug(f"Error details: {json.dumps(error_data, indent=2)}")
                except ValueError:
                    logger.debug(f"Error response: {e.response.text[:500]}")

            raise

        except requests.exceptions.RequestException as e:
            logger.error(f"Request error: {method} {url} - {str(e)}")
            raise

    def retrieve_database(self, database_id: str) -> Dict[str, Any]:
        """Fetch a database object (title and property schema)."""
        return self._make_request('GET', f'/databases/{database_id}')

    def retrieve_page(self, page_id: str) -> Dict[str, Any]:
        """Fetch a single page object with its properties."""
        return self._make_request('GET', f'/pages/{page_id}')

    def query_database(
        self,
        database_id: str,
        sorts: Optional[List[Dict[str, str]]] = None,
        filter_: Optional[Dict[str, Any]] = None,
        page_size: int = PAGE_SIZE
    ) -> Iterator[Dict[str, Any]]:
        """
        Yield every page of a database, following the pagination cursor.

        Args:
            database_id: Database to query
            sorts: Optional Notion sort specification
            filter_: Optional Notion filter object
            page_size: Results per request (max 100)
        """
        start_cursor = None
        fetched = 0

        while True:
            body: Dict[str, Any] = {'page_size': page_size}
            if sorts:
                body['sorts'] = sorts
            if filter_:
                body['filter'] = filter_
            if start_cursor:
                body['start_cursor'] = start_cursor

            data = self._make_request('POST', f'/databases/{database_id}/query', json=body)

            for result in data.get('results', []):
                fetched += 1
                yield result

            if not data.get('has_more') or not data.get('next_cursor'):
                break

            start_cursor = data['next_cursor']
            logger.debug(f"Fetched {fetched} database entries so far...")

    def list_block_children(self, block_id: str, page_size: int = PAGE_SIZE) -> List[Dict[str, Any]]:
        """Return all direct children of a block or page, following the pagination cursor."""
        children: List[Dict[str, Any]] = []
        start_cursor = None

        while True:
            params: Dict[str, Any] = {'page_size': page_size}
            if start_cursor:
                params['start_cursor'] = start_cursor

            data = self._make_request('GET', f'/blocks/{block_id}/children', params=params)
            children.extend(data.get('results', []))

            if not data.get('has_more') or not data.get('next_cursor'):
                break

            start_cursor = data['next_cursor']

        return children

    def close(self) -> None:
        self.session.close()


__all__ = ['NotionClient', 'NOTION_API_BASE', 'DEFAULT_NOTION_VERSION']
