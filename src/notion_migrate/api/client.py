"""Notion API client implementation."""

import time
from typing import Any, Dict, List, Optional, Tuple

import requests
from loguru import logger
from pydantic import BaseModel

from ..config.config import NotionConfig
from .exceptions import (
    NotionAPIError,
    NotionAuthenticationError,
    NotionConflictError,
    NotionNotFoundError,
    NotionPermissionError,
    NotionRateLimitError,
    NotionValidationError,
)
from .rate_limiter import RateLimiter


class APIResponse(BaseModel):
    """Standard API response wrapper."""

    status_code: int
    data: Any
    headers: Dict[str, str]
    success: bool


class RelationPage(BaseModel):
    """All ids of a relation property, read across pages."""

    ids: List[str]
    pages: int = 1
    overflow: bool = False


_ERROR_CLASSES = {
    400: NotionValidationError,
    401: NotionAuthenticationError,
    403: NotionPermissionError,
    404: NotionNotFoundError,
    409: NotionConflictError,
}


class NotionClient:
    """Notion API client with authentication and request pacing."""

    def __init__(self, config: NotionConfig):
        """Initialize Notion client.

        Args:
            config: Notion connection configuration
        """
        self.config = config
        self.base_url = config.base_url.rstrip('/')
        self.session = requests.Session()
        self.rate_limiter = RateLimiter(config.rate_limit_per_second)

        if not config.token:
            raise NotionAuthenticationError(
                'No Notion API token provided. Use --token flag or set '
                'NOTION_TOKEN environment variable.'
            )

        self.session.headers.update(
            {
                'Authorization': f'Bearer {config.token}',
                'Notion-Version': config.notion_version,
                'Content-Type': 'application/json',
                'User-Agent': 'notion-migrate/0.1.0',
            }
        )

        logger.info(f'Initialized Notion client for {self.base_url}')

    def _build_url(self, endpoint: str) -> str:
        """Build full API URL from endpoint.

        Args:
            endpoint: API endpoint path

        Returns:
            Full API URL
        """
        return f'{self.base_url}/{endpoint.lstrip("/")}'

    def _handle_response(self, response: requests.Response) -> APIResponse:
        """Handle API response and convert to standard format.

        Args:
            response: Raw HTTP response

        Returns:
            Standardized API response

        Raises:
            NotionAPIError: For various API errors
        """
        headers = dict(response.headers)

        if response.status_code >= 400:
            error_data = None
            try:
                error_data = response.json()
                code = error_data.get('code')
                message = error_data.get('message', f'HTTP {response.status_code}')
            except ValueError:
                code = None
                message = f'HTTP {response.status_code}: {response.text}'

            if response.status_code == 429:
                retry_after = int(headers.get('Retry-After', 60))
                raise NotionRateLimitError(
                    f'Rate limit exceeded. Retry after {retry_after} seconds',
                    retry_after=retry_after,
                    status_code=429,
                    code=code,
                    response_data=error_data,
                )

            if response.status_code == 401:
                message = 'Invalid API token or insufficient permissions'

            error_class = _ERROR_CLASSES.get(response.status_code, NotionAPIError)
            raise error_class(
                f'{code or "Error"}: {message}' if code else message,
                status_code=response.status_code,
                code=code,
                response_data=error_data,
            )

        # Parse response data
        try:
            data = response.json() if response.content else None
        except ValueError:
            data = response.text

        return APIResponse(
            status_code=response.status_code,
            data=data,
            headers=headers,
            success=200 <= response.status_code < 300,
        )

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> APIResponse:
        url = self._build_url(endpoint)
        self.rate_limiter.acquire()

        try:
            response = self.session.request(
                method, url, params=params, json=data, timeout=self.config.timeout
            )
        except requests.RequestException as e:
            logger.error(f'Network error during {method} request: {e}')
            raise NotionAPIError(f'Network error: {e}')

        return self._handle_response(response)

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> APIResponse:
        """Make GET request."""
        return self._request('GET', endpoint, params=params)

    def post(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> APIResponse:
        """Make POST request."""
        return self._request('POST', endpoint, data=data)

    def patch(
        self, endpoint: str, data: Optional[Dict[str, Any]] = None
    ) -> APIResponse:
        """Make PATCH request."""
        return self._request('PATCH', endpoint, data=data)

    def get_paginated(
        self,
        endpoint: str,
        method: str = 'GET',
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        delay: float = 0.0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """Get all pages of a cursor-paginated endpoint.

        Args:
            endpoint: API endpoint
            method: ``GET`` (cursor in query string) or ``POST`` (cursor in body)
            params: Query parameters
            body: Request body for POST list endpoints
            delay: Pause between consecutive pages

        Returns:
            Tuple of all items from all pages and the number of pages read
        """
        all_items: List[Dict[str, Any]] = []
        cursor = None
        pages = 0

        while True:
            paging: Dict[str, Any] = {'page_size': self.config.page_size}
            if cursor:
                paging['start_cursor'] = cursor

            if method == 'GET':
                response = self.get(endpoint, params={**(params or {}), **paging})
            else:
                response = self.post(endpoint, data={**(body or {}), **paging})

            pages += 1
            payload = response.data or {}
            all_items.extend(payload.get('results', []))

            cursor = payload.get('next_cursor')
            if not payload.get('has_more') or not cursor:
                break

            if delay:
                time.sleep(delay)

        logger.debug(f'Retrieved {len(all_items)} items from {endpoint} in {pages} page(s)')
        return all_items, pages

    def query_database(
        self, database_id: str, filter: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Return every page of a database matching ``filter``, in store order."""
        body = {'filter': filter} if filter else {}
        pages, _ = self.get_paginated(
            f'/databases/{database_id}/query', method='POST', body=body
        )
        return pages

    def retrieve_database(self, database_id: str) -> Dict[str, Any]:
        return self.get(f'/databases/{database_id}').data

    def retrieve_page(self, page_id: str) -> Dict[str, Any]:
        return self.get(f'/pages/{page_id}').data

    def update_page(self, page_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        """Update some properties of a page; properties left out are untouched."""
        return self.patch(f'/pages/{page_id}', data={'properties': properties}).data

    def create_page(
        self, database_id: str, properties: Dict[str, Any]
    ) -> Dict[str, Any]:
        return self.post(
            '/pages',
            data={'parent': {'database_id': database_id}, 'properties': properties},
        ).data

    def read_relation(self, page_id: str, property_id: str) -> RelationPage:
        """Read every id of a relation property, past the 25-item page cap.

        Args:
            page_id: Page holding the relation
            property_id: Property ID (as found in ``page['properties'][name]['id']``)

        Returns:
            All related page ids in store order
        """
        items, pages = self.get_paginated(
            f'/pages/{page_id}/properties/{property_id}',
            delay=self.config.page_delay,
        )

        ids = []
        for item in items:
            relation = item.get('relation') or {}
            if relation.get('id'):
                ids.append(relation['id'])

        return RelationPage(ids=ids, pages=pages, overflow=pages > 1)

    def list_users(self) -> List[Dict[str, Any]]:
        users, _ = self.get_paginated('/users')
        return users

    def get_me(self) -> Dict[str, Any]:
        """Return the bot user the token belongs to."""
        return self.get('/users/me').data

    def test_connection(self) -> bool:
        """Test connection to the Notion API.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            response = self.get('/users/me')
            return response.success
        except NotionAPIError as e:
            logger.error(f'Connection test failed: {e}')
            return False

    def close(self):
        """Close the client session."""
        self.session.close()
        logger.debug('Notion client session closed')

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


class NotionClientFactory:
    """Factory for creating Notion API clients."""

    @staticmethod
    def create_client(config: NotionConfig) -> NotionClient:
        """Create Notion client from configuration.

        Args:
            config: Notion connection configuration

        Returns:
            Configured Notion client

        Raises:
            NotionAuthenticationError: If no token is configured
        """
        if not config.token:
            raise NotionAuthenticationError(
                'No Notion API token provided. Use --token flag or set '
                'NOTION_TOKEN environment variable.'
            )

        return NotionClient(config)
