"""Notion API client."""

from .client import NotionClient, NotionClientFactory
from .exceptions import (
    NotionAPIError,
    NotionAuthenticationError,
    NotionConflictError,
    NotionNotFoundError,
    NotionPermissionError,
    NotionRateLimitError,
    NotionValidationError,
)

__all__ = [
    'NotionClient',
    'NotionClientFactory',
    'NotionAPIError',
    'NotionAuthenticationError',
    'NotionConflictError',
    'NotionNotFoundError',
    'NotionPermissionError',
    'NotionRateLimitError',
    'NotionValidationError',
]
