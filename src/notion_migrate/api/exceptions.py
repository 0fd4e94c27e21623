"""Notion API exceptions."""

from typing import Optional


class NotionAPIError(Exception):
    """Base exception for Notion API errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        response_data: Optional[dict] = None,
    ):
        """Initialize Notion API error.

        Args:
            message: Error message
            status_code: HTTP status code
            code: Notion error code (e.g. ``object_not_found``)
            response_data: Response data from API
        """
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.response_data = response_data


class NotionAuthenticationError(NotionAPIError):
    """Missing or rejected API token."""

    pass


class NotionPermissionError(NotionAPIError):
    """The integration has no access to the resource."""

    pass


class NotionRateLimitError(NotionAPIError):
    """Rate limit exceeded error."""

    def __init__(self, message: str, retry_after: int = 60, **kwargs):
        """Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds to wait before retry
            **kwargs: Additional arguments for base class
        """
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class NotionNotFoundError(NotionAPIError):
    """Page, database or user not found (or not shared with the integration)."""

    pass


class NotionValidationError(NotionAPIError):
    """Validation error for API requests."""

    pass


class NotionConflictError(NotionAPIError):
    """Concurrent edit conflict on the same page."""

    pass
