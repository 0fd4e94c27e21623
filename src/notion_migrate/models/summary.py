"""Display summaries of records."""

from typing import List

from pydantic import BaseModel, Field

from ..exceptions import PropertyTypeError
from .properties import PropertyName
from .record import Record

NOTION_BASE_URL = 'https://www.notion.so'


def format_page_url(page_id: str) -> str:
    """Public URL of a page, from its ID."""
    return f'{NOTION_BASE_URL}/{page_id.replace("-", "")}'


class RecordSummary(BaseModel):
    """Read-only projection of a record used for reports and logs."""

    id: str = Field(..., description='Page ID')
    title: str = Field(default='Untitled', description='Page title')
    url: str = Field(..., description='Page URL')
    status: str = Field(default='Unknown', description='Status')
    assignees: List[str] = Field(default_factory=list, description='People in charge')
    marker: str = Field(default='Unknown', description='Migration status')

    def display(self) -> str:
        return (
            f'{self.title} (Status: {self.status}, '
            f'In charge: {", ".join(self.assignees)})'
        )


def _safe(getter, default):
    try:
        value = getter()
    except PropertyTypeError:
        return default
    return value if value else default


def extract_summary(record: Record) -> RecordSummary:
    """Project a record into a summary.

    Never raises on odd property types: summaries are for display, so a
    mistyped property is shown as unknown instead.
    """
    # Projects use "Owner" where Tasks use "In charge"
    people = _safe(lambda: record.people(PropertyName.OWNER), []) or _safe(
        lambda: record.people(PropertyName.IN_CHARGE), []
    )

    return RecordSummary(
        id=record.id,
        title=_safe(record.title, 'Untitled'),
        url=format_page_url(record.id),
        status=_safe(record.status, 'Unknown'),
        assignees=[person.name or 'Unknown' for person in people],
        marker=_safe(lambda: record.select(PropertyName.MIGRATION_STATUS), 'Unknown'),
    )
