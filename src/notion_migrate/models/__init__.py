"""Data models for Notion pages."""

from .properties import PropertyName
from .record import MigrationMarker, Person, Record, RelationValue
from .summary import RecordSummary, extract_summary, format_page_url

__all__ = [
    'PropertyName',
    'MigrationMarker',
    'Person',
    'Record',
    'RelationValue',
    'RecordSummary',
    'extract_summary',
    'format_page_url',
]
