"""Typed view over Notion pages."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import PropertyTypeError
from .properties import PropertyName


class MigrationMarker(str, Enum):
    """Values of the "Migration status" select that drive step selection."""

    TO_MIGRATE = 'Project to migrate'
    TO_RELINK = 'Subtask to relink'
    MIGRATED = 'Migrated'
    ERROR = 'Error'


class Person(BaseModel):
    """A Notion user referenced from a people property."""

    id: str = Field(..., description='User ID')
    name: Optional[str] = Field(default=None, description='Display name')
    email: Optional[str] = Field(default=None, description='Email, for people')

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'Person':
        person = data.get('person') or {}
        return cls(id=data['id'], name=data.get('name'), email=person.get('email'))


class RelationValue(BaseModel):
    """Relation ids as embedded in a page response."""

    ids: List[str] = Field(default_factory=list, description='Related page IDs')
    has_more: bool = Field(
        default=False, description='More ids exist than the page response carries'
    )
    property_id: Optional[str] = Field(
        default=None, description='Property ID, needed for paginated reads'
    )

    def __len__(self) -> int:
        return len(self.ids)


def _plain_text(items: Optional[List[Dict[str, Any]]]) -> str:
    parts = []
    for item in items or []:
        text = item.get('plain_text')
        if text is None:
            text = (item.get('text') or {}).get('content', '')
        parts.append(text)
    return ''.join(parts)


class Record(BaseModel):
    """A page from the Tasks or Projects database."""

    model_config = ConfigDict(extra='ignore')

    id: str = Field(..., description='Page ID')
    url: Optional[str] = Field(default=None, description='Page URL')
    parent: Dict[str, Any] = Field(default_factory=dict, description='Page parent')
    properties: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict, description='Raw property values by name'
    )

    @classmethod
    def from_page(cls, page: Dict[str, Any]) -> 'Record':
        return cls(**page)

    @property
    def database_id(self) -> Optional[str]:
        """Parent database ID without hyphens, or None for non-database parents."""
        database_id = self.parent.get('database_id')
        return database_id.replace('-', '') if database_id else None

    def has_property(self, name: PropertyName) -> bool:
        return name.value in self.properties

    def _property(self, name: PropertyName, expected: str) -> Optional[Dict[str, Any]]:
        """Return the raw property, None when absent.

        Raises:
            PropertyTypeError: If the property exists with another type
        """
        prop = self.properties.get(name.value)
        if prop is None:
            return None

        actual = prop.get('type', expected)
        if actual != expected:
            raise PropertyTypeError(name.value, expected, actual)
        return prop

    def title(self) -> Optional[str]:
        prop = self._property(PropertyName.NAME, 'title')
        if prop is None:
            return None
        return _plain_text(prop.get('title')) or None

    def text(self, name: PropertyName) -> Optional[str]:
        """Plain text of a rich text property; None when absent or empty."""
        prop = self._property(name, 'rich_text')
        if prop is None:
            return None
        return _plain_text(prop.get('rich_text')).strip() or None

    def select(self, name: PropertyName) -> Optional[str]:
        prop = self._property(name, 'select')
        if prop is None or not prop.get('select'):
            return None
        return prop['select'].get('name')

    def status(self, name: PropertyName = PropertyName.STATUS) -> Optional[str]:
        prop = self._property(name, 'status')
        if prop is None or not prop.get('status'):
            return None
        return prop['status'].get('name')

    def people(self, name: PropertyName) -> List[Person]:
        prop = self._property(name, 'people')
        if prop is None:
            return []
        return [Person.from_api(person) for person in prop.get('people') or []]

    def relation(self, name: PropertyName) -> RelationValue:
        prop = self._property(name, 'relation')
        if prop is None:
            return RelationValue()
        return RelationValue(
            ids=[rel['id'] for rel in prop.get('relation') or []],
            has_more=bool(prop.get('has_more')),
            property_id=prop.get('id'),
        )

    def date(self, name: PropertyName) -> Optional[Dict[str, Any]]:
        prop = self._property(name, 'date')
        if prop is None:
            return None
        return prop.get('date') or None

    def number(self, name: PropertyName) -> Optional[float]:
        prop = self._property(name, 'number')
        if prop is None:
            return None
        return prop.get('number')

    def marker(self) -> Optional[MigrationMarker]:
        """Current migration marker; None when unset or not a known value."""
        value = self.select(PropertyName.MIGRATION_STATUS)
        try:
            return MigrationMarker(value) if value else None
        except ValueError:
            return None
