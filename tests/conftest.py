"""Shared fixtures: an in-memory stand-in for the Notion API."""

import copy
import uuid
from typing import Any, Dict, List, Optional

import pytest

from notion_migrate.api.client import RelationPage
from notion_migrate.api.exceptions import NotionNotFoundError
from notion_migrate.config.config import (
    DEFAULT_PROJECTS_DATABASE_ID,
    DEFAULT_TASKS_DATABASE_ID,
    Config,
)
from notion_migrate.migration.steps import StepContext
from notion_migrate.models.properties import (
    PropertyName,
    people_value,
    relation_value,
    select_value,
    status_value,
    title_value,
)

TASKS_DB = DEFAULT_TASKS_DATABASE_ID
PROJECTS_DB = DEFAULT_PROJECTS_DATABASE_ID
RELATION_PAGE_CAP = 25

# Two-way relations: writing one side updates the other, as Notion does.
DUAL_RELATIONS = {
    PropertyName.PARENT_ITEM.value: PropertyName.SUBTASK.value,
    PropertyName.SUBTASK.value: PropertyName.PARENT_ITEM.value,
}


def new_id() -> str:
    return str(uuid.uuid4())


class FakeNotionClient:
    """Keeps pages in memory and applies updates the way Notion does.

    Updates only touch the properties they name. Relations longer than the
    page cap are stored in full and truncated in page responses.
    """

    def __init__(self):
        self.pages: Dict[str, Dict[str, Any]] = {}
        self.full_relations: Dict[tuple, List[str]] = {}
        self.users: List[Dict[str, Any]] = []
        self.me = {'object': 'user', 'id': 'bot-0000', 'name': 'Migration Bot', 'type': 'bot'}
        self.updates: List[tuple] = []
        self.queries: List[tuple] = []
        self.failing: Dict[str, Exception] = {}
        self.connected = True
        self.closed = False

    # Test setup helpers

    def add_user(self, name: str, email: Optional[str] = None) -> str:
        user_id = new_id()
        self.users.append(
            {
                'object': 'user',
                'id': user_id,
                'name': name,
                'type': 'person',
                'person': {'email': email or f'{name.lower()}@example.com'},
            }
        )
        return user_id

    def add_page(
        self,
        database_id: str,
        properties: Dict[str, Dict[str, Any]],
        page_id: Optional[str] = None,
    ) -> str:
        page_id = page_id or new_id()
        self.pages[page_id] = {
            'object': 'page',
            'id': page_id,
            'url': f'https://www.notion.so/{page_id.replace("-", "")}',
            'parent': {'type': 'database_id', 'database_id': database_id},
            'properties': {},
        }
        self._apply(page_id, properties)
        return page_id

    def add_project(
        self,
        title: str = 'Website redesign',
        status: str = 'Done',
        task_type: Optional[str] = 'Project',
        marker: Optional[str] = 'Project to migrate',
        database_id: str = TASKS_DB,
        in_charge: Optional[List[str]] = None,
        subtasks: Optional[List[str]] = None,
        parents: Optional[List[str]] = None,
        parent_item: Optional[List[str]] = None,
        extra: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> str:
        properties = {
            PropertyName.NAME.value: title_value(title),
            PropertyName.STATUS.value: status_value(status),
            PropertyName.TASK_TYPE.value: select_value(task_type),
            PropertyName.MIGRATION_STATUS.value: select_value(marker),
            PropertyName.IN_CHARGE.value: people_value(in_charge or []),
            PropertyName.PARTICIPANTS.value: people_value([]),
            PropertyName.SUBTASK.value: relation_value(subtasks or []),
            PropertyName.PROJECTS.value: relation_value(parents or []),
            PropertyName.PARENT_ITEM.value: relation_value(parent_item or []),
            PropertyName.PARENT_TRANSFER.value: {'rich_text': []},
            PropertyName.SUBTASK_TRANSFER.value: {'rich_text': []},
        }
        properties.update(extra or {})
        return self.add_page(database_id, properties)

    def add_task(self, title: str = 'Write copy', projects: Optional[List[str]] = None) -> str:
        return self.add_page(
            TASKS_DB,
            {
                PropertyName.NAME.value: title_value(title),
                PropertyName.TASK_TYPE.value: select_value('Task'),
                PropertyName.MIGRATION_STATUS.value: select_value(None),
                PropertyName.PROJECTS.value: relation_value(projects or []),
                PropertyName.PARENT_TRANSFER.value: {'rich_text': []},
            },
        )

    def set_long_relation(self, page_id: str, name: PropertyName, ids: List[str]) -> None:
        """Store a relation that overflows the page response cap."""
        prop = self.pages[page_id]['properties'][name.value]
        prop['relation'] = [{'id': i} for i in ids[:RELATION_PAGE_CAP]]
        prop['has_more'] = len(ids) > RELATION_PAGE_CAP
        self.full_relations[(page_id, prop['id'])] = list(ids)

    def move(self, page_id: str, database_id: str) -> None:
        self.pages[page_id]['parent'] = {'type': 'database_id', 'database_id': database_id}

    def prop(self, page_id: str, name: PropertyName) -> Dict[str, Any]:
        return self.pages[page_id]['properties'].get(name.value, {})

    def text(self, page_id: str, name: PropertyName) -> str:
        items = self.prop(page_id, name).get('rich_text') or []
        return ''.join(item['plain_text'] for item in items)

    def relation_ids(self, page_id: str, name: PropertyName) -> List[str]:
        prop = self.prop(page_id, name)
        full = self.full_relations.get((page_id, prop.get('id')))
        if full is not None:
            return list(full)
        return [rel['id'] for rel in prop.get('relation') or []]

    def people_ids(self, page_id: str, name: PropertyName) -> List[str]:
        return [person['id'] for person in self.prop(page_id, name).get('people') or []]

    def marker(self, page_id: str) -> Optional[str]:
        select = self.prop(page_id, PropertyName.MIGRATION_STATUS).get('select')
        return select['name'] if select else None

    def updates_for(self, page_id: str) -> List[Dict[str, Any]]:
        return [properties for pid, properties in self.updates if pid == page_id]

    # Notion client interface

    def query_database(self, database_id: str, filter: Optional[Dict[str, Any]] = None):
        self.queries.append((database_id, filter))
        results = []
        for page in self.pages.values():
            if page['parent'].get('database_id', '').replace('-', '') != database_id.replace('-', ''):
                continue
            if filter and not self._matches(page, filter):
                continue
            results.append(copy.deepcopy(page))
        return results

    def retrieve_database(self, database_id: str) -> Dict[str, Any]:
        return {'object': 'database', 'id': database_id, 'title': [], 'properties': {}}

    def retrieve_page(self, page_id: str) -> Dict[str, Any]:
        self._check(page_id)
        return copy.deepcopy(self.pages[page_id])

    def update_page(self, page_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        self._check(page_id)
        self.updates.append((page_id, copy.deepcopy(properties)))
        self._apply(page_id, properties)
        return copy.deepcopy(self.pages[page_id])

    def create_page(self, database_id: str, properties: Dict[str, Any]) -> Dict[str, Any]:
        page_id = self.add_page(database_id, properties)
        return copy.deepcopy(self.pages[page_id])

    def read_relation(self, page_id: str, property_id: str) -> RelationPage:
        self._check(page_id)
        ids = self.full_relations.get((page_id, property_id))
        if ids is None:
            for prop in self.pages[page_id]['properties'].values():
                if prop.get('id') == property_id:
                    ids = [rel['id'] for rel in prop.get('relation') or []]
        ids = ids or []
        pages = max(1, -(-len(ids) // 100))
        return RelationPage(ids=ids, pages=pages, overflow=pages > 1)

    def list_users(self) -> List[Dict[str, Any]]:
        return list(self.users)

    def get_me(self) -> Dict[str, Any]:
        return dict(self.me)

    def test_connection(self) -> bool:
        return self.connected

    def close(self) -> None:
        self.closed = True

    # Internals

    def _check(self, page_id: str) -> None:
        if page_id in self.failing:
            raise self.failing[page_id]
        if page_id not in self.pages:
            raise NotionNotFoundError(
                f'object_not_found: Could not find page with ID: {page_id}',
                status_code=404,
                code='object_not_found',
            )

    @staticmethod
    def _matches(page: Dict[str, Any], filter: Dict[str, Any]) -> bool:
        prop = page['properties'].get(filter['property']) or {}
        selected = prop.get('select')
        return (selected or {}).get('name') == filter['select']['equals']

    def _apply(self, page_id: str, properties: Dict[str, Any]) -> None:
        stored = self.pages[page_id]['properties']
        for name, value in properties.items():
            prop_type = next(iter(value))
            prop_id = stored.get(name, {}).get('id') or f'prop-{len(stored)}-{name[:4]}'
            old_ids = [rel['id'] for rel in stored.get(name, {}).get('relation') or []]
            stored[name] = {
                'id': prop_id,
                'type': prop_type,
                prop_type: self._stored_value(prop_type, value[prop_type]),
            }
            if prop_type == 'relation':
                stored[name]['has_more'] = False
                self.full_relations.pop((page_id, prop_id), None)
                if name in DUAL_RELATIONS:
                    new_ids = [rel['id'] for rel in value['relation']]
                    self._sync_dual(page_id, DUAL_RELATIONS[name], old_ids, new_ids)

    def _sync_dual(
        self, page_id: str, other_name: str, old_ids: List[str], new_ids: List[str]
    ) -> None:
        for target in set(old_ids) ^ set(new_ids):
            if target not in self.pages:
                continue
            stored = self.pages[target]['properties']
            prop = stored.setdefault(
                other_name,
                {
                    'id': f'prop-{len(stored)}-{other_name[:4]}',
                    'type': 'relation',
                    'relation': [],
                    'has_more': False,
                },
            )
            linked = [rel['id'] for rel in prop['relation']]
            if target in new_ids and page_id not in linked:
                prop['relation'].append({'id': page_id})
            elif target not in new_ids:
                prop['relation'] = [rel for rel in prop['relation'] if rel['id'] != page_id]

    def _stored_value(self, prop_type: str, value: Any) -> Any:
        if prop_type in ('title', 'rich_text'):
            return [
                {
                    'type': 'text',
                    'text': item['text'],
                    'plain_text': item['text']['content'],
                }
                for item in value
            ]
        if prop_type == 'people':
            names = {user['id']: user['name'] for user in self.users}
            return [
                {'object': 'user', 'id': person['id'], 'name': names.get(person['id'])}
                for person in value
            ]
        return copy.deepcopy(value)


@pytest.fixture
def notion():
    return FakeNotionClient()


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def context(notion, config):
    return StepContext(client=notion, config=config)
