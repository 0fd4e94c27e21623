"""Tests for record accessors, summaries and property payloads."""

import pytest

from notion_migrate.exceptions import PropertyTypeError
from notion_migrate.models.properties import (
    PropertyName,
    people_value,
    relation_value,
    rich_text_value,
    select_value,
)
from notion_migrate.models.record import MigrationMarker, Record
from notion_migrate.models.summary import extract_summary, format_page_url

PAGE_ID = '3f1c2b4e-8a9d-4c1e-9b2f-0123456789ab'


def make_page(**properties):
    return {
        'object': 'page',
        'id': PAGE_ID,
        'url': 'https://www.notion.so/3f1c2b4e8a9d4c1e9b2f0123456789ab',
        'parent': {'type': 'database_id', 'database_id': 'f22a6d02-e2d0-4c6c-ae8b-20818cedd576'},
        'properties': properties,
    }


def title(text):
    return {'id': 'title', 'type': 'title', 'title': [{'plain_text': text}]}


class TestRecord:
    """Test typed access to page properties."""

    def test_database_id_is_compact(self):
        record = Record.from_page(make_page())

        assert record.database_id == 'f22a6d02e2d04c6cae8b20818cedd576'

    def test_workspace_parent_has_no_database(self):
        page = make_page()
        page['parent'] = {'type': 'workspace', 'workspace': True}

        assert Record.from_page(page).database_id is None

    def test_title_joins_rich_text(self):
        record = Record.from_page(
            make_page(
                Name={
                    'type': 'title',
                    'title': [{'plain_text': 'Website '}, {'text': {'content': 'redesign'}}],
                }
            )
        )

        assert record.title() == 'Website redesign'

    def test_empty_title(self):
        assert Record.from_page(make_page(Name=title(''))).title() is None

    def test_text_strips_and_treats_blank_as_missing(self):
        record = Record.from_page(
            make_page(
                **{
                    'Parent projects to transfer': {
                        'type': 'rich_text',
                        'rich_text': [{'plain_text': '   '}],
                    }
                }
            )
        )

        assert record.text(PropertyName.PARENT_TRANSFER) is None
        assert record.text(PropertyName.SUBTASK_TRANSFER) is None

    def test_people(self):
        record = Record.from_page(
            make_page(
                **{
                    'In charge': {
                        'type': 'people',
                        'people': [
                            {'id': 'u1', 'name': 'Ada', 'person': {'email': 'ada@example.com'}},
                            {'id': 'u2', 'name': 'Bob'},
                        ],
                    }
                }
            )
        )

        people = record.people(PropertyName.IN_CHARGE)

        assert [p.id for p in people] == ['u1', 'u2']
        assert people[0].email == 'ada@example.com'
        assert people[1].email is None

    def test_relation_keeps_overflow_flag(self):
        record = Record.from_page(
            make_page(
                Subtask={
                    'id': 'abc%3D',
                    'type': 'relation',
                    'relation': [{'id': 'a'}, {'id': 'b'}],
                    'has_more': True,
                }
            )
        )

        relation = record.relation(PropertyName.SUBTASK)

        assert relation.ids == ['a', 'b']
        assert relation.has_more
        assert relation.property_id == 'abc%3D'
        assert len(relation) == 2

    def test_missing_relation_is_empty(self):
        relation = Record.from_page(make_page()).relation(PropertyName.SUBTASK)

        assert relation.ids == []
        assert not relation.has_more

    def test_wrong_type_raises(self):
        record = Record.from_page(
            make_page(Status={'type': 'select', 'select': {'name': 'Done'}})
        )

        with pytest.raises(PropertyTypeError) as exc_info:
            record.status()

        assert str(exc_info.value) == 'Property "Status" is of type "select", expected "status"'

    def test_marker(self):
        record = Record.from_page(
            make_page(
                **{'Migration status': {'type': 'select', 'select': {'name': 'Migrated'}}}
            )
        )

        assert record.marker() == MigrationMarker.MIGRATED

    def test_unknown_marker_is_none(self):
        record = Record.from_page(
            make_page(
                **{'Migration status': {'type': 'select', 'select': {'name': 'Archived'}}}
            )
        )

        assert record.marker() is None


class TestSummary:
    """Test record summaries."""

    def test_summary_from_task(self):
        record = Record.from_page(
            make_page(
                Name=title('Website redesign'),
                Status={'type': 'status', 'status': {'name': 'Done'}},
                **{
                    'In charge': {'type': 'people', 'people': [{'id': 'u1', 'name': 'Ada'}]},
                    'Migration status': {
                        'type': 'select',
                        'select': {'name': 'Project to migrate'},
                    },
                },
            )
        )

        summary = extract_summary(record)

        assert summary.title == 'Website redesign'
        assert summary.status == 'Done'
        assert summary.assignees == ['Ada']
        assert summary.marker == 'Project to migrate'
        assert summary.url == format_page_url(PAGE_ID)
        assert summary.display() == 'Website redesign (Status: Done, In charge: Ada)'

    def test_summary_prefers_owner(self):
        record = Record.from_page(
            make_page(
                Owner={'type': 'people', 'people': [{'id': 'u2', 'name': 'Bob'}]},
                **{'In charge': {'type': 'people', 'people': [{'id': 'u1', 'name': 'Ada'}]}},
            )
        )

        assert extract_summary(record).assignees == ['Bob']

    def test_summary_tolerates_mistyped_properties(self):
        record = Record.from_page(
            make_page(Status={'type': 'select', 'select': {'name': 'Done'}})
        )

        summary = extract_summary(record)

        assert summary.title == 'Untitled'
        assert summary.status == 'Unknown'
        assert summary.marker == 'Unknown'
        assert summary.assignees == []


class TestPropertyPayloads:
    """Test builders of property update payloads."""

    def test_rich_text_clears_on_empty(self):
        assert rich_text_value(None) == {'rich_text': []}
        assert rich_text_value('') == {'rich_text': []}

    def test_rich_text_splits_long_content(self):
        payload = rich_text_value('x' * 4500)

        chunks = [item['text']['content'] for item in payload['rich_text']]
        assert [len(chunk) for chunk in chunks] == [2000, 2000, 500]

    def test_select_none_clears(self):
        assert select_value(None) == {'select': None}
        assert select_value('Migrated') == {'select': {'name': 'Migrated'}}

    def test_people_and_relation(self):
        assert people_value(['u1']) == {'people': [{'id': 'u1'}]}
        assert relation_value(['a', 'b']) == {'relation': [{'id': 'a'}, {'id': 'b'}]}
