"""Tests for project eligibility checks."""

import pytest

from conftest import new_id
from notion_migrate.config.config import MigrationConfig
from notion_migrate.migration.validator import EligibilityValidator
from notion_migrate.models.properties import PropertyName, select_value
from notion_migrate.models.record import Record


class TestEligibilityValidator:
    """Test EligibilityValidator."""

    @pytest.fixture
    def validator(self, notion):
        return EligibilityValidator(notion, MigrationConfig())

    def record(self, notion, **kwargs):
        return Record.from_page(notion.retrieve_page(notion.add_project(**kwargs)))

    @pytest.mark.parametrize('status', ['Done', 'Cancelled'])
    def test_eligible_project(self, notion, validator, status):
        result = validator.validate(self.record(notion, status=status))

        assert result.valid
        assert result.errors == []
        assert notion.updates == []

    def test_status_not_allowed(self, notion, validator):
        errors = validator.check(self.record(notion, status='In progress'))

        assert errors == ['Status is "In progress" but must be "Done" or "Cancelled"']

    def test_type_not_allowed(self, notion, validator):
        errors = validator.check(self.record(notion, task_type='Task'))

        assert errors == ['Task/project/activity is "Task" but must be "Project"']

    def test_parent_item_not_allowed(self, notion, validator):
        parent = notion.add_task('Umbrella project')

        errors = validator.check(self.record(notion, parent_item=[parent]))

        assert errors == [
            'Project has parent item - only root-level projects can be migrated'
        ]

    def test_all_errors_are_collected(self, notion, validator):
        errors = validator.check(
            self.record(notion, status='Not started', task_type='Activity')
        )

        assert len(errors) == 2

    def test_mistyped_property_is_reported(self, notion, validator):
        pid = notion.add_project(
            extra={PropertyName.STATUS.value: select_value('Done')}
        )

        errors = validator.check(Record.from_page(notion.retrieve_page(pid)))

        assert errors == ['Property "Status" is of type "select", expected "status"']

    def test_overflow_only_fails_with_error_policy(self, notion):
        pid = notion.add_project()
        notion.set_long_relation(pid, PropertyName.SUBTASK, [new_id() for _ in range(30)])
        record = Record.from_page(notion.retrieve_page(pid))

        paginate = EligibilityValidator(notion, MigrationConfig())
        strict = EligibilityValidator(notion, MigrationConfig(overflow_policy='error'))

        assert paginate.check(record) == []
        assert strict.check(record) == [
            'Project has too many subtasks (pagination limit exceeded)'
        ]

    def test_invalid_record_is_marked(self, notion, validator):
        pid = notion.add_project(status='In progress')

        result = validator.validate(Record.from_page(notion.retrieve_page(pid)))

        assert not result.valid
        assert result.summary.marker == 'Error'
        assert notion.marker(pid) == 'Error'

    def test_marking_can_be_disabled(self, notion):
        pid = notion.add_project(status='In progress')
        validator = EligibilityValidator(notion, MigrationConfig(), mark_errors=False)

        result = validator.validate(Record.from_page(notion.retrieve_page(pid)))

        assert not result.valid
        assert notion.marker(pid) == 'Project to migrate'
