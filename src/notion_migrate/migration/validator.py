"""Eligibility checks run on a project before it is migrated."""

from typing import List

from loguru import logger
from pydantic import BaseModel, Field

from ..api.client import NotionClient
from ..config.config import MigrationConfig
from ..exceptions import PropertyTypeError
from ..models.properties import PropertyName, select_value
from ..models.record import MigrationMarker, Record
from ..models.summary import RecordSummary, extract_summary


class ValidationResult(BaseModel):
    """Outcome of validating one record."""

    valid: bool = Field(..., description='Record can be migrated')
    errors: List[str] = Field(default_factory=list, description='Failed checks')
    summary: RecordSummary = Field(..., description='Record summary')


class EligibilityValidator:
    """Checks the structural preconditions of a candidate project.

    Every check runs, errors accumulate. With ``mark_errors`` an invalid record
    gets the Error marker so later steps no longer select it.
    """

    def __init__(
        self,
        client: NotionClient,
        config: MigrationConfig,
        mark_errors: bool = True,
    ):
        self.client = client
        self.config = config
        self.mark_errors = mark_errors
        self.logger = logger.bind(component='EligibilityValidator')

    def check(self, record: Record) -> List[str]:
        """Run every check and return the error messages, without side effects."""
        errors = []

        try:
            status = record.status()
        except PropertyTypeError as e:
            errors.append(str(e))
        else:
            if status not in self.config.allowed_statuses:
                errors.append(
                    f'Status is "{status}" but must be '
                    f'{_quote_list(self.config.allowed_statuses)}'
                )

        try:
            task_type = record.select(PropertyName.TASK_TYPE)
        except PropertyTypeError as e:
            errors.append(str(e))
        else:
            if task_type not in self.config.allowed_types:
                errors.append(
                    f'{PropertyName.TASK_TYPE.value} is "{task_type}" but must be '
                    f'{_quote_list(self.config.allowed_types)}'
                )

        try:
            parent = record.relation(PropertyName.PARENT_ITEM)
        except PropertyTypeError as e:
            errors.append(str(e))
        else:
            if parent.ids or parent.has_more:
                errors.append(
                    'Project has parent item - only root-level projects can be migrated'
                )

        try:
            subtasks = record.relation(PropertyName.SUBTASK)
        except PropertyTypeError as e:
            errors.append(str(e))
        else:
            if subtasks.has_more and self.config.overflow_policy == 'error':
                errors.append(
                    'Project has too many subtasks (pagination limit exceeded)'
                )

        return errors

    def validate(self, record: Record) -> ValidationResult:
        errors = self.check(record)
        summary = extract_summary(record)

        if errors:
            self.logger.info(f'{summary.title} is not eligible: {"; ".join(errors)}')
            if self.mark_errors:
                self.client.update_page(
                    record.id,
                    {
                        PropertyName.MIGRATION_STATUS.value: select_value(
                            MigrationMarker.ERROR.value
                        )
                    },
                )
                summary.marker = MigrationMarker.ERROR.value

        return ValidationResult(valid=not errors, errors=errors, summary=summary)


def _quote_list(values: List[str]) -> str:
    quoted = [f'"{value}"' for value in values]
    if len(quoted) == 1:
        return quoted[0]
    return ', '.join(quoted[:-1]) + ' or ' + quoted[-1]
