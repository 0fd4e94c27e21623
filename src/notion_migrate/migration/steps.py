"""Migration steps.

Each step selects its working set with a single database query on the
"Migration status" marker and transforms the selected pages one at a time.
A failure on one page is reported against that page and the step moves on;
only authentication failures abort a run.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ..api.client import NotionClient
from ..api.exceptions import NotionAPIError, NotionAuthenticationError
from ..config.config import Config
from ..exceptions import (
    MigrationError,
    RelationOverflowError,
    TransferFieldFilledError,
)
from ..models.properties import (
    PropertyName,
    date_value,
    people_value,
    relation_value,
    rich_text_value,
    select_value,
    status_value,
)
from ..models.record import MigrationMarker, Person, Record
from ..models.summary import RecordSummary, extract_summary
from .codec import decode_ids, encode_ids, encode_urls
from .validator import EligibilityValidator


class OutcomeStatus(str, Enum):
    """What happened to one record in one step."""

    COMPLETED = 'completed'
    SKIPPED = 'skipped'
    FAILED = 'failed'


class RecordOutcome(BaseModel):
    """Result of a step on a single record."""

    summary: RecordSummary = Field(..., description='Record summary')
    status: OutcomeStatus = Field(..., description='Outcome status')
    details: List[str] = Field(default_factory=list, description='What was done')
    error_message: Optional[str] = Field(
        default=None, description='Error message if failed'
    )
    warnings: List[str] = Field(default_factory=list, description='Warning messages')
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description='Additional metadata'
    )

    @property
    def success(self) -> bool:
        return self.status != OutcomeStatus.FAILED


class StepReport(BaseModel):
    """Per-record outcomes of one step run."""

    step: str = Field(..., description='Step name')
    database: str = Field(..., description='Database the working set came from')
    started_at: datetime = Field(..., description='Start time')
    completed_at: Optional[datetime] = Field(default=None, description='End time')
    outcomes: List[RecordOutcome] = Field(
        default_factory=list, description='Outcome of every processed record'
    )
    notice: Optional[str] = Field(
        default=None, description='Message shown instead of, or after, the outcomes'
    )

    def _with_status(self, status: OutcomeStatus) -> List[RecordOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> List[RecordOutcome]:
        return self._with_status(OutcomeStatus.COMPLETED)

    @property
    def skipped(self) -> List[RecordOutcome]:
        return self._with_status(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> List[RecordOutcome]:
        return self._with_status(OutcomeStatus.FAILED)

    @property
    def total(self) -> int:
        return len(self.outcomes)


class ProgressEvent(BaseModel):
    """Progress notification emitted while a step runs."""

    step: str
    current: int
    total: int
    message: str


class ParentProject(BaseModel):
    """A parent project shown to the operator when choosing an assignee."""

    id: str
    title: str = 'Unknown Project'
    owner: str = 'Unknown Owner'


class AssigneeCandidate(BaseModel):
    """A record with several people in charge, waiting for a choice."""

    summary: RecordSummary
    assignees: List[Person]
    parent_projects: List[ParentProject] = Field(default_factory=list)


AssigneeChooser = Callable[[AssigneeCandidate], Optional[str]]
ProgressCallback = Callable[[ProgressEvent], None]


class StepContext(BaseModel):
    """Everything a step needs to run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    client: Any = Field(..., description='Notion client (NotionClient or compatible)')
    config: Config = Field(default_factory=Config, description='Configuration')
    chooser: Optional[AssigneeChooser] = Field(
        default=None, description='Asks the operator who stays in charge'
    )
    progress: Optional[ProgressCallback] = Field(
        default=None, description='Receives progress events'
    )
    raw_output_dir: Optional[str] = Field(
        default=None, description='Directory for raw query dumps'
    )


def marker_filter(marker: MigrationMarker) -> Dict[str, Any]:
    return {
        'property': PropertyName.MIGRATION_STATUS.value,
        'select': {'equals': marker.value},
    }


def same_id(a: str, b: str) -> bool:
    return a.replace('-', '').lower() == b.replace('-', '').lower()


class MigrationStep(ABC):
    """Abstract base class for migration steps."""

    name: str = ''
    description: str = ''
    destination: bool = False
    marker: MigrationMarker = MigrationMarker.TO_MIGRATE
    mark_error_on_failure: bool = False

    def __init__(self, context: StepContext):
        """Initialize migration step.

        Args:
            context: Step context with client and settings
        """
        self.context = context
        self.client: NotionClient = context.client
        self.config = context.config
        self.logger = logger.bind(step=self.name)

    @property
    def database_id(self) -> str:
        databases = self.config.databases
        return databases.projects if self.destination else databases.tasks

    @property
    def database_label(self) -> str:
        return 'Projects' if self.destination else 'Tasks'

    @abstractmethod
    def process_record(self, record: Record) -> RecordOutcome:
        """Transform a single record.

        Args:
            record: Record from the working set

        Returns:
            Outcome for the record

        Raises:
            MigrationError, NotionAPIError: caught by :meth:`process`
        """

    def fetch_records(self) -> List[Record]:
        pages = self.client.query_database(self.database_id, marker_filter(self.marker))
        self._dump_raw(pages)
        return [Record.from_page(page) for page in pages]

    def run(self) -> StepReport:
        """Run the step over its whole working set."""
        started_at = datetime.now()
        self.logger.info(f'Starting step {self.name}')

        records = self.fetch_records()
        total = len(records)
        self._progress(0, total, f'Found {total} record(s) to process')

        outcomes = []
        for index, record in enumerate(records, start=1):
            self._progress(index, total, f'Processing: {extract_summary(record).title}')
            outcomes.append(self.process(record))

        report = StepReport(
            step=self.name,
            database=self.database_label,
            started_at=started_at,
            completed_at=datetime.now(),
            outcomes=outcomes,
        )
        report.notice = self.notice(report)

        self.logger.info(
            f'Completed {self.name}: {len(report.succeeded)} completed, '
            f'{len(report.skipped)} skipped, {len(report.failed)} failed'
        )
        return report

    def process(self, record: Record) -> RecordOutcome:
        """Process one record, turning per-record errors into a failed outcome."""
        try:
            return self.process_record(record)
        except NotionAuthenticationError:
            raise
        except (MigrationError, NotionAPIError) as e:
            summary = extract_summary(record)
            self.logger.error(f'{self.name} failed for {summary.title}: {e}')
            if self.mark_error_on_failure:
                self._mark_error(record, summary)
            return RecordOutcome(
                summary=summary, status=OutcomeStatus.FAILED, error_message=str(e)
            )

    def notice(self, report: StepReport) -> Optional[str]:
        if not report.outcomes:
            return (
                f'No projects found in the {self.database_label} database with '
                f'Migration status = "{self.marker.value}"'
            )
        return None

    def completed(self, record: Record, details: List[str], **kwargs) -> RecordOutcome:
        return RecordOutcome(
            summary=extract_summary(record),
            status=OutcomeStatus.COMPLETED,
            details=details,
            **kwargs,
        )

    def skipped(self, record: Record, reason: str, **kwargs) -> RecordOutcome:
        return RecordOutcome(
            summary=extract_summary(record),
            status=OutcomeStatus.SKIPPED,
            details=[reason],
            **kwargs,
        )

    def failed(self, record: Record, error: str, **kwargs) -> RecordOutcome:
        return RecordOutcome(
            summary=extract_summary(record),
            status=OutcomeStatus.FAILED,
            error_message=error,
            **kwargs,
        )

    def _mark_error(self, record: Record, summary: RecordSummary) -> None:
        try:
            self.client.update_page(
                record.id,
                {
                    PropertyName.MIGRATION_STATUS.value: select_value(
                        MigrationMarker.ERROR.value
                    )
                },
            )
            summary.marker = MigrationMarker.ERROR.value
        except NotionAuthenticationError:
            raise
        except NotionAPIError as e:
            self.logger.error(f'Could not set Error marker on {summary.title}: {e}')

    def _progress(self, current: int, total: int, message: str) -> None:
        if self.context.progress:
            self.context.progress(
                ProgressEvent(step=self.name, current=current, total=total, message=message)
            )

    def _dump_raw(self, pages: List[Dict[str, Any]]) -> None:
        output_dir = self.context.raw_output_dir
        if not output_dir:
            return
        path = Path(output_dir)
        path.mkdir(parents=True, exist_ok=True)
        target = path / f'{self.name}.json'
        with open(target, 'w', encoding='utf-8') as f:
            json.dump(pages, f, indent=2, ensure_ascii=False)
        self.logger.debug(f'Raw records written to {target}')

    def read_full_relation(self, record: Record, name: PropertyName) -> List[str]:
        """All ids of a relation, reading past the page cap when it overflows."""
        relation = record.relation(name)
        if not relation.has_more:
            return relation.ids
        if not relation.property_id:
            raise RelationOverflowError(
                f'"{name.value}" has more entries than returned and no property ID '
                'to page through them'
            )
        self.logger.debug(f'"{name.value}" overflows, reading all pages')
        return self.client.read_relation(record.id, relation.property_id).ids

    def page_title(self, page_id: str, default: str = 'Unknown Project') -> str:
        """Title of another page, or ``default`` when it cannot be read."""
        try:
            return Record.from_page(self.client.retrieve_page(page_id)).title() or 'Untitled'
        except NotionAuthenticationError:
            raise
        except (NotionAPIError, MigrationError) as e:
            self.logger.warning(f'Could not read page {page_id}: {e}')
            return default


class ValidateStep(MigrationStep):
    """Step 1: check that projects are ready for migration."""

    name = 'validate'
    description = 'Validate projects ready for migration'

    def __init__(self, context: StepContext):
        super().__init__(context)
        self.validator = EligibilityValidator(self.client, self.config.migration)

    def process_record(self, record: Record) -> RecordOutcome:
        result = self.validator.validate(record)
        if result.valid:
            return RecordOutcome(
                summary=result.summary,
                status=OutcomeStatus.COMPLETED,
                details=['Ready for migration'],
            )
        return RecordOutcome(
            summary=result.summary,
            status=OutcomeStatus.FAILED,
            details=result.errors,
            error_message='; '.join(result.errors),
        )


class FixAssigneeStep(MigrationStep):
    """Step 2: leave exactly one person "In charge" of every project."""

    name = 'fix-assignee'
    description = 'Fix missing or multiple "In charge" assignments'

    def __init__(self, context: StepContext):
        super().__init__(context)
        self._fallback_id: Optional[str] = self.config.migration.fallback_assignee_id

    def fallback_assignee(self) -> str:
        """Configured fallback, else the integration's own bot user."""
        if not self._fallback_id:
            self._fallback_id = self.client.get_me()['id']
        return self._fallback_id

    def process_record(self, record: Record) -> RecordOutcome:
        people = record.people(PropertyName.IN_CHARGE)

        if not people:
            try:
                assignee = self.fallback_assignee()
                self.client.update_page(
                    record.id, {PropertyName.IN_CHARGE.value: people_value([assignee])}
                )
            except NotionAuthenticationError:
                raise
            except NotionAPIError as e:
                return self.failed(
                    record, f'No one in charge, failed to assign fallback person: {e}'
                )
            return self.completed(
                record,
                [f'No one in charge: assigned {assignee}'],
                metadata={'action': 'auto-assigned', 'assignee': assignee},
            )

        if len(people) == 1:
            return self.skipped(record, 'Single person in charge')

        if self.context.chooser is None:
            return self.skipped(
                record,
                f'{len(people)} people in charge, no operator to choose one',
                warnings=['Multiple people in charge left unresolved'],
            )

        candidate = AssigneeCandidate(
            summary=extract_summary(record),
            assignees=people,
            parent_projects=self.parent_projects(record),
        )
        chosen = self.context.chooser(candidate)
        if chosen is None:
            return self.skipped(record, 'Left unresolved by operator')
        if chosen not in [person.id for person in people]:
            raise MigrationError(f'{chosen} is not in charge of this project')

        others = [person.id for person in people if person.id != chosen]

        # Re-read so participants added since the query are kept
        current = Record.from_page(self.client.retrieve_page(record.id))
        participants = [person.id for person in current.people(PropertyName.PARTICIPANTS)]
        participants.extend(pid for pid in others if pid not in participants)

        self.client.update_page(
            record.id,
            {
                PropertyName.IN_CHARGE.value: people_value([chosen]),
                PropertyName.PARTICIPANTS.value: people_value(participants),
            },
        )

        names = {person.id: person.name or 'Unknown User' for person in people}
        return self.completed(
            record,
            [
                f'In charge: {names[chosen]}',
                f'Moved to participants: {", ".join(names[pid] for pid in others)}',
            ],
            metadata={'action': 'resolved', 'assignee': chosen, 'participants': participants},
        )

    def parent_projects(self, record: Record) -> List[ParentProject]:
        parents = []
        for parent_id in record.relation(PropertyName.PROJECTS).ids:
            try:
                parent = Record.from_page(self.client.retrieve_page(parent_id))
                owners = parent.people(PropertyName.OWNER)
                parents.append(
                    ParentProject(
                        id=parent_id,
                        title=parent.title() or 'Untitled',
                        owner=(owners[0].name or 'Unknown User') if owners else 'Unknown Owner',
                    )
                )
            except NotionAuthenticationError:
                raise
            except (NotionAPIError, MigrationError):
                parents.append(ParentProject(id=parent_id))
        return parents


class SaveParentRelationsStep(MigrationStep):
    """Step 3: save the "Projects" relation into its transfer field."""

    name = 'save-parent-relations'
    description = 'Save parent project relations'
    mark_error_on_failure = True

    def __init__(self, context: StepContext, url_form: bool = False):
        super().__init__(context)
        self.encode = encode_urls if url_form else encode_ids

    def process_record(self, record: Record) -> RecordOutcome:
        existing = record.text(PropertyName.PARENT_TRANSFER)
        if existing:
            raise TransferFieldFilledError(PropertyName.PARENT_TRANSFER.value, existing)

        parent_ids = self.read_full_relation(record, PropertyName.PROJECTS)
        if not parent_ids:
            return self.skipped(record, 'No parent projects to save')

        titles = [self.page_title(parent_id) for parent_id in parent_ids]

        self.client.update_page(
            record.id,
            {PropertyName.PARENT_TRANSFER.value: rich_text_value(self.encode(parent_ids))},
        )

        return self.completed(
            record,
            [f'{title} ({parent_id})' for title, parent_id in zip(titles, parent_ids)],
            metadata={'parent_ids': parent_ids},
        )


class SaveSubtaskRelationsStep(MigrationStep):
    """Step 4: save the "Subtask" relation and flag every subtask for relinking."""

    name = 'save-subtask-relations'
    description = 'Save subtask relations'
    mark_error_on_failure = True

    def process_record(self, record: Record) -> RecordOutcome:
        relation = record.relation(PropertyName.SUBTASK)
        if relation.has_more and self.config.migration.overflow_policy == 'error':
            raise RelationOverflowError(
                f'Project has too many subtasks ({len(relation)}+): pagination '
                'limit exceeded'
            )

        subtask_ids = self.read_full_relation(record, PropertyName.SUBTASK)
        if not subtask_ids:
            return self.skipped(record, 'No subtasks to save')

        existing = record.text(PropertyName.SUBTASK_TRANSFER)
        if existing:
            raise TransferFieldFilledError(PropertyName.SUBTASK_TRANSFER.value, existing)

        details = []
        warnings = []
        for subtask_id in subtask_ids:
            try:
                details.append(self.flag_subtask(record, subtask_id))
            except NotionAuthenticationError:
                raise
            except (NotionAPIError, MigrationError) as e:
                self.logger.warning(f'Subtask {subtask_id} not flagged: {e}')
                warnings.append(f'Subtask {subtask_id}: {e}')
                details.append(f'Unknown Subtask (error updating) ({subtask_id})')

        self.client.update_page(
            record.id,
            {PropertyName.SUBTASK_TRANSFER.value: rich_text_value(encode_ids(subtask_ids))},
        )

        return self.completed(
            record, details, warnings=warnings, metadata={'subtask_ids': subtask_ids}
        )

    def flag_subtask(self, record: Record, subtask_id: str) -> str:
        """Mark a subtask "to relink" and point its transfer field at the project."""
        subtask = Record.from_page(self.client.retrieve_page(subtask_id))

        current = subtask.text(PropertyName.PARENT_TRANSFER)
        if current and not same_id(current, record.id):
            raise TransferFieldFilledError(PropertyName.PARENT_TRANSFER.value, current)

        self.client.update_page(
            subtask_id,
            {
                PropertyName.MIGRATION_STATUS.value: select_value(
                    MigrationMarker.TO_RELINK.value
                ),
                PropertyName.PARENT_TRANSFER.value: rich_text_value(record.id),
            },
        )
        return subtask.title() or 'Untitled'


class RemoveSubtasksStep(MigrationStep):
    """Step 5: empty the "Subtask" relation so subtasks stay behind on move."""

    name = 'remove-subtasks'
    description = 'Remove subtask relations'

    def process_record(self, record: Record) -> RecordOutcome:
        relation = record.relation(PropertyName.SUBTASK)
        if relation.has_more:
            count = len(self.read_full_relation(record, PropertyName.SUBTASK))
        else:
            count = len(relation)

        if count == 0:
            return self.skipped(record, 'No subtask relations to remove')

        if not record.text(PropertyName.SUBTASK_TRANSFER):
            raise MigrationError(
                f'{count} subtask(s) not saved yet: run save-subtask-relations first'
            )

        self.client.update_page(record.id, {PropertyName.SUBTASK.value: relation_value([])})

        return self.completed(
            record,
            [f'Removed {count} subtask relation(s)'],
            metadata={'subtasks_removed': count},
        )


class VerifyMoveStep(MigrationStep):
    """Step 6: list the projects that now sit in the Projects database."""

    name = 'verify-move'
    description = 'Verify projects moved to the Projects database'
    destination = True

    def process_record(self, record: Record) -> RecordOutcome:
        return self.completed(record, ['Found in Projects database'])

    def notice(self, report: StepReport) -> Optional[str]:
        if not report.outcomes:
            return (
                'No projects found in the Projects database with Migration status = '
                f'"{self.marker.value}": not yet moved'
            )
        return f'{report.total} project(s) moved to the Projects database'


STATUS_MAPPING = {
    'Done': 'Completed',
    'Cancelled': 'Cancelled',
}


def build_post_move_update(
    record: Record, copy_comments: bool = False
) -> Tuple[Dict[str, Any], List[str], List[str]]:
    """Property renames and value mappings for a record moved to Projects.

    Only properties with a source value are written; everything else is left
    untouched on the page.

    Returns:
        The update payload, human-readable updates, and warnings
    """
    payload: Dict[str, Any] = {}
    updates: List[str] = []
    warnings: List[str] = []

    status = record.status()
    if status in STATUS_MAPPING:
        payload[PropertyName.STATUS.value] = status_value(STATUS_MAPPING[status])
        if STATUS_MAPPING[status] == status:
            updates.append(f'Status: {status} → {status} (no change)')
        else:
            updates.append(f'Status: {status} → {STATUS_MAPPING[status]}')

    task_type = record.select(PropertyName.TASK_TYPE)
    if task_type:
        payload[PropertyName.TYPE.value] = select_value(task_type)
        updates.append(f'Type: {task_type}')

    importance = record.select(PropertyName.IMPORTANCE)
    if importance:
        payload[PropertyName.IMPACT.value] = select_value(importance)
        updates.append(f'Impact: {importance}')

    if copy_comments and record.has_property(PropertyName.COMMENTS):
        comments = record.properties[PropertyName.COMMENTS.value].get('rich_text')
        if comments:
            payload[PropertyName.COMMENTS_DEST.value] = {'rich_text': comments}
            updates.append('Comments: copied from Comments & updates')

    people = record.people(PropertyName.IN_CHARGE)
    if len(people) == 1:
        payload[PropertyName.OWNER.value] = people_value([people[0].id])
        updates.append(f'Owner: {people[0].name or "Unknown"}')
    elif len(people) > 1:
        warnings.append(
            f'{len(people)} people in charge: Owner not set, run fix-assignee first'
        )

    deadline = record.date(PropertyName.DEADLINE)
    if deadline:
        payload[PropertyName.DATES.value] = date_value(deadline)
        updates.append(f'Start and end dates: {deadline.get("start") or "Unknown"}')

    return payload, updates, warnings


_READERS = {
    'status': lambda record, prop: record.status(prop),
    'select': lambda record, prop: record.select(prop),
    'people': lambda record, prop: [p.id for p in record.people(prop)],
    'date': lambda record, prop: record.date(prop),
    'rich_text': lambda record, prop: record.text(prop),
}


def pending_post_move_update(
    record: Record, copy_comments: bool = False
) -> List[str]:
    """Names of the post-move properties the page does not hold yet."""
    payload, _, _ = build_post_move_update(record, copy_comments=copy_comments)

    pending = []
    for name, value in payload.items():
        kind = next(iter(value))
        target = Record(id=record.id, properties={name: {'type': kind, **value}})
        read = _READERS[kind]
        prop = PropertyName(name)
        if read(record, prop) != read(target, prop):
            pending.append(name)
    return pending


class PostMoveUpdateStep(MigrationStep):
    """Step 7: rewrite properties for the Projects database schema."""

    name = 'post-move-update'
    description = 'Update properties after move'
    destination = True

    def __init__(self, context: StepContext, copy_comments: Optional[bool] = None):
        super().__init__(context)
        if copy_comments is None:
            copy_comments = self.config.migration.copy_comments
        self.copy_comments = copy_comments

    def process_record(self, record: Record) -> RecordOutcome:
        payload, updates, warnings = build_post_move_update(
            record, copy_comments=self.copy_comments
        )
        for warning in warnings:
            self.logger.warning(f'{extract_summary(record).title}: {warning}')

        if not payload:
            return self.skipped(record, 'No updates needed', warnings=warnings)

        self.client.update_page(record.id, payload)
        return self.completed(
            record, updates, warnings=warnings, metadata={'properties': list(payload)}
        )


class RelinkParentProjectsStep(MigrationStep):
    """Step 8: restore "Parent item" from the saved parent projects."""

    name = 'relink-parent-projects'
    description = 'Restore parent project links'
    destination = True
    mark_error_on_failure = True

    def process_record(self, record: Record) -> RecordOutcome:
        text = record.text(PropertyName.PARENT_TRANSFER)
        if not text:
            return self.skipped(record, 'No parent projects to restore')

        parent_ids = decode_ids(text)
        if not parent_ids:
            return self.skipped(record, 'No valid parent project IDs found')

        titles = [
            self.page_title(pid, default=f'Unknown Project (ID: {pid[:8]}...)')
            for pid in parent_ids
        ]

        self.client.update_page(
            record.id,
            {
                PropertyName.PARENT_ITEM.value: relation_value(parent_ids),
                PropertyName.PARENT_TRANSFER.value: rich_text_value(None),
            },
        )

        return self.completed(
            record, titles, metadata={'parents_restored': len(parent_ids)}
        )


class RelinkSubtasksStep(MigrationStep):
    """Step 9: link every saved subtask back to the moved project."""

    name = 'relink-subtasks'
    description = 'Restore subtask links'
    destination = True
    mark_error_on_failure = True

    def process_record(self, record: Record) -> RecordOutcome:
        text = record.text(PropertyName.SUBTASK_TRANSFER)
        subtask_ids = decode_ids(text) if text else []

        details = []
        warnings = []
        restored = 0
        for subtask_id in subtask_ids:
            try:
                details.append(self.relink_subtask(record, subtask_id))
                restored += 1
            except NotionAuthenticationError:
                raise
            except (NotionAPIError, MigrationError) as e:
                self.logger.warning(f'Subtask {subtask_id} not relinked: {e}')
                warnings.append(f'Subtask {subtask_id}: {e}')
                details.append(
                    f'Unknown Subtask (ID: {subtask_id[:8]}... - Error: {e})'
                )

        metadata = {'subtasks_restored': restored, 'subtasks_total': len(subtask_ids)}
        if restored < len(subtask_ids):
            details.append('Transfer field kept: re-run to retry the failed subtasks')
            return self.completed(record, details, warnings=warnings, metadata=metadata)

        properties: Dict[str, Any] = {}
        if text:
            properties[PropertyName.SUBTASK_TRANSFER.value] = rich_text_value(None)

        # Migrated only once both transfer fields are restored and the
        # Projects properties are written
        pending = pending_post_move_update(
            record, copy_comments=self.config.migration.copy_comments
        )
        if record.text(PropertyName.PARENT_TRANSFER):
            if not properties:
                return self.skipped(record, 'No subtasks to restore')
            details.append('Parent projects not restored yet: run relink-parent-projects')
        elif pending:
            self.logger.warning(
                f'{extract_summary(record).title}: {", ".join(pending)} not updated yet'
            )
            if not properties:
                return self.skipped(
                    record, 'Properties not updated yet: run post-move-update first'
                )
            details.append('Properties not updated yet: run post-move-update first')
        else:
            properties[PropertyName.MIGRATION_STATUS.value] = select_value(
                MigrationMarker.MIGRATED.value
            )
            if not subtask_ids:
                details.append('No subtasks to restore')
            details.append('Marked as migrated')

        self.client.update_page(record.id, properties)
        return self.completed(record, details, warnings=warnings, metadata=metadata)

    def relink_subtask(self, record: Record, subtask_id: str) -> str:
        """Append the project to the subtask's "Projects" relation if missing."""
        subtask = Record.from_page(self.client.retrieve_page(subtask_id))
        title = subtask.title() or 'Untitled'
        existing = self.read_full_relation(subtask, PropertyName.PROJECTS)

        properties: Dict[str, Any] = {}
        connected = any(same_id(pid, record.id) for pid in existing)
        if not connected:
            properties[PropertyName.PROJECTS.value] = relation_value(existing + [record.id])

        if subtask.marker() == MigrationMarker.TO_RELINK:
            properties[PropertyName.MIGRATION_STATUS.value] = select_value(None)
        saved_parent = subtask.text(PropertyName.PARENT_TRANSFER)
        if saved_parent and same_id(saved_parent, record.id):
            properties[PropertyName.PARENT_TRANSFER.value] = rich_text_value(None)

        if properties:
            self.client.update_page(subtask_id, properties)

        return f'{title} (already connected)' if connected else title


STEP_CLASSES: List[Type[MigrationStep]] = [
    ValidateStep,
    FixAssigneeStep,
    SaveParentRelationsStep,
    SaveSubtaskRelationsStep,
    RemoveSubtasksStep,
    VerifyMoveStep,
    PostMoveUpdateStep,
    RelinkParentProjectsStep,
    RelinkSubtasksStep,
]

STEPS: Dict[str, Type[MigrationStep]] = {cls.name: cls for cls in STEP_CLASSES}


def create_step(name: str, context: StepContext) -> MigrationStep:
    """Instantiate a step by its CLI name."""
    try:
        step_class = STEPS[name]
    except KeyError:
        raise ValueError(
            f'Unknown step: {name}. Available steps: {", ".join(STEPS)}'
        ) from None
    return step_class(context)
