"""Single-record migration orchestrator.

The flow is a pure state machine: :func:`transition` maps a state and an event
to the next state and the effects to run. :class:`MigrationOrchestrator`
performs those effects against Notion, reusing the per-record operations of the
migration steps, and turns their results back into events.
"""

from abc import ABC, abstractmethod
from collections import deque
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, Field

from ..api.exceptions import NotionAPIError
from ..exceptions import InvalidTransitionError, MigrationError
from ..models.record import Record
from ..models.summary import format_page_url
from .sandbox import create_test_project
from .steps import (
    MigrationStep,
    OutcomeStatus,
    PostMoveUpdateStep,
    RecordOutcome,
    RelinkParentProjectsStep,
    RelinkSubtasksStep,
    RemoveSubtasksStep,
    SaveParentRelationsStep,
    SaveSubtaskRelationsStep,
    StepContext,
    same_id,
)


class MigrationPhase(str, Enum):
    """Phases of a single-record migration."""

    INIT = 'init'
    CREATED = 'created'
    SAVING_RELATIONS = 'saving-relations'
    HANDLING_SUBTASKS = 'handling-subtasks'
    AWAIT_MOVE = 'await-manual-move'
    VERIFYING = 'verifying'
    MOVED = 'moved'
    UPDATING = 'updating'
    COMPLETE = 'complete'
    ERROR = 'error'


TERMINAL_PHASES = frozenset({MigrationPhase.COMPLETE, MigrationPhase.ERROR})


class EventType(str, Enum):
    BEGIN = 'begin'
    SUCCEEDED = 'succeeded'
    FAILED = 'failed'
    CONFIRMED = 'confirmed'
    DECLINED = 'declined'
    MOVE_REPORTED = 'move-reported'
    ABORTED = 'aborted'


class Event(BaseModel):
    """Something that happened while migrating."""

    type: EventType
    error: Optional[str] = None
    data: Dict[str, Any] = Field(
        default_factory=dict, description='State fields to update'
    )


class Effect(str, Enum):
    """Work the driver has to perform after a transition."""

    CREATE_TEST_PROJECT = 'create-test-project'
    CONFIRM = 'confirm'
    SAVE_RELATIONS = 'save-relations'
    HANDLE_SUBTASKS = 'handle-subtasks'
    AWAIT_MOVE = 'await-move'
    VERIFY_MOVE = 'verify-move'
    UPDATE_PROPERTIES = 'update-properties'


class MigrationState(BaseModel):
    """Snapshot of a single-record migration."""

    phase: MigrationPhase = Field(default=MigrationPhase.INIT, description='Current phase')
    record_id: Optional[str] = Field(default=None, description='Migrated page ID')
    record_url: Optional[str] = Field(default=None, description='Migrated page URL')
    subtask_ids: List[str] = Field(default_factory=list, description='Test subtask IDs')
    subtasks_processed: Optional[int] = Field(
        default=None, description='Subtask relations saved and removed'
    )
    moved_url: Optional[str] = Field(default=None, description='Page URL after move')
    error: Optional[str] = Field(default=None, description='Reason for the error phase')
    last_error: Optional[str] = Field(
        default=None, description='Most recent verification failure'
    )

    @property
    def terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


_P = MigrationPhase
_E = EventType

TRANSITIONS: Dict[Tuple[MigrationPhase, EventType], Tuple[MigrationPhase, Tuple[Effect, ...]]] = {
    (_P.INIT, _E.BEGIN): (_P.INIT, (Effect.CREATE_TEST_PROJECT,)),
    (_P.INIT, _E.SUCCEEDED): (_P.CREATED, (Effect.CONFIRM,)),
    (_P.CREATED, _E.CONFIRMED): (_P.SAVING_RELATIONS, (Effect.SAVE_RELATIONS,)),
    (_P.CREATED, _E.DECLINED): (_P.COMPLETE, ()),
    (_P.SAVING_RELATIONS, _E.SUCCEEDED): (_P.HANDLING_SUBTASKS, (Effect.HANDLE_SUBTASKS,)),
    (_P.HANDLING_SUBTASKS, _E.SUCCEEDED): (_P.AWAIT_MOVE, (Effect.AWAIT_MOVE,)),
    (_P.AWAIT_MOVE, _E.MOVE_REPORTED): (_P.VERIFYING, (Effect.VERIFY_MOVE,)),
    (_P.VERIFYING, _E.SUCCEEDED): (_P.MOVED, (Effect.CONFIRM,)),
    (_P.VERIFYING, _E.FAILED): (_P.AWAIT_MOVE, (Effect.AWAIT_MOVE,)),
    (_P.MOVED, _E.CONFIRMED): (_P.UPDATING, (Effect.UPDATE_PROPERTIES,)),
    (_P.MOVED, _E.DECLINED): (_P.COMPLETE, ()),
    (_P.UPDATING, _E.SUCCEEDED): (_P.COMPLETE, ()),
}


def transition(
    state: MigrationState, event: Event
) -> Tuple[MigrationState, List[Effect]]:
    """Compute the next state and the effects to run.

    A failed verification sends the migration back to waiting for the move,
    keeping the error as ``last_error``. Any other failure, or an abort, ends
    in the error phase.

    Raises:
        InvalidTransitionError: If ``event`` is not accepted in the current phase
    """
    key = (state.phase, event.type)

    if state.terminal:
        raise InvalidTransitionError(
            f'Migration already ended in "{state.phase.value}", got {event.type.value}'
        )

    if key not in TRANSITIONS:
        if event.type in (EventType.FAILED, EventType.ABORTED):
            return (
                state.model_copy(
                    update={
                        'phase': MigrationPhase.ERROR,
                        'error': event.error or 'Migration aborted',
                    }
                ),
                [],
            )
        raise InvalidTransitionError(
            f'No transition from "{state.phase.value}" on {event.type.value}'
        )

    phase, effects = TRANSITIONS[key]
    update: Dict[str, Any] = {
        name: value
        for name, value in event.data.items()
        if name in MigrationState.model_fields
    }
    update['phase'] = phase
    if state.phase == MigrationPhase.VERIFYING:
        update['last_error'] = event.error if event.type == EventType.FAILED else None

    return state.model_copy(update=update), list(effects)


class Operator(ABC):
    """The person driving a migration: confirms phases and moves the page."""

    @abstractmethod
    def confirm(self, state: MigrationState) -> bool:
        """Accept or decline continuing from ``created`` or ``moved``."""

    @abstractmethod
    def await_move(self, state: MigrationState) -> bool:
        """Block until the page has been moved; False aborts the migration."""


StateListener = Callable[[MigrationState], None]


class MigrationOrchestrator:
    """Runs one test project through the whole migration."""

    def __init__(
        self,
        context: StepContext,
        operator: Operator,
        on_state_change: Optional[StateListener] = None,
    ):
        """Initialize migration orchestrator.

        Args:
            context: Step context with client and settings
            operator: Confirms phases and reports the manual move
            on_state_change: Called with every new state
        """
        self.context = context
        self.client = context.client
        self.config = context.config
        self.operator = operator
        self.logger = logger.bind(component='MigrationOrchestrator')

        self.state = MigrationState()
        self.outcomes: List[RecordOutcome] = []
        self._listeners: List[StateListener] = []
        if on_state_change:
            self.subscribe(on_state_change)

        self._handlers: Dict[Effect, Callable[[], Event]] = {
            Effect.CREATE_TEST_PROJECT: self._create_test_project,
            Effect.CONFIRM: self._confirm,
            Effect.SAVE_RELATIONS: self._save_relations,
            Effect.HANDLE_SUBTASKS: self._handle_subtasks,
            Effect.AWAIT_MOVE: self._await_move,
            Effect.VERIFY_MOVE: self._verify_move,
            Effect.UPDATE_PROPERTIES: self._update_properties,
        }

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def dispatch(self, event: Event) -> List[Effect]:
        """Apply an event to the current state and notify listeners."""
        previous = self.state.phase
        self.state, effects = transition(self.state, event)
        self.logger.debug(
            f'{previous.value} --{event.type.value}--> {self.state.phase.value}'
        )
        for listener in self._listeners:
            listener(self.state)
        return effects

    def run(self) -> MigrationState:
        """Drive the migration until it completes or fails."""
        self.logger.info('Starting single-record migration')
        pending = deque(self.dispatch(Event(type=EventType.BEGIN)))

        while pending:
            effect = pending.popleft()
            event = self.perform(effect)
            pending.extend(self.dispatch(event))

        if self.state.phase == MigrationPhase.ERROR:
            self.logger.error(f'Migration failed: {self.state.error}')
        else:
            self.logger.info('Migration finished')
        return self.state

    def perform(self, effect: Effect) -> Event:
        """Run one effect and report its result as an event."""
        try:
            return self._handlers[effect]()
        except (MigrationError, NotionAPIError) as e:
            self.logger.error(f'{effect.value} failed: {e}')
            return Event(type=EventType.FAILED, error=str(e))

    def _record(self) -> Record:
        return Record.from_page(self.client.retrieve_page(self.state.record_id))

    def _run_steps(self, *steps: MigrationStep) -> Event:
        """Apply steps to the record in order, stopping at the first failure."""
        for step in steps:
            outcome = step.process(self._record())
            self.outcomes.append(outcome)
            if outcome.status == OutcomeStatus.FAILED:
                return Event(
                    type=EventType.FAILED,
                    error=f'{step.description}: {outcome.error_message}',
                )
        return Event(type=EventType.SUCCEEDED)

    def _create_test_project(self) -> Event:
        created = create_test_project(self.client, self.config)
        return Event(
            type=EventType.SUCCEEDED,
            data={
                'record_id': created.project.id,
                'record_url': created.project.url,
                'subtask_ids': [subtask.id for subtask in created.subtasks],
            },
        )

    def _confirm(self) -> Event:
        if self.operator.confirm(self.state):
            return Event(type=EventType.CONFIRMED)
        return Event(type=EventType.DECLINED)

    def _save_relations(self) -> Event:
        return self._run_steps(SaveParentRelationsStep(self.context, url_form=True))

    def _handle_subtasks(self) -> Event:
        event = self._run_steps(
            SaveSubtaskRelationsStep(self.context), RemoveSubtasksStep(self.context)
        )
        if event.type == EventType.SUCCEEDED:
            removed = self.outcomes[-1].metadata.get('subtasks_removed', 0)
            event.data = {'subtasks_processed': removed}
        return event

    def _await_move(self) -> Event:
        if self.operator.await_move(self.state):
            return Event(type=EventType.MOVE_REPORTED)
        return Event(type=EventType.ABORTED, error='Migration aborted by operator')

    def _verify_move(self) -> Event:
        record = self._record()
        expected = self.config.databases.projects

        if record.database_id is None:
            return Event(
                type=EventType.FAILED,
                error='Page parent is not a database - move it to the Projects database',
            )
        if not same_id(record.database_id, expected):
            return Event(
                type=EventType.FAILED,
                error=f'Page is in database {record.database_id}, expected {expected}',
            )
        return Event(
            type=EventType.SUCCEEDED, data={'moved_url': format_page_url(record.id)}
        )

    def _update_properties(self) -> Event:
        return self._run_steps(
            PostMoveUpdateStep(self.context, copy_comments=True),
            RelinkParentProjectsStep(self.context),
            RelinkSubtasksStep(self.context),
        )
