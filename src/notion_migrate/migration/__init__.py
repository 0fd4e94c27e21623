"""Migration engine, steps and orchestrator."""

from .steps import (
    MigrationStep,
    OutcomeStatus,
    RecordOutcome,
    StepContext,
    StepReport,
    STEPS,
    create_step,
)
from .orchestrator import MigrationOrchestrator, MigrationPhase, MigrationState, Operator
from .engine import MigrationEngine

__all__ = [
    'MigrationStep',
    'OutcomeStatus',
    'RecordOutcome',
    'StepContext',
    'StepReport',
    'STEPS',
    'create_step',
    'MigrationOrchestrator',
    'MigrationPhase',
    'MigrationState',
    'Operator',
    'MigrationEngine',
]
