"""Migration engine - main entry point for migration operations."""

from typing import Optional

from loguru import logger

from ..api.client import NotionClient, NotionClientFactory
from ..config.config import Config
from .orchestrator import MigrationOrchestrator, Operator, StateListener
from .sandbox import TestProject, create_test_project
from .steps import AssigneeChooser, ProgressCallback, StepContext, StepReport, create_step


class MigrationEngine:
    """Builds the Notion client and runs steps or the orchestrator with it."""

    def __init__(
        self,
        config: Config,
        chooser: Optional[AssigneeChooser] = None,
        progress: Optional[ProgressCallback] = None,
        client: Optional[NotionClient] = None,
    ):
        """Initialize migration engine.

        Args:
            config: Migration configuration
            chooser: Asks the operator who stays in charge (fix-assignee)
            progress: Receives progress events
            client: Notion client, built from ``config.notion`` when omitted
        """
        self.config = config
        self.logger = logger.bind(component='MigrationEngine')

        self.client = client or NotionClientFactory.create_client(config.notion)

        self.context = StepContext(
            client=self.client,
            config=config,
            chooser=chooser,
            progress=progress,
            raw_output_dir=config.migration.raw_output_dir,
        )

    def run_step(self, name: str) -> StepReport:
        """Run one migration step over its whole working set.

        Args:
            name: Step name, e.g. ``save-parent-relations``

        Returns:
            Step report
        """
        step = create_step(name, self.context)
        self.logger.info(f'Running step {name}')

        try:
            self._test_connectivity()
            return step.run()
        except Exception as e:
            self.logger.error(f'Step {name} failed: {e}')
            raise
        finally:
            self.client.close()

    def run_orchestrator(
        self, operator: Operator, on_state_change: Optional[StateListener] = None
    ) -> MigrationOrchestrator:
        """Migrate a fresh test project end to end.

        Returns:
            The orchestrator, holding the final state and per-step outcomes
        """
        orchestrator = MigrationOrchestrator(
            self.context, operator, on_state_change=on_state_change
        )

        try:
            self._test_connectivity()
            orchestrator.run()
            return orchestrator
        finally:
            self.client.close()

    def create_test_project(self, subtasks: Optional[int] = None) -> TestProject:
        try:
            self._test_connectivity()
            return create_test_project(self.client, self.config, subtasks)
        finally:
            self.client.close()

    def _test_connectivity(self) -> None:
        """Test connectivity to the Notion API.

        Raises:
            ConnectionError: If connectivity test fails
        """
        self.logger.info('Testing connectivity to the Notion API')

        if not self.client.test_connection():
            raise ConnectionError('Cannot connect to the Notion API')

        self.logger.info('Connectivity test passed')
