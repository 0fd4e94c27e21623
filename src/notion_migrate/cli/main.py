"""Main CLI entry point for the Notion migration tool."""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)
from rich.table import Table

from ..api.client import NotionClientFactory
from ..config.config import Config
from ..migration.engine import MigrationEngine
from ..migration.orchestrator import (
    MigrationOrchestrator,
    MigrationPhase,
    MigrationState,
    Operator,
)
from ..migration.steps import (
    STEPS,
    AssigneeCandidate,
    OutcomeStatus,
    ProgressEvent,
    StepReport,
)
from ..utils.logging import setup_logging

console = Console()

DEFAULT_CONFIG_PATHS = ['config.yaml', 'config.yml', '.notion-migrate.yaml']
RAW_OUTPUT_DIR = 'raw'
SCHEMA_DIR = 'schema'

_OUTCOME_STYLES = {
    OutcomeStatus.COMPLETED: '[green]✓ completed[/green]',
    OutcomeStatus.SKIPPED: '[yellow]- skipped[/yellow]',
    OutcomeStatus.FAILED: '[red]✗ failed[/red]',
}


@click.group()
@click.version_option(version='0.1.0', prog_name='notion-migrate')
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=True),
    help='Path to configuration file',
)
@click.option(
    '--token',
    envvar='NOTION_TOKEN',
    help='Notion integration token (or set NOTION_TOKEN)',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose logging',
)
@click.pass_context
def cli(
    ctx: click.Context, config: Optional[str], token: Optional[str], verbose: bool
) -> None:
    """Notion Migration Tool - Move projects from the Tasks to the Projects database."""
    ctx.ensure_object(dict)

    if config:
        ctx.obj['config_path'] = config
    ctx.obj['token'] = token
    ctx.obj['verbose'] = verbose

    log_level = 'DEBUG' if verbose else 'INFO'
    setup_logging(log_level)


@cli.command()
@click.option(
    '--output',
    '-o',
    default='config.yaml',
    help='Output configuration file path',
)
def init(output: str) -> None:
    """Initialize a new configuration file."""
    console.print(
        Panel.fit(
            '[bold green]Notion Migration Tool[/bold green]\n'
            'Initializing configuration...',
            border_style='green',
        )
    )

    try:
        Config.create_template(output)

        console.print(f'[green]✓[/green] Configuration template created at: {output}')
        console.print(
            f'[yellow]Please edit {output} with your Notion token and database IDs[/yellow]'
        )

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to create configuration: {e}')
        sys.exit(1)


@cli.command('test-connection')
@click.pass_context
def test_connection(ctx: click.Context) -> None:
    """Check that the token can reach the Notion API."""
    try:
        config = _prepare(ctx)
        with NotionClientFactory.create_client(config.notion) as client:
            me = client.get_me()

        console.print('[green]✓[/green] Connected to the Notion API')
        console.print(f'  User: {me.get("name") or "Unknown"} ({me.get("type", "unknown")})')
        console.print(f'  ID: {me.get("id")}')

    except Exception as e:
        console.print(f'[red]✗[/red] Connection failed: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument('database', type=click.Choice(['tasks', 'projects']))
@click.option('--json', 'as_json', is_flag=True, help='Write the raw schema to schema/')
@click.pass_context
def schema(ctx: click.Context, database: str, as_json: bool) -> None:
    """Show the properties of the Tasks or Projects database."""
    try:
        config = _prepare(ctx)
        database_id = getattr(config.databases, database)
        with NotionClientFactory.create_client(config.notion) as client:
            data = client.retrieve_database(database_id)

        title = ''.join(t.get('plain_text', '') for t in data.get('title') or [])
        table = Table(title=f'{title or database.title()} ({database_id})')
        table.add_column('Property', style='cyan')
        table.add_column('Type', style='green')
        table.add_column('ID', style='dim')

        for name, prop in sorted((data.get('properties') or {}).items()):
            table.add_row(name, prop.get('type', ''), prop.get('id', ''))

        console.print(table)

        if as_json:
            output = Path(SCHEMA_DIR) / f'{database}.json'
            output.parent.mkdir(parents=True, exist_ok=True)
            with open(output, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            console.print(f'[green]✓[/green] Schema written to {output}')

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to retrieve schema: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.command('list-users')
@click.pass_context
def list_users(ctx: click.Context) -> None:
    """List the users of the workspace."""
    try:
        config = _prepare(ctx)
        with NotionClientFactory.create_client(config.notion) as client:
            users = client.list_users()

        table = Table(title=f'Users ({len(users)})')
        table.add_column('Name', style='cyan')
        table.add_column('Type', style='blue')
        table.add_column('Email', style='green')
        table.add_column('ID', style='dim')

        for user in users:
            person = user.get('person') or {}
            table.add_row(
                user.get('name') or 'Unknown',
                user.get('type', ''),
                person.get('email', ''),
                user.get('id', ''),
            )

        console.print(table)

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to list users: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.command('create-test-project')
@click.option('--subtasks', type=click.IntRange(min=0), default=None, help='Number of subtasks')
@click.pass_context
def create_test_project(ctx: click.Context, subtasks: Optional[int]) -> None:
    """Create a test project with subtasks in the Tasks database."""
    try:
        config = _prepare(ctx)
        created = MigrationEngine(config).create_test_project(subtasks)

        console.print('[green]✓[/green] Test project created')
        console.print(f'  Project: {created.project.title}')
        console.print(f'  URL: {created.project.url}')
        for index, subtask in enumerate(created.subtasks, start=1):
            console.print(f'  Subtask {index}: {subtask.title} ({subtask.url})')

    except Exception as e:
        console.print(f'[red]✗[/red] Failed to create test project: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.command()
@click.argument('step', type=click.Choice(list(STEPS)))
@click.option('--json', 'as_json', is_flag=True, help='Dump queried pages to raw/')
@click.pass_context
def migrate(ctx: click.Context, step: str, as_json: bool) -> None:
    """Run one migration step."""
    console.print(
        Panel.fit(
            f'[bold blue]Notion Migration Tool[/bold blue]\n{STEPS[step].description}',
            border_style='blue',
        )
    )

    try:
        config = _prepare(ctx)
        if as_json and not config.migration.raw_output_dir:
            config.migration.raw_output_dir = RAW_OUTPUT_DIR

        report = _run_step(config, step)
        _display_step_report(report)

    except Exception as e:
        console.print(f'[red]✗[/red] Step {step} failed: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)


@cli.command('migrate-test')
@click.pass_context
def migrate_test(ctx: click.Context) -> None:
    """Migrate a freshly created test project end to end."""
    console.print(
        Panel.fit(
            '[bold magenta]Notion Migration Tool[/bold magenta]\n'
            'Single project migration test',
            border_style='magenta',
        )
    )

    try:
        config = _prepare(ctx)
        engine = MigrationEngine(config)
        orchestrator = engine.run_orchestrator(
            ConsoleOperator(), on_state_change=_print_state
        )
        _display_orchestrator_result(orchestrator)

    except Exception as e:
        console.print(f'[red]✗[/red] Migration test failed: {e}')
        if ctx.obj.get('verbose'):
            console.print_exception()
        sys.exit(1)

    if orchestrator.state.phase == MigrationPhase.ERROR:
        sys.exit(1)


class ConsoleOperator(Operator):
    """Asks for confirmations and the manual move on the terminal."""

    def confirm(self, state: MigrationState) -> bool:
        if state.phase == MigrationPhase.CREATED:
            console.print(f'  Project URL: [cyan]{state.record_url}[/cyan]')
            return click.confirm('Proceed with the migration of this project?', default=True)
        console.print(f'  Page URL (now in Projects): [cyan]{state.moved_url}[/cyan]')
        return click.confirm('Update properties and restore relations?', default=True)

    def await_move(self, state: MigrationState) -> bool:
        if state.last_error:
            console.print(f'[red]✗[/red] Not moved yet: {state.last_error}')
        console.print('\n[bold]Manual step required[/bold]')
        console.print(f'  1. Open the project: [cyan]{state.record_url}[/cyan]')
        console.print('  2. Use "Move to" and select the Projects database')
        return click.confirm('Has the page been moved?', default=True)


def _print_state(state: MigrationState) -> None:
    style = 'red' if state.phase == MigrationPhase.ERROR else 'blue'
    console.print(f'[{style}]→ {state.phase.value}[/{style}]')


def choose_assignee(candidate: AssigneeCandidate) -> Optional[str]:
    """Ask which of several people stays in charge; None skips the project."""
    console.print(f'\n[bold]{candidate.summary.title}[/bold] has several people in charge')
    console.print(f'  URL: [cyan]{candidate.summary.url}[/cyan]')
    for parent in candidate.parent_projects:
        console.print(f'  Parent project: {parent.title} (Owner: {parent.owner})')

    for index, person in enumerate(candidate.assignees, start=1):
        console.print(f'  {index}. {person.name or "Unknown User"}')
    console.print('  0. Skip this project')

    choice = click.prompt(
        'Who stays in charge?',
        type=click.IntRange(0, len(candidate.assignees)),
        default=0,
    )
    if choice == 0:
        return None
    return candidate.assignees[choice - 1].id


def _prepare(ctx: click.Context) -> Config:
    """Load configuration, apply the token override and set up logging."""
    config = _load_config(ctx)
    if ctx.obj.get('token'):
        config.notion.token = ctx.obj['token']
    _setup_logging_with_config(ctx, config)
    return config


def _load_config(ctx: click.Context) -> Config:
    """Load configuration from file or environment."""
    config_path = ctx.obj.get('config_path')

    if config_path:
        if not Path(config_path).exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')
        return Config.from_file(config_path)
    else:
        for path in DEFAULT_CONFIG_PATHS:
            if Path(path).exists():
                return Config.from_file(path)

        # Fall back to environment variables
        try:
            return Config.from_env()
        except Exception:
            raise FileNotFoundError(
                'No configuration found. Use --config to specify a file or run '
                '"notion-migrate init" to create one.'
            )


def _setup_logging_with_config(ctx: click.Context, config: Config) -> None:
    """Setup logging with configuration from config file."""
    verbose = ctx.obj.get('verbose', False)

    log_level = 'DEBUG' if verbose else config.logging.level
    setup_logging(
        level=log_level, log_file=config.logging.file, log_format=config.logging.format
    )


def _run_step(config: Config, step: str) -> StepReport:
    """Run a step with a progress bar."""
    with Progress(
        SpinnerColumn(),
        TextColumn('[progress.description]{task.description}'),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(f'[blue]{step} querying...', total=None)

        def update_progress(event: ProgressEvent) -> None:
            progress.update(
                task,
                completed=event.current,
                total=event.total or 1,
                description=f'[blue]{event.message}',
            )

        def prompt_assignee(candidate: AssigneeCandidate) -> Optional[str]:
            # The live display would overwrite the prompt
            progress.stop()
            try:
                return choose_assignee(candidate)
            finally:
                progress.start()

        engine = MigrationEngine(config, chooser=prompt_assignee, progress=update_progress)
        report = engine.run_step(step)
        progress.update(task, description=f'[green]{step} completed')

    return report


def _display_step_report(report: StepReport) -> None:
    """Display the per-record outcomes of a step."""
    if report.outcomes:
        table = Table(title=f'{report.step} ({report.database} database)')
        table.add_column('Project', style='cyan')
        table.add_column('Outcome')
        table.add_column('Details')

        for outcome in report.outcomes:
            details = outcome.error_message or '\n'.join(outcome.details)
            table.add_row(
                f'{outcome.summary.display()}\n[dim]{outcome.summary.url}[/dim]',
                _OUTCOME_STYLES[outcome.status],
                details,
            )

        console.print(table)

    if report.notice:
        console.print(f'[yellow]{report.notice}[/yellow]')

    console.print(
        f'\n[blue]Summary:[/blue] {report.total} processed, '
        f'[green]{len(report.succeeded)} completed[/green], '
        f'[yellow]{len(report.skipped)} skipped[/yellow], '
        f'[red]{len(report.failed)} failed[/red]'
    )

    if report.completed_at:
        console.print(f'[blue]Duration:[/blue] {report.completed_at - report.started_at}')

    warnings = [
        f'{outcome.summary.title}: {warning}'
        for outcome in report.outcomes
        for warning in outcome.warnings
    ]
    if warnings:
        console.print(f'\n[yellow]Warnings ({len(warnings)}):[/yellow]')
        for warning in warnings[:5]:
            console.print(f'  • {warning}')
        if len(warnings) > 5:
            console.print(f'  ... and {len(warnings) - 5} more warnings')

    errors = [
        f'{outcome.summary.title}: {outcome.error_message}' for outcome in report.failed
    ]
    if errors:
        console.print(f'\n[red]Errors ({len(errors)}):[/red]')
        for error in errors[:5]:
            console.print(f'  • {error}')
        if len(errors) > 5:
            console.print(f'  ... and {len(errors) - 5} more errors')


def _display_orchestrator_result(orchestrator: MigrationOrchestrator) -> None:
    state = orchestrator.state

    if state.phase == MigrationPhase.ERROR:
        console.print(f'[red]✗[/red] Migration failed: {state.error}')
    else:
        console.print('[green]✓[/green] Migration test finished')
        if state.moved_url:
            console.print(f'  Final page URL: [cyan]{state.moved_url}[/cyan]')
        if state.subtasks_processed is not None:
            console.print(f'  Subtasks processed: {state.subtasks_processed}')

    for outcome in orchestrator.outcomes:
        for detail in outcome.details:
            console.print(f'  • {detail}')
        for warning in outcome.warnings:
            console.print(f'  [yellow]! {warning}[/yellow]')


def main() -> None:
    """Main entry point for the CLI application."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print('\n[red]Migration interrupted by user[/red]')
        sys.exit(1)
    except Exception as e:
        console.print(f'[red]Error: {e}[/red]')
        sys.exit(1)


if __name__ == '__main__':
    main()
