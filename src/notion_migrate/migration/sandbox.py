"""Creation of a throwaway test project to rehearse a migration on."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, Field

from ..api.client import NotionClient
from ..config.config import Config
from ..models.properties import (
    PropertyName,
    date_value,
    number_value,
    people_value,
    relation_value,
    rich_text_value,
    select_value,
    status_value,
    title_value,
)
from ..models.record import MigrationMarker
from ..models.summary import format_page_url


class CreatedPage(BaseModel):
    """A page created in the Tasks database."""

    id: str
    title: str
    url: str


class TestProject(BaseModel):
    """A test project and the subtasks created under it."""

    __test__ = False

    project: CreatedPage
    subtasks: List[CreatedPage] = Field(default_factory=list)


def project_properties(
    title: str,
    assignee_id: Optional[str] = None,
    parent_project_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Properties of a Done, root-level project ready to migrate."""
    properties = {
        PropertyName.NAME.value: title_value(title),
        PropertyName.TASK_TYPE.value: select_value('Project'),
        PropertyName.STATUS.value: status_value('Done'),
        PropertyName.DEADLINE.value: date_value({'start': '2025-03-01'}),
        PropertyName.DURATION.value: number_value(10),
        PropertyName.COST.value: number_value(5),
        PropertyName.IMPORTANCE.value: select_value('⭐⭐⭐⭐'),
        PropertyName.TEAM.value: select_value('R&D'),
        PropertyName.COMMENTS.value: rich_text_value(
            'Test migration project created for database migration testing purposes.'
        ),
        PropertyName.MIGRATION_STATUS.value: select_value(MigrationMarker.TO_MIGRATE.value),
    }
    if assignee_id:
        properties[PropertyName.IN_CHARGE.value] = people_value([assignee_id])
    if parent_project_id:
        properties[PropertyName.PROJECTS.value] = relation_value([parent_project_id])
    return properties


def subtask_properties(title: str, project_id: str) -> Dict[str, Any]:
    return {
        PropertyName.NAME.value: title_value(title),
        PropertyName.TASK_TYPE.value: select_value('Task'),
        PropertyName.STATUS.value: status_value('Done'),
        PropertyName.DURATION.value: number_value(2),
        PropertyName.COST.value: number_value(1),
        PropertyName.TEAM.value: select_value('R&D'),
        PropertyName.COMMENTS.value: rich_text_value(
            'Test subtask created for migration testing.'
        ),
        PropertyName.PARENT_ITEM.value: relation_value([project_id]),
    }


def create_test_project(
    client: NotionClient, config: Config, subtasks: Optional[int] = None
) -> TestProject:
    """Create a test project in the Tasks database with its subtasks.

    The project is marked "Project to migrate"; each subtask points at it
    through "Parent item".

    Args:
        client: Notion client
        config: Configuration (databases and sandbox settings)
        subtasks: Number of subtasks, defaults to ``sandbox.subtasks``

    Returns:
        The created project and subtasks
    """
    count = config.sandbox.subtasks if subtasks is None else subtasks
    timestamp = datetime.now().isoformat(timespec='seconds')
    tasks_db = config.databases.tasks

    title = f'Test Migration Project - {timestamp}'
    page = client.create_page(
        tasks_db,
        project_properties(
            title,
            assignee_id=config.sandbox.assignee_id,
            parent_project_id=config.sandbox.parent_project_id,
        ),
    )
    project = CreatedPage(id=page['id'], title=title, url=format_page_url(page['id']))
    logger.info(f'Created test project {project.title} ({project.id})')

    created = []
    for index in range(1, count + 1):
        subtask_title = f'Test Subtask {index} - {timestamp}'
        subtask_page = client.create_page(
            tasks_db, subtask_properties(subtask_title, project.id)
        )
        created.append(
            CreatedPage(
                id=subtask_page['id'],
                title=subtask_title,
                url=format_page_url(subtask_page['id']),
            )
        )
        logger.debug(f'Created test subtask {subtask_title}')

    return TestProject(project=project, subtasks=created)
