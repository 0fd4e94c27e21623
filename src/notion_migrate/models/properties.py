"""Known Notion property names and property value payloads."""

from enum import Enum
from typing import Any, Dict, Iterable, Optional


class PropertyName(str, Enum):
    """Every property the migration reads or writes, by its Notion name."""

    # Shared by both databases
    NAME = 'Name'
    STATUS = 'Status'
    PARENT_ITEM = 'Parent item'
    MIGRATION_STATUS = 'Migration status'

    # Tasks database
    TASK_TYPE = 'Task/project/activity'
    SUBTASK = 'Subtask'
    PROJECTS = 'Projects'
    IN_CHARGE = 'In charge'
    PARTICIPANTS = 'Participants'
    IMPORTANCE = 'Importance'
    DEADLINE = 'Deadline'
    COMMENTS = 'Comments & updates'
    DURATION = 'Duration (h)'
    COST = 'Cost (k€)'
    TEAM = 'Team'
    SUPERVISOR = 'Supervisor'

    # Transfer fields
    PARENT_TRANSFER = 'Parent projects to transfer'
    SUBTASK_TRANSFER = 'Subtasks to transfer'

    # Projects database
    TYPE = 'Type'
    IMPACT = 'Impact'
    OWNER = 'Owner'
    DATES = 'Start and end dates (approximate)'
    COMMENTS_DEST = 'Comments'


def title_value(text: str) -> Dict[str, Any]:
    return {'title': [{'text': {'content': text}}]}


def rich_text_value(text: Optional[str]) -> Dict[str, Any]:
    """Rich text payload; an empty or missing text clears the property."""
    if not text:
        return {'rich_text': []}
    # Notion caps a single text object at 2000 characters
    chunks = [text[i : i + 2000] for i in range(0, len(text), 2000)]
    return {'rich_text': [{'text': {'content': chunk}} for chunk in chunks]}


def select_value(name: Optional[str]) -> Dict[str, Any]:
    """Select payload; ``None`` clears the selection."""
    return {'select': {'name': name} if name else None}


def status_value(name: str) -> Dict[str, Any]:
    return {'status': {'name': name}}


def people_value(ids: Iterable[str]) -> Dict[str, Any]:
    return {'people': [{'id': person_id} for person_id in ids]}


def relation_value(ids: Iterable[str]) -> Dict[str, Any]:
    return {'relation': [{'id': page_id} for page_id in ids]}


def date_value(date: Dict[str, Any]) -> Dict[str, Any]:
    return {'date': dict(date)}


def number_value(number: float) -> Dict[str, Any]:
    return {'number': number}
