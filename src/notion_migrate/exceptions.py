"""
Custom exception classes for the Notion project migration tool.
"""


class MigrationError(Exception):
    """Base exception for migration errors."""


class PropertyTypeError(MigrationError):
    """A property exists on a page but has an unexpected Notion type."""

    def __init__(self, name: str, expected: str, actual: str):
        super().__init__(f'Property "{name}" is of type "{actual}", expected "{expected}"')
        self.name = name
        self.expected = expected
        self.actual = actual


class TransferFieldFilledError(MigrationError):
    """A transfer field already holds a saved relation list."""

    def __init__(self, field: str, content: str):
        super().__init__(f'"{field}" already filled: {content}')
        self.field = field
        self.content = content


class TransferCodecError(MigrationError):
    """A transfer field holds text that is not a list of page ids."""


class RelationOverflowError(MigrationError):
    """A relation has more entries than one page and overflow is not allowed."""


class InvalidTransitionError(MigrationError):
    """An event was sent to the orchestrator in a state that cannot accept it."""
