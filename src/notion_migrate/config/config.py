"""Configuration management for the Notion project migration tool."""

from typing import Optional, Dict, Any, List
from pathlib import Path
import os

from pydantic import BaseModel, ConfigDict, Field, field_validator
import yaml
from dotenv import load_dotenv


DEFAULT_TASKS_DATABASE_ID = 'f22a6d02e2d04c6cae8b20818cedd576'
DEFAULT_PROJECTS_DATABASE_ID = '1b966ef02bab80cc9e51d8a48308b4fe'

OVERFLOW_POLICIES = ('paginate', 'error')


class NotionConfig(BaseModel):
    """Connection settings for the Notion API."""

    token: Optional[str] = Field(default=None, description='Integration token')
    base_url: str = Field(
        default='https://api.notion.com/v1', description='Notion API base URL'
    )
    notion_version: str = Field(
        default='2022-06-28', description='Value of the Notion-Version header'
    )
    timeout: int = Field(default=30, description='Request timeout in seconds')
    rate_limit_per_second: float = Field(
        default=3.0, description='API requests per second limit'
    )
    page_delay: float = Field(
        default=0.35, description='Pause in seconds between paginated reads'
    )
    page_size: int = Field(default=100, description='Page size for list endpoints')

    @field_validator('base_url')
    @classmethod
    def validate_url(cls, v):
        """Validate API URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v.rstrip('/')

    @field_validator('rate_limit_per_second')
    @classmethod
    def validate_rate_limit(cls, v):
        """Validate rate limit is positive."""
        if v <= 0:
            raise ValueError('Rate limit must be positive')
        return v

    @field_validator('page_delay')
    @classmethod
    def validate_page_delay(cls, v):
        if v < 0:
            raise ValueError('Page delay cannot be negative')
        return v

    @field_validator('page_size')
    @classmethod
    def validate_page_size(cls, v):
        """Notion accepts page sizes between 1 and 100."""
        if not 1 <= v <= 100:
            raise ValueError('Page size must be between 1 and 100')
        return v


class DatabasesConfig(BaseModel):
    """Identifiers of the source and destination databases."""

    tasks: str = Field(
        default=DEFAULT_TASKS_DATABASE_ID, description='Tasks (source) database ID'
    )
    projects: str = Field(
        default=DEFAULT_PROJECTS_DATABASE_ID,
        description='Projects (destination) database ID',
    )

    @field_validator('tasks', 'projects')
    @classmethod
    def validate_database_id(cls, v):
        """Database IDs are 32 hex digits, hyphens optional."""
        compact = v.replace('-', '')
        if len(compact) != 32 or any(c not in '0123456789abcdefABCDEF' for c in compact):
            raise ValueError(f'Invalid database ID: {v}')
        return v


class MigrationConfig(BaseModel):
    """Migration-specific configuration."""

    allowed_statuses: List[str] = Field(
        default_factory=lambda: ['Done', 'Cancelled'],
        description='Statuses a project must have to be migrated',
    )
    allowed_types: List[str] = Field(
        default_factory=lambda: ['Project'],
        description='Values of Task/project/activity that can be migrated',
    )
    overflow_policy: str = Field(
        default='paginate',
        description='What to do when a subtask relation exceeds one page',
    )
    fallback_assignee_id: Optional[str] = Field(
        default=None,
        description='Person assigned to projects nobody is in charge of. '
        'Defaults to the integration bot user.',
    )
    copy_comments: bool = Field(
        default=False, description='Copy "Comments & updates" to "Comments"'
    )
    raw_output_dir: Optional[str] = Field(
        default=None, description='Directory where raw query results are dumped'
    )

    @field_validator('overflow_policy')
    @classmethod
    def validate_overflow_policy(cls, v):
        if v not in OVERFLOW_POLICIES:
            raise ValueError(f'Overflow policy must be one of: {list(OVERFLOW_POLICIES)}')
        return v

    @field_validator('allowed_statuses', 'allowed_types')
    @classmethod
    def validate_not_empty(cls, v):
        if not v:
            raise ValueError('At least one value must be allowed')
        return v


class SandboxConfig(BaseModel):
    """Settings for the test project used by migrate-test."""

    parent_project_id: Optional[str] = Field(
        default=None, description='Project the test project is attached to'
    )
    assignee_id: Optional[str] = Field(
        default=None, description='Person put in charge of the test project'
    )
    subtasks: int = Field(default=2, description='Number of test subtasks to create')

    @field_validator('subtasks')
    @classmethod
    def validate_subtasks(cls, v):
        if v < 0:
            raise ValueError('Number of subtasks cannot be negative')
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default='INFO', description='Log level')
    file: Optional[str] = Field(default=None, description='Log file path')
    format: str = Field(
        default=(
            '{time:YYYY-MM-DD HH:mm:ss} | {level} | '
            '{extra[component]}:{extra[step]} | {message}'
        ),
        description='Log format',
    )

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.upper()


class Config(BaseModel):
    """Main configuration class for the Notion project migration tool."""

    model_config = ConfigDict(extra='forbid')

    notion: NotionConfig = Field(
        default_factory=NotionConfig, description='Notion API settings'
    )
    databases: DatabasesConfig = Field(
        default_factory=DatabasesConfig, description='Database identifiers'
    )
    migration: MigrationConfig = Field(
        default_factory=MigrationConfig, description='Migration settings'
    )
    sandbox: SandboxConfig = Field(
        default_factory=SandboxConfig, description='Test project settings'
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description='Logging settings'
    )

    @classmethod
    def from_file(cls, config_path: str) -> 'Config':
        """Load configuration from YAML file."""
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(f'Configuration file not found: {config_path}')

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        # The token usually lives in the environment, not in the file
        load_dotenv()
        notion_data = config_data.setdefault('notion', {}) or {}
        config_data['notion'] = notion_data
        if not notion_data.get('token') and os.getenv('NOTION_TOKEN'):
            notion_data['token'] = os.getenv('NOTION_TOKEN')

        return cls(**config_data)

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables."""
        # Load .env file if it exists
        load_dotenv()

        config_data = {
            'notion': {
                'token': os.getenv('NOTION_TOKEN'),
                'base_url': os.getenv('NOTION_BASE_URL'),
                'timeout': _int_env('NOTION_TIMEOUT'),
                'rate_limit_per_second': _float_env('NOTION_RATE_LIMIT'),
                'page_delay': _float_env('NOTION_PAGE_DELAY'),
            },
            'databases': {
                'tasks': os.getenv('NOTION_TASKS_DATABASE_ID'),
                'projects': os.getenv('NOTION_PROJECTS_DATABASE_ID'),
            },
            'migration': {
                'overflow_policy': os.getenv('MIGRATION_OVERFLOW_POLICY'),
                'fallback_assignee_id': os.getenv('NOTION_FALLBACK_ASSIGNEE_ID'),
                'copy_comments': os.getenv('MIGRATION_COPY_COMMENTS', 'false').lower()
                == 'true',
                'raw_output_dir': os.getenv('MIGRATION_RAW_OUTPUT_DIR'),
            },
            'sandbox': {
                'parent_project_id': os.getenv('SANDBOX_PARENT_PROJECT_ID'),
                'assignee_id': os.getenv('SANDBOX_ASSIGNEE_ID'),
                'subtasks': _int_env('SANDBOX_SUBTASKS'),
            },
            'logging': {
                'level': os.getenv('LOG_LEVEL', 'INFO'),
                'file': os.getenv('LOG_FILE'),
            },
        }

        # Remove None values
        config_data = cls._remove_none_values(config_data)

        return cls(**config_data)

    @staticmethod
    def _remove_none_values(data: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively remove None values from dictionary."""
        if isinstance(data, dict):
            return {
                k: Config._remove_none_values(v)
                for k, v in data.items()
                if v is not None
            }
        return data

    def to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                self.model_dump(exclude={'notion': {'token'}}),
                f,
                default_flow_style=False,
                indent=2,
                sort_keys=False,
                allow_unicode=True,
            )

    @staticmethod
    def create_template(output_path: str) -> None:
        """Create a configuration template file."""
        template_config = {
            'notion': {
                'token': 'secret_your-integration-token',
                'notion_version': '2022-06-28',
                'timeout': 30,
                'rate_limit_per_second': 3.0,
                'page_delay': 0.35,
            },
            'databases': {
                'tasks': DEFAULT_TASKS_DATABASE_ID,
                'projects': DEFAULT_PROJECTS_DATABASE_ID,
            },
            'migration': {
                'allowed_statuses': ['Done', 'Cancelled'],
                'allowed_types': ['Project'],
                'overflow_policy': 'paginate',
                'fallback_assignee_id': None,
                'copy_comments': False,
            },
            'sandbox': {
                'parent_project_id': None,
                'assignee_id': None,
                'subtasks': 2,
            },
            'logging': {
                'level': 'INFO',
                'file': 'migration.log',
                'format': (
                    '{time:YYYY-MM-DD HH:mm:ss} | {level} | '
                    '{extra[component]}:{extra[step]} | {message}'
                ),
            },
        }

        config_file = Path(output_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(
                template_config, f, default_flow_style=False, indent=2, sort_keys=False
            )


def _int_env(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


def _float_env(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None
