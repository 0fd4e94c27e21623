"""Tests for logging setup."""

from loguru import logger

from notion_migrate.utils.logging import setup_logging


class TestSetupLogging:
    """Test the stderr and file sinks."""

    def teardown_method(self):
        logger.remove()

    def test_file_shows_step_and_component(self, tmp_path):
        log_file = tmp_path / 'logs' / 'migration.log'
        setup_logging('INFO', log_file=str(log_file))

        logger.bind(step='save-parent-relations').info('Saved 2 parent projects')
        logger.bind(component='MigrationEngine').warning('Slow connectivity check')
        logger.info('Outside any step')
        logger.remove()

        lines = log_file.read_text().splitlines()
        saved = next(line for line in lines if 'Saved 2 parent projects' in line)
        slow = next(line for line in lines if 'Slow connectivity check' in line)
        outside = next(line for line in lines if 'Outside any step' in line)
        assert 'component=- step=save-parent-relations' in saved
        assert 'component=MigrationEngine step=-' in slow
        assert 'component=- step=-' in outside

    def test_custom_console_format(self, capsys):
        setup_logging('INFO', log_format='{extra[step]} | {message}')

        logger.bind(step='relink-subtasks').info('Marked as migrated')

        assert 'relink-subtasks | Marked as migrated' in capsys.readouterr().err

    def test_level_filters_console(self, capsys):
        setup_logging('WARNING', log_format='{level} {message}')

        logger.info('Routine detail')
        logger.warning('Owner not set')

        err = capsys.readouterr().err
        assert 'Routine detail' not in err
        assert 'WARNING Owner not set' in err
