"""Logging setup for the Notion migration tool.

Steps log through ``logger.bind(step=...)`` and the engine, orchestrator and
validator through ``logger.bind(component=...)``. Both values are part of
every line; records emitted outside those contexts show ``-``.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONTEXT_DEFAULTS = {'component': '-', 'step': '-'}

CONSOLE_FORMAT = (
    '<green>{time:YYYY-MM-DD HH:mm:ss}</green> | '
    '<level>{level: <8}</level> | '
    '<cyan>{extra[component]}</cyan>:<magenta>{extra[step]}</magenta> | '
    '<level>{message}</level>'
)

FILE_FORMAT = (
    '{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | '
    'component={extra[component]} step={extra[step]} | '
    '{name}:{function}:{line} | {message}'
)


def setup_logging(
    level: str = 'INFO',
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """Send log records to stderr and, when asked, to a rotating file.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: File receiving the same records without colours
        log_format: Console format; may use ``{extra[step]}`` and
            ``{extra[component]}``
    """
    logger.remove()
    logger.configure(extra=dict(CONTEXT_DEFAULTS))

    logger.add(
        sys.stderr,
        format=log_format or CONSOLE_FORMAT,
        level=level,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level=level,
            rotation='10 MB',
            retention='30 days',
            compression='gz',
            encoding='utf-8',
            backtrace=True,
            diagnose=False,
        )

    logger.bind(component='logging').info(
        f'Logging at {level}' + (f' to stderr and {log_file}' if log_file else ' to stderr')
    )
