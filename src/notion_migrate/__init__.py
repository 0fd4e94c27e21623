"""Notion Project Migration Tool

Moves root-level projects from a Notion Tasks database to a Projects database,
saving the relations Notion drops on move and restoring them afterwards.
"""

__version__ = '0.1.0'
__author__ = 'Notion Migration Team'
__email__ = 'team@example.com'

from .cli import main

__all__ = ['main']
