"""
Orchestration package for the WordPress migration pipeline.

Sequences parsing, media migration, content cleaning, menu assignment,
reporting and the batched store import.
"""

from .migration_orchestrator import MigrationOrchestrator
from .migration_report import MigrationReport
from .page_transformer import PageTransformer

__all__ = [
    'MigrationOrchestrator',
    'MigrationReport',
    'PageTransformer'
]
