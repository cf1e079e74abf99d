"""
Orchestration package for coordinating sync pipeline phases.

This package provides the orchestration layer that sequences a sync run:
List → Convert → Decide → Write → Report.
"""

from .sync_orchestrator import SyncOrchestrator
from .sync_report import SyncReport

__all__ = [
    'SyncOrchestrator',
    'SyncReport'
]
