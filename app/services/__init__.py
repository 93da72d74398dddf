"""
Services package for the Chronos API
Contains the progression, ledger, path progress and reset services
"""

from .progression_service import ProgressionService, progression_service
from .daily_progress_ledger import DailyProgressLedger
from .path_progress_service import PathProgressService
from .chronos_manager import ChronosManager, evaluate_streak
from .dawn_summary_store import (
    InMemoryDawnSummaryStore,
    RedisDawnSummaryStore,
    build_dawn_summary_store
)

__all__ = [
    "ProgressionService",
    "progression_service",
    "DailyProgressLedger",
    "PathProgressService",
    "ChronosManager",
    "evaluate_streak",
    "InMemoryDawnSummaryStore",
    "RedisDawnSummaryStore",
    "build_dawn_summary_store"
]
