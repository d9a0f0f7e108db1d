"""
Infrastructure Layer

Adapters for external systems and services.
"""

from .container import DraftContainer, initialize_container
from .draft_config_adapter import DraftConfig, DraftConfigurationAdapter
from .event_bus import InProcessEventBus
from .storage_adapter import JsonFileDraftRepository, MemoryDraftRepository
from .timer_scheduler import AsyncioTimerScheduler

__all__ = [
    "DraftContainer",
    "initialize_container",
    "DraftConfig",
    "DraftConfigurationAdapter",
    "InProcessEventBus",
    "JsonFileDraftRepository",
    "MemoryDraftRepository",
    "AsyncioTimerScheduler",
]
