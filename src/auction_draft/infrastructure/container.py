"""
Dependency Injection Configuration

Central container that wires up all dependencies for the auction draft system.
"""

import logging
from typing import Any, Dict, Optional

from ..application.draft_service import DraftEngine
from ..application.interfaces import (
    IDraftConfiguration,
    IDraftRepository,
    IEventBus,
    ITimerScheduler,
)
from ..domain.exceptions import PersistenceError
from .discord_adapter import DiscordEventRelay
from .draft_config_adapter import DraftConfig, DraftConfigurationAdapter
from .event_bus import InProcessEventBus
from .storage_adapter import JsonFileDraftRepository, MemoryDraftRepository
from .timer_scheduler import AsyncioTimerScheduler

logger = logging.getLogger(__name__)


class DraftContainer:
    """
    Dependency injection container for the auction draft system.

    Centralizes all dependency wiring and provides factory methods
    for creating properly configured services.
    """

    def __init__(self, bot=None, config: Optional[DraftConfig] = None):
        """
        Initialize container.

        Args:
            bot: Discord bot instance (optional for testing)
            config: Draft configuration (read from the environment if omitted)
        """
        self.bot = bot
        self._services: Dict[str, Any] = {}
        self._setup_dependencies(config or DraftConfig.from_env())

    def _setup_dependencies(self, config: DraftConfig):
        """Setup all service dependencies"""
        self._services['draft_configuration'] = DraftConfigurationAdapter(config)

        if config.storage_path:
            self._services['draft_repository'] = JsonFileDraftRepository(config.storage_path)
            logger.info(f"Drafts are persisted to {config.storage_path}")
        else:
            self._services['draft_repository'] = MemoryDraftRepository()

        self._services['timer_scheduler'] = AsyncioTimerScheduler()
        self._services['event_bus'] = InProcessEventBus()

        # Discord relay requires a bot instance
        if self.bot:
            self._services['event_relay'] = DiscordEventRelay(self.bot, self._services['event_bus'])

    def get_draft_engine(self) -> DraftEngine:
        """Get configured draft engine"""
        if 'draft_engine' not in self._services:
            self._services['draft_engine'] = DraftEngine(
                repository=self.get_draft_repository(),
                timers=self.get_timer_scheduler(),
                event_bus=self.get_event_bus(),
                configuration=self.get_draft_configuration(),
            )
        return self._services['draft_engine']

    def get_draft_repository(self) -> IDraftRepository:
        return self._services['draft_repository']

    def get_timer_scheduler(self) -> ITimerScheduler:
        return self._services['timer_scheduler']

    def get_event_bus(self) -> IEventBus:
        return self._services['event_bus']

    def get_draft_configuration(self) -> IDraftConfiguration:
        return self._services['draft_configuration']

    def get_event_relay(self) -> Optional[DiscordEventRelay]:
        return self._services.get('event_relay')

    async def start(self) -> int:
        """Start relaying events, prune old history and restore drafts left by a previous run"""
        relay = self.get_event_relay()
        if relay:
            relay.start()

        retention_days = self.get_draft_configuration().get_option("retention_days", 30)
        try:
            await self.get_draft_repository().cleanup_old_drafts(retention_days)
        except PersistenceError as e:
            logger.warning(f"Failed to clean up old drafts: {e}")

        return await self.get_draft_engine().restore()

    async def cleanup(self) -> None:
        """Stop timers, flush pending writes and drop cached services"""
        relay = self.get_event_relay()
        if relay:
            relay.stop()
        if 'draft_engine' in self._services:
            await self._services['draft_engine'].shutdown()
        self._services.clear()


# Global container instance
_container: Optional[DraftContainer] = None


def initialize_container(bot=None, config: Optional[DraftConfig] = None) -> DraftContainer:
    """Initialize global container with bot instance"""
    global _container
    _container = DraftContainer(bot, config)
    return _container


async def cleanup_container() -> None:
    """Cleanup global container"""
    global _container
    if _container:
        await _container.cleanup()
        _container = None
