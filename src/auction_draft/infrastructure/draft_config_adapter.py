"""
Draft Configuration Adapter

Draft defaults and time limits, overridable from the environment.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..application.interfaces import IDraftConfiguration
from ..domain.entities.draft_session import DraftSettings

logger = logging.getLogger(__name__)


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using default {default}")
        return default


@dataclass(frozen=True)
class DraftConfig:
    """Draft defaults"""
    default_captains: int = 2
    default_roster_size: int = 5
    default_budget: int = 100
    turn_timeout_sec: int = 30
    bid_reset_sec: int = 10
    countdown_seconds: int = 10
    retention_days: int = 30  # finished drafts older than this are pruned at startup
    storage_path: Optional[str] = None  # None keeps drafts in memory only

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DraftConfig":
        """Read overrides from DRAFT_* environment variables"""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            default_captains=_env_int(env, "DRAFT_DEFAULT_CAPTAINS", defaults.default_captains),
            default_roster_size=_env_int(env, "DRAFT_DEFAULT_ROSTER_SIZE", defaults.default_roster_size),
            default_budget=_env_int(env, "DRAFT_DEFAULT_BUDGET", defaults.default_budget),
            turn_timeout_sec=_env_int(env, "DRAFT_TURN_TIMEOUT", defaults.turn_timeout_sec),
            bid_reset_sec=_env_int(env, "DRAFT_BID_RESET", defaults.bid_reset_sec),
            countdown_seconds=_env_int(env, "DRAFT_COUNTDOWN_SECONDS", defaults.countdown_seconds),
            retention_days=_env_int(env, "DRAFT_RETENTION_DAYS", defaults.retention_days),
            storage_path=env.get("DRAFT_STORAGE_PATH") or None,
        )


class DraftConfigurationAdapter(IDraftConfiguration):
    """Exposes a DraftConfig through the configuration port"""

    def __init__(self, config: Optional[DraftConfig] = None):
        self.config = config or DraftConfig.from_env()

    def default_settings(self) -> DraftSettings:
        return DraftSettings(
            captain_count=self.config.default_captains,
            roster_size=self.config.default_roster_size,
            budget=self.config.default_budget,
            turn_timeout_sec=self.config.turn_timeout_sec,
            bid_reset_sec=self.config.bid_reset_sec,
        )

    def get_time_limits(self) -> Dict[str, int]:
        """Get time limits in seconds"""
        return {
            "countdown": self.config.countdown_seconds,
            "turn": self.config.turn_timeout_sec,
            "bid_reset": self.config.bid_reset_sec,
        }

    def get_option(self, name: str, default: Any = None) -> Any:
        return getattr(self.config, name, default)
