"""
Auction draft bot entry point.

Hosts the draft engine, restores drafts left by a previous run and relays
draft events to arena channels. The command layer that turns user input into
engine calls is loaded separately and reaches the engine through
``bot.container.get_draft_engine()``; this module registers no commands.
"""

import asyncio
import logging
import os
import sys
from typing import Dict

import discord
from discord.ext import commands

from auction_draft.infrastructure.container import DraftContainer, cleanup_container, initialize_container

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    """Configure logging settings"""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()]
    )


def get_config() -> Dict[str, str]:
    """Get configuration from environment variables"""
    return {
        "DISCORD_TOKEN": os.getenv("DISCORD_TOKEN", ""),
    }


class DraftBot(commands.Bot):
    """Bot hosting the auction draft engine"""

    def __init__(self) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.messages = True
        super().__init__(command_prefix="!", intents=intents, help_command=None)
        self.container: DraftContainer = initialize_container(self)

    async def setup_hook(self) -> None:
        restored = await self.container.start()
        logger.info(f"Draft engine ready ({restored} draft(s) restored)")

    async def close(self) -> None:
        await cleanup_container()
        await super().close()


async def main() -> None:
    config = get_config()
    if not config["DISCORD_TOKEN"]:
        logger.error("Missing required environment variable: DISCORD_TOKEN")
        sys.exit(1)

    bot = DraftBot()
    async with bot:
        try:
            await bot.start(config["DISCORD_TOKEN"])
        except discord.LoginFailure as e:
            logger.error(f"Failed to login: {e}", exc_info=True)
            raise SystemExit(1) from e


if __name__ == "__main__":
    setup_logging()
    logger.info("Starting auction draft bot...")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
