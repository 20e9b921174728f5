import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import discord

from bot.cogs.watcher import WatcherCog
from config import DEFAULT_CONFIG_PATH, Settings, load_settings
from core.errors import ConfigError

LOG_DIR = Path("./logs")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

log = logging.getLogger(__name__)


def setup_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.getLogger().setLevel(level)

    LOG_DIR.mkdir(exist_ok=True)
    file_handler = RotatingFileHandler(
        LOG_DIR / "dmsguild-watcher.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.setLevel(level)
    logging.getLogger().addHandler(file_handler)


class DMsGuildBot(discord.Client):
    def __init__(self, settings: Settings):
        intents = discord.Intents.default()
        super().__init__(intents=intents)
        self.settings = settings
        self.watcher: WatcherCog | None = None
        self.shutdown_task: asyncio.Task | None = None

    async def setup_hook(self) -> None:
        self.watcher = WatcherCog(self, self.settings)
        await self.watcher.start()
        log.info("Watcher started")

    def request_shutdown(self, sig: signal.Signals) -> None:
        log.warning(f"Received {sig.name}, shutting down")
        if self.shutdown_task is None:
            self.shutdown_task = asyncio.ensure_future(self.close())

    async def on_ready(self) -> None:
        log.info(f"Logged in as {self.user}")

    async def close(self) -> None:
        if self.watcher:
            watcher, self.watcher = self.watcher, None
            await watcher.stop()
        await super().close()


async def run(settings: Settings) -> None:
    bot = DMsGuildBot(settings)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM, getattr(signal, "SIGQUIT", None)):
        if sig is None:
            continue
        # add_signal_handler is unavailable on Windows event loops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, bot.request_shutdown, sig)

    async with bot:
        await bot.start(settings.discord_token)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Post new DMs Guild releases to a Discord channel",
        epilog=(
            "Environment variables: DISCORD_TOKEN, DISCORD_CHANNEL_ID, DMG_AFFILIATE_ID, "
            "DMG_SEARCH_KEYWORDS, DMG_TITLE_FILTER, CHECK_MINUTES"
        ),
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to configuration file (default: %(default)s)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        log.error(f"Reading configuration: {e}")
        sys.exit(2)

    setup_logging(settings.log_level)

    try:
        asyncio.run(run(settings))
    except discord.LoginFailure as e:
        log.error(f"Could not log in to Discord: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
