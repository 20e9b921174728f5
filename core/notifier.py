import asyncio
import logging

import discord

from core.errors import DeliveryError

log = logging.getLogger(__name__)

MAX_DISCORD_MSG_LEN = 2000


class ChannelNotifier:
    def __init__(self, bot: discord.Client, channel_id: int, timeout: float = 30.0):
        self.bot = bot
        self.channel_id = channel_id
        self.timeout = timeout
        self._channel: discord.abc.Messageable | None = None

    async def _get_channel(self) -> discord.abc.Messageable:
        if self._channel:
            return self._channel
        channel = self.bot.get_channel(self.channel_id)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(self.channel_id)
            except discord.NotFound as e:
                raise DeliveryError(self.channel_id, "Channel not found") from e
            except discord.HTTPException as e:
                raise DeliveryError(self.channel_id, f"Failed to fetch channel: {e}") from e
        if not hasattr(channel, "send"):
            raise DeliveryError(self.channel_id, "Channel cannot receive messages")
        self._channel = channel
        return channel

    async def send(self, message: str) -> None:
        channel = await self._get_channel()
        if len(message) > MAX_DISCORD_MSG_LEN:
            log.warning(f"Message is {len(message)} chars, truncating")
            message = message[: MAX_DISCORD_MSG_LEN - 3] + "..."
        try:
            await asyncio.wait_for(channel.send(message), timeout=self.timeout)
        except discord.Forbidden as e:
            raise DeliveryError(self.channel_id, "Missing permission to post") from e
        except discord.HTTPException as e:
            raise DeliveryError(self.channel_id, f"Failed to send message: {e}") from e
        except asyncio.TimeoutError as e:
            raise DeliveryError(self.channel_id, "Timed out sending message") from e
