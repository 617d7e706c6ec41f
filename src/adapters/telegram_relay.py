"""Telegram relay adapter.

Connects the cluster session to one Telegram chat in both directions:
accepted spot lines are posted to the chat, and chat messages starting with
the configured prefix are queued as telnet commands.
"""

from __future__ import annotations

import asyncio
import html
import logging
from typing import Optional

from telethon import TelegramClient, events
from telethon.errors import RPCError

from core.channels import ChannelClosed, LineChannel
from core.config import TelegramConfig
from core.models import DxEntry
from core.spot_parser import parse_spot

LOGGER = logging.getLogger(__name__)


def format_spot_message(line: str) -> str:
    """Wrap a raw spot line for Telegram's HTML parse mode."""

    return f"<code>{html.escape(line)}</code>"


def extract_command(text: str, prefix: str) -> Optional[str]:
    """Return the telnet command carried by a chat message, if any.

    Only single-line commands are relayed so one chat message can never turn
    into several telnet lines.
    """

    if not prefix:
        return None

    word = prefix.strip()
    if word.startswith("/") and text.startswith(word + "@"):
        # Group chats address bot commands as /cmd@BotName.
        _, sep, command = text.partition(" ")
        if not sep:
            return None
    elif text.startswith(prefix):
        command = text[len(prefix) :]
    else:
        return None

    command = command.strip()
    if not command or "\n" in command or "\r" in command:
        return None
    return command


class TelegramSpotNotifier:
    """Posts accepted spot lines to the configured chat."""

    def __init__(self, client: TelegramClient, chat_id: int) -> None:
        self._client = client
        self._chat_id = chat_id

    async def send(self, line: str) -> None:
        await self._client.send_message(
            self._chat_id,
            format_spot_message(line),
            parse_mode="html",
            link_preview=False,
        )

    async def run(self, spots: LineChannel) -> None:
        """Forward spots until the channel closes, which is an error."""

        try:
            while True:
                line = await spots.recv()
                if line is None:
                    raise ChannelClosed(f"{spots.name} channel closed")

                entry = parse_spot(line)
                if isinstance(entry, DxEntry):
                    LOGGER.debug("Parsed spot: %s", entry)
                else:
                    LOGGER.debug("Forwarding unparsed spot (%s)", entry.reason)

                LOGGER.info("telegram tx: ^%s$", line)
                try:
                    await self.send(line)
                except (RPCError, OSError):
                    LOGGER.exception("Failed to send spot message to Telegram")
        finally:
            # No receiver left; the session stops on its next spot.
            spots.close()


def register_command_handler(
    client: TelegramClient,
    config: TelegramConfig,
    inbox: "asyncio.Queue[str]",
):
    """Queue prefixed messages from the configured chat as telnet commands."""

    @client.on(events.NewMessage(chats=config.chat_id, incoming=True))
    async def handler(event) -> None:
        try:
            command = extract_command(event.raw_text or "", config.command_prefix)
            if command is None:
                return
            LOGGER.info("Queued telnet command from chat: %s", command)
            inbox.put_nowait(command)
        except Exception:
            LOGGER.exception("Error while processing chat message")

    return handler


async def relay_commands(inbox: "asyncio.Queue[str]", commands: LineChannel) -> None:
    """Move queued chat commands into the telnet command channel forever."""

    while True:
        command = await inbox.get()
        commands.send(command)
