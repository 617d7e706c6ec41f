"""Bot login for the Telegram side of the relay.

clusterwatch posts as a bot, so a start needs the app credentials (API_ID,
API_HASH) and the BotFather token (BOT_API). All three come from the
environment or a local .env file and never from config.json.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv
from telethon import TelegramClient

LOGGER = logging.getLogger(__name__)

REQUIRED_ENV = ("API_ID", "API_HASH", "BOT_API")
DEFAULT_SESSION_NAME = "clusterwatch"


@dataclass(frozen=True)
class BotCredentials:
    api_id: int
    api_hash: str = field(repr=False)
    token: str = field(repr=False)
    session_name: str = DEFAULT_SESSION_NAME


def load_credentials() -> BotCredentials:
    load_dotenv()

    missing = [name for name in REQUIRED_ENV if not os.getenv(name)]
    if missing:
        raise RuntimeError(f"Missing {', '.join(missing)} in environment")

    api_id = os.environ["API_ID"].strip()
    if not api_id.isdigit():
        raise RuntimeError("API_ID must be the numeric app id from my.telegram.org")

    return BotCredentials(
        api_id=int(api_id),
        api_hash=os.environ["API_HASH"],
        token=os.environ["BOT_API"],
        session_name=os.getenv("SESSION_NAME") or DEFAULT_SESSION_NAME,
    )


async def start_bot(credentials: BotCredentials) -> TelegramClient:
    """Sign in as the bot; the session file keeps the authorization."""

    client = TelegramClient(credentials.session_name, credentials.api_id, credentials.api_hash)
    await client.start(bot_token=credentials.token)
    me = await client.get_me()
    LOGGER.info("Telegram bot signed in as @%s", getattr(me, "username", None))
    return client
