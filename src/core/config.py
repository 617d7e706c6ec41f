"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ClusterConfig:
    """DX cluster telnet settings consumed by the session manager."""

    host: str
    username: str


@dataclass(frozen=True)
class TelegramConfig:
    """Chat settings consumed by the Telegram relay adapter."""

    chat_id: int
    command_prefix: str
