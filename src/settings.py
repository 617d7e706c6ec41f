"""Configuration loading for clusterwatch.

All user-editable settings (cluster, chat, logging) live in a single JSON
file for quick edits without touching Python. Secrets stay in the
environment (see client.py).
"""

from __future__ import annotations

import json
import os
from typing import Optional

from adapters.tcp_connector import split_host_port
from core.config import ClusterConfig, TelegramConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Default location; the CLI can point elsewhere with --config.
CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")

DEFAULT_COMMAND_PREFIX = "/cluster "

# Environment variables whose values are masked in log output.
DEFAULT_REDACT_PATTERNS = ["API_HASH", "BOT_API"]


def load_json_config(path: Optional[str] = None) -> dict:
    """Load config.json with a flat, user-friendly schema."""

    path = path or CONFIG_PATH
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _require(section: dict, section_name: str, key: str):
    value = section.get(key)
    if value in (None, ""):
        raise ValueError(f"{section_name}.{key} is required in config.json")
    return value


def build_cluster_config(config: dict) -> ClusterConfig:
    """Validate the "cluster" section."""

    cluster = config.get("cluster") or {}
    host = str(_require(cluster, "cluster", "host"))
    username = str(_require(cluster, "cluster", "username"))
    # Catch typos at startup instead of on every reconnect.
    split_host_port(host)
    return ClusterConfig(host=host, username=username)


def build_telegram_config(config: dict) -> TelegramConfig:
    """Validate the "telegram" section."""

    telegram = config.get("telegram") or {}
    chat_id = _require(telegram, "telegram", "chat_id")
    try:
        chat_id = int(chat_id)
    except (TypeError, ValueError) as err:
        raise ValueError("telegram.chat_id must be an integer") from err
    prefix = telegram.get("command_prefix", DEFAULT_COMMAND_PREFIX)
    return TelegramConfig(chat_id=chat_id, command_prefix=str(prefix))


def logging_config(config: dict) -> dict:
    """Return the optional "logging" section with redaction defaults."""

    logging_cfg = dict(config.get("logging") or {})
    redact = dict(logging_cfg.get("redact") or {})
    redact.setdefault("enabled", True)
    redact.setdefault("patterns", list(DEFAULT_REDACT_PATTERNS))
    logging_cfg["redact"] = redact
    return logging_cfg
