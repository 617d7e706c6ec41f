"""Application entry point for the cluster watcher."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Iterable, Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.tcp_connector import open_cluster_connection
from adapters.telegram_relay import (
    TelegramSpotNotifier,
    register_command_handler,
    relay_commands,
)
from client import load_credentials, start_bot
from core.channels import LineChannel
from core.cluster_session import ClusterSession
from core.config import ClusterConfig, TelegramConfig
from core.line_filter import is_relevant
from core.models import DxEntry
from core.spot_parser import parse_spot
from core.supervisor import TaskTerminated, supervise

NAME = "CLUSTERWATCH"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging(config: dict) -> None:
    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/clusterwatch.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # Telethon is chatty at INFO; keep our own lines readable.
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))


async def _serve(cluster_config: ClusterConfig, telegram_config: TelegramConfig) -> None:
    logger = logging.getLogger(__name__)

    client = await start_bot(load_credentials())

    spots = LineChannel("spots")
    commands = LineChannel("commands")
    inbox: asyncio.Queue[str] = asyncio.Queue()

    session = ClusterSession(cluster_config, spots, commands, connector=open_cluster_connection)
    notifier = TelegramSpotNotifier(client, telegram_config.chat_id)
    register_command_handler(client, telegram_config, inbox)

    logger.info("Starting cluster session to %s", cluster_config.host)
    try:
        await supervise(
            {
                "cluster session": session.run(),
                "spot notifier": notifier.run(spots),
                "command relay": relay_commands(inbox, commands),
                "telegram client": client.run_until_disconnected(),
            }
        )
    finally:
        await client.disconnect()


def _run(config_path: Optional[str]) -> None:
    _print_banner()
    config = settings.load_json_config(config_path)
    _configure_logging(settings.logging_config(config))
    logger = logging.getLogger(__name__)

    logger.info("Starting clusterwatch")
    cluster_config = settings.build_cluster_config(config)
    telegram_config = settings.build_telegram_config(config)

    try:
        asyncio.run(_serve(cluster_config, telegram_config))
    except TaskTerminated as err:
        logger.critical("%s", err)
        raise SystemExit(1) from err
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


def _describe(line: str) -> str:
    relevant = "relevant" if is_relevant(line) else "ignored"
    entry = parse_spot(line)
    if not isinstance(entry, DxEntry):
        return f"{relevant} | unparsed: {entry.reason}"

    identifier = "-"
    if entry.cqgma_identifier is not None:
        activity, source = entry.cqgma_identifier
        identifier = f"{activity.name}/{source.name}"
    return (
        f"{relevant} | {entry.reporter} {entry.frequency:.1f} {entry.dx} "
        f"[{identifier}] {entry.info!r} {entry.timestamp}Z"
    )


def _check(lines: Iterable[str]) -> None:
    for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            continue
        print(_describe(line))


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="clusterwatch")
    parser.add_argument("-c", "--config", help="Path to config.json")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the watcher")
    check_parser = subparsers.add_parser(
        "check",
        help="Show how spot lines are filtered and parsed (reads stdin without arguments).",
    )
    check_parser.add_argument("lines", nargs="*")

    args = parser.parse_args(argv)
    if args.command == "check":
        _check(args.lines or sys.stdin)
        return
    _run(args.config)


if __name__ == "__main__":
    main()
