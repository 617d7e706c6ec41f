from __future__ import annotations

import asyncio

import pytest
from telethon.errors import RPCError

from adapters.telegram_relay import (
    TelegramSpotNotifier,
    extract_command,
    format_spot_message,
    register_command_handler,
    relay_commands,
)
from core.channels import ChannelClosed, LineChannel
from core.config import TelegramConfig

SPOT = "DX de OH8HUB:    14310.0  AD6VT        x04s W6/ND-101                 1959Z"


class FakeClient:
    def __init__(self, fail_first: "Exception | None" = None) -> None:
        self.sent: list[tuple] = []
        self.handlers: list[tuple] = []
        self._fail_first = fail_first

    async def send_message(self, entity, message, **kwargs) -> None:
        if self._fail_first is not None:
            error, self._fail_first = self._fail_first, None
            raise error
        self.sent.append((entity, message, kwargs))

    def on(self, event):
        def decorator(handler):
            self.handlers.append((event, handler))
            return handler

        return decorator


class DummyEvent:
    def __init__(self, raw_text: "str | None") -> None:
        self.raw_text = raw_text


def test_format_spot_message_escapes_html() -> None:
    assert format_spot_message("DX de <OH2X>: a&b") == "<code>DX de &lt;OH2X&gt;: a&amp;b</code>"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("/cluster sh/dx 10", "sh/dx 10"),
        ("/cluster   set/nobeep  ", "set/nobeep"),
        ("/cluster ", None),
        ("sh/dx", None),
        ("/cluster sh/dx\nbye", None),
        ("/cluster@ClusterWatchBot sh/dx 10", "sh/dx 10"),
        ("/cluster@ClusterWatchBot", None),
        ("/clusters sh/dx", None),
    ],
)
def test_extract_command(text: str, expected: "str | None") -> None:
    assert extract_command(text, "/cluster ") == expected


def test_notifier_forwards_raw_lines_until_channel_closes() -> None:
    async def scenario() -> FakeClient:
        client = FakeClient()
        spots = LineChannel("spots")
        spots.send(SPOT)
        spots.send("DX de OH2NOS: not a parsable spot")
        spots.close()
        with pytest.raises(ChannelClosed):
            await TelegramSpotNotifier(client, -1001234).run(spots)
        return client

    client = asyncio.run(scenario())
    assert [message for _, message, _ in client.sent] == [
        format_spot_message(SPOT),
        format_spot_message("DX de OH2NOS: not a parsable spot"),
    ]
    assert all(entity == -1001234 for entity, _, _ in client.sent)
    assert client.sent[0][2]["parse_mode"] == "html"


@pytest.mark.parametrize(
    "error",
    [
        RPCError(None, "CHAT_WRITE_FORBIDDEN"),
        ConnectionError("Cannot send requests while disconnected"),
        OSError("network unreachable"),
    ],
)
def test_notifier_survives_send_failures(error: Exception) -> None:
    async def scenario() -> FakeClient:
        client = FakeClient(fail_first=error)
        spots = LineChannel("spots")
        spots.send("first")
        spots.send("second")
        spots.close()
        with pytest.raises(ChannelClosed):
            await TelegramSpotNotifier(client, 42).run(spots)
        return client

    client = asyncio.run(scenario())
    assert [message for _, message, _ in client.sent] == [format_spot_message("second")]


def test_command_handler_queues_prefixed_messages() -> None:
    async def scenario() -> list:
        client = FakeClient()
        inbox: asyncio.Queue = asyncio.Queue()
        handler = register_command_handler(client, TelegramConfig(chat_id=42, command_prefix="/cluster "), inbox)
        assert client.handlers[0][1] is handler

        await handler(DummyEvent("/cluster sh/dx"))
        await handler(DummyEvent("just chatting"))
        await handler(DummyEvent(None))
        await handler(DummyEvent("/cluster sh/wwv"))

        queued = []
        while not inbox.empty():
            queued.append(inbox.get_nowait())
        return queued

    assert asyncio.run(scenario()) == ["sh/dx", "sh/wwv"]


def test_relay_commands_moves_queue_into_channel() -> None:
    async def scenario() -> list:
        inbox: asyncio.Queue = asyncio.Queue()
        commands = LineChannel("commands")
        for command in ("sh/dx", "sh/wwv"):
            inbox.put_nowait(command)
        relay = asyncio.ensure_future(relay_commands(inbox, commands))
        received = [await commands.recv(), await commands.recv()]

        commands.close()
        inbox.put_nowait("late")
        with pytest.raises(ChannelClosed):
            await relay
        return received

    assert asyncio.run(scenario()) == ["sh/dx", "sh/wwv"]


def test_notifier_exit_closes_spot_channel() -> None:
    async def scenario() -> LineChannel:
        client = FakeClient(fail_first=RuntimeError("unexpected"))
        spots = LineChannel("spots")
        spots.send(SPOT)
        with pytest.raises(RuntimeError):
            await TelegramSpotNotifier(client, 42).run(spots)
        return spots

    spots = asyncio.run(scenario())
    assert spots.closed
    with pytest.raises(ChannelClosed):
        spots.send(SPOT)
