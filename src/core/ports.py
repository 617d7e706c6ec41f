"""Ports (interfaces) used by the core session manager.

Ports define the minimal contracts for the socket adapter so
that the core can be driven by fakes in tests and by asyncio streams in
production.
"""

from __future__ import annotations

from typing import Protocol, Tuple


class LineReader(Protocol):
    """Read half of a cluster connection (asyncio.StreamReader subset)."""

    async def readline(self) -> bytes:
        ...

    async def readuntil(self, separator: bytes = b"\n") -> bytes:
        ...


class LineWriter(Protocol):
    """Write half of a cluster connection (asyncio.StreamWriter subset)."""

    def write(self, data: bytes) -> None:
        ...

    async def drain(self) -> None:
        ...

    def close(self) -> None:
        ...

    async def wait_closed(self) -> None:
        ...


class Connector(Protocol):
    """Open a connection to ``host:port``; raises OSError when unreachable."""

    async def __call__(self, address: str) -> Tuple[LineReader, LineWriter]:
        ...
