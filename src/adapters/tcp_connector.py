"""TCP connector adapter.

Implements the core Connector port with asyncio streams. Each resolved
address is tried in order; the first that accepts the connection wins.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import List, Tuple

LOGGER = logging.getLogger(__name__)

AddressInfo = Tuple[socket.AddressFamily, tuple]


def split_host_port(address: str) -> Tuple[str, int]:
    """Split ``host:port`` (or ``[v6-host]:port``) into its parts."""

    host, sep, port = address.strip().rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"address must look like host:port, got {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    port_number = int(port)
    if not 0 < port_number < 65536:
        raise ValueError(f"port out of range in {address!r}")
    return host, port_number


async def resolve(host: str, port: int) -> List[AddressInfo]:
    """Resolve to (family, sockaddr) pairs in resolver order."""

    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM, proto=socket.IPPROTO_TCP)
    return [(info[0], info[4]) for info in infos]


async def open_cluster_connection(address: str) -> Tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Connect to the cluster and return a stream pair with TCP_NODELAY set."""

    try:
        host, port = split_host_port(address)
    except ValueError as err:
        raise ConnectionError(str(err)) from err

    try:
        addresses = await resolve(host, port)
    except UnicodeError as err:
        # Hostnames that fail IDNA encoding never reach the resolver.
        raise ConnectionError(f"couldn't resolve {host!r}: {err}") from err

    loop = asyncio.get_running_loop()
    for family, sockaddr in addresses:
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.setblocking(False)
        try:
            await loop.sock_connect(sock, sockaddr)
        except OSError as err:
            sock.close()
            LOGGER.debug("Couldn't connect to %s (%s). Trying next one.", sockaddr, err)
            continue

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        LOGGER.debug("Connected to %s", sockaddr)
        return await asyncio.open_connection(sock=sock)

    raise ConnectionError(f"couldn't connect to {address}")
