"""A small websocket client for subscribing to node notifications."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

import websockets


def format_request(method: str, params: Iterable[str], request_id: int) -> str:
    """Render a request message in the node's JSON wire format."""
    params_str = ",".join(f'"{param}"' for param in params)
    if params_str:
        params_str = f'"params": [{params_str}],'
    return f'{{"method":"{method}",{params_str}"id":{request_id}}}'


class ConnectionState:
    """An open websocket together with the id of the next request."""

    def __init__(self, socket: Any) -> None:
        self.socket = socket
        self.id = 0

    async def send(self, method: str, params: Iterable[str] = ()) -> int:
        """Send a request and return the id it was sent with."""
        request_id = self.id
        self.id += 1
        await self.socket.send(format_request(method, params, request_id))
        return request_id

    async def subscribe_blocks(self) -> int:
        return await self.send("block_notify", [])

    async def close(self) -> None:
        await self.socket.close()

    async def __aenter__(self) -> ConnectionState:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


async def connect(url: str) -> tuple[ConnectionState, Any]:
    """Open a websocket to ``url``; return the connection and the handshake response."""
    socket = await websockets.connect(url)
    return ConnectionState(socket), getattr(socket, "response", None)


@dataclass(frozen=True)
class Stream:
    name: str

    def __str__(self) -> str:
        return self.name