from __future__ import annotations

from typing import Protocol


class RelayConnection(Protocol):
    """An open relay socket.

    receive() and send() raise ConnectionClosedError when the peer closes
    and TransportError on any other socket failure.
    """

    async def send(self, frame: str) -> None: ...

    async def receive(self) -> str | bytes: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class RelayTransport(Protocol):
    async def open(self, url: str) -> RelayConnection:
        """Perform the upgrade handshake.

        Raises HandshakeRejectedError when the relay answers with a non-101
        status and TransportError for everything else.
        """
        ...
