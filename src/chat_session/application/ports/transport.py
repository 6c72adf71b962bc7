from __future__ import annotations

from typing import Protocol


class TransportSocket(Protocol):
    """One open, message-oriented, full-duplex connection."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None:
        """Raises TransportError when the frame cannot be written."""
        ...

    async def receive(self) -> str:
        """Next text frame; raises TransportClosed once the socket closes."""
        ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class TransportConnector(Protocol):
    async def open(self, url: str) -> TransportSocket:
        """Raises AuthenticationError on a 401/403 handshake, TransportError otherwise."""
        ...
