"""Transport seam between the feed processor and a live connection.

The processor only needs ``send``, ``receive`` and ``close``; connecting,
reconnecting and pinging stay with whoever owns the connection.
"""

from typing import Protocol, runtime_checkable

from aiohttp import ClientWebSocketResponse, WSMsgType

from kraken_feed.errors import TransportClosed, TransportError


@runtime_checkable
class Transport(Protocol):
    """Minimal async frame transport."""

    async def send(self, payload: bytes | str) -> None: ...

    async def receive(self) -> bytes:
        """Wait for the next frame.

        Raises:
            TransportClosed: Once the connection is closed.
            TransportError: On any other receive failure.
        """
        ...

    async def close(self) -> None: ...


class AiohttpTransport:
    """Adapts an established ``aiohttp`` WebSocket to the Transport protocol.

    Control messages (ping/pong, continuation) are skipped; text and binary
    frames are returned as bytes.
    """

    successful_msg = {WSMsgType.TEXT, WSMsgType.BINARY}
    closed_msg = {WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED}

    def __init__(self, ws: ClientWebSocketResponse) -> None:
        self._ws = ws

    @property
    def ws(self) -> ClientWebSocketResponse:
        return self._ws

    async def send(self, payload: bytes | str) -> None:
        if self._ws.closed:
            raise TransportClosed("Cannot send on a closed websocket.")
        try:
            if isinstance(payload, str):
                await self._ws.send_str(payload)
            else:
                await self._ws.send_bytes(payload)
        except ConnectionError as exc:
            raise TransportError(f"Failed to send; {exc}") from exc

    async def receive(self) -> bytes:
        while True:
            msg = await self._ws.receive()

            if msg.type in self.successful_msg:
                data = msg.data
                return data.encode() if isinstance(data, str) else data

            if msg.type in self.closed_msg:
                raise TransportClosed(f"Websocket closed; got {msg.type.name}")

            if msg.type == WSMsgType.ERROR:
                raise TransportError(f"Websocket error; {self._ws.exception()}")

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()
