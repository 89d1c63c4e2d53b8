"""
Infrastructure adapter: Starlette/FastAPI WebSocket -> IClientConnection.
All WebSocket state handling is confined here.
"""

import uuid

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from stock_relay.domain.ports.client_connection_port import IClientConnection


class WebSocketConnection(IClientConnection):
    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or uuid.uuid4().hex

    @property
    def connection_id(self) -> str:
        return self._connection_id

    def is_open(self) -> bool:
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def accept(self) -> None:
        await self._websocket.accept()

    async def send_text(self, text: str) -> None:
        await self._websocket.send_text(text)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if WebSocketState.DISCONNECTED in (
            self._websocket.client_state,
            self._websocket.application_state,
        ):
            return
        await self._websocket.close(code=code, reason=reason)
