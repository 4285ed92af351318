"""Websocket implementation of the realtime connection transport."""

from __future__ import annotations

from typing import Any

from fastapi import WebSocket


class WebSocketTransport:
    """Send JSON payloads over an accepted FastAPI :class:`WebSocket`."""

    async def send_to_handle(self, handle: WebSocket, payload: dict[str, Any]) -> None:
        await handle.send_json(payload)


__all__ = ["WebSocketTransport"]
