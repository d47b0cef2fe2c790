"""WeChat transport over a WebSocket bridge.

The bridge is a separate process that drives the WeChat client and speaks
JSON frames::

    inbound:  {"type": "scan", "status": ..., "qrcode": ...}
              {"type": "login", "user": {"id": ..., "name": ...}}
              {"type": "logout", "user": {...}}
              {"type": "message", "id": ..., "self": false, "text": ...,
               "talker": {"id": ..., "name": ...},
               "room": {"id": ..., "topic": ...} | null,
               "mentionSelf": false,
               "file": {"name": ..., "path"|"url"|"data": ..., "mimeType": ...} | null}
    outbound: {"type": "auth", "token": ...}
              {"type": "say", "to": ..., "text": ...}
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed

from wxrelay.bus.events import Attachment, MessageEvent, OutboundMessage
from wxrelay.channels.base import BaseTransport
from wxrelay.config.schema import WechatConfig


class WechatBridgeTransport(BaseTransport):
    """WeChat transport backed by the bridge WebSocket."""

    name = "wechat"

    def __init__(self, config: WechatConfig):
        super().__init__(config)
        self.config: WechatConfig = config
        self._ws: Any = None
        self._listen_task: asyncio.Task | None = None
        self._closing = False

    async def start(self) -> None:
        """Connect to the bridge and start the listener task."""
        self._closing = False
        ws = await websockets.connect(
            self.config.bridge_url,
            open_timeout=self.config.connect_timeout,
        )
        self._ws = ws
        logger.info(f"Connected to WeChat bridge: {self.config.bridge_url}")

        if self.config.bridge_token:
            await ws.send(json.dumps({"type": "auth", "token": self.config.bridge_token}))

        self._running = True
        self._listen_task = asyncio.create_task(self._listen(ws))

    async def stop(self) -> None:
        """Close the bridge connection."""
        self._closing = True
        self._running = False

        if self._ws is not None:
            try:
                await self._ws.close()
            except Exception as e:
                logger.warning(f"Error closing WeChat bridge: {e}")
            self._ws = None

        if self._listen_task is not None and self._listen_task is not asyncio.current_task():
            self._listen_task.cancel()
            try:
                await self._listen_task
            except asyncio.CancelledError:
                pass
        self._listen_task = None

    async def send(self, msg: OutboundMessage) -> None:
        """Send a text reply through the bridge."""
        if self._ws is None:
            raise RuntimeError("WeChat bridge not connected")
        await self._ws.send(
            json.dumps({"type": "say", "to": msg.target, "text": msg.content}, ensure_ascii=False)
        )

    async def _listen(self, ws: Any) -> None:
        try:
            async for raw in ws:
                await self._handle_frame(raw)
        except ConnectionClosed as e:
            logger.warning(f"WeChat bridge connection closed: {e}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"WeChat bridge listener error: {e}")

        if self._ws is ws:
            self._ws = None
        self._running = False
        if not self._closing:
            await self._emit("disconnect")

    async def _handle_frame(self, raw: str | bytes) -> None:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from bridge: {str(raw)[:100]}")
            return

        frame_type = data.get("type")

        if frame_type == "scan":
            await self._emit("scan", data.get("status"), data.get("qrcode"))

        elif frame_type == "login":
            user = data.get("user") or {}
            self.bot_name = user.get("name")
            await self._emit("login", user)

        elif frame_type == "logout":
            await self._emit("logout", data.get("user") or {})

        elif frame_type == "message":
            await self._emit("message", parse_message_frame(data))

        else:
            logger.debug(f"Ignoring bridge frame of type {frame_type!r}")


def parse_message_frame(data: dict[str, Any]) -> MessageEvent:
    """Build a MessageEvent from a bridge ``message`` frame."""
    talker = data.get("talker") or {}
    room = data.get("room") or {}
    file = data.get("file")

    attachment = None
    if file:
        attachment = Attachment(
            name=file.get("name", ""),
            path=file.get("path"),
            data=file.get("data"),
            url=file.get("url"),
            mime_type=file.get("mimeType"),
        )

    return MessageEvent(
        sender_id=str(talker.get("id", "")),
        sender_name=talker.get("name", ""),
        text=data.get("text") or "",
        room_id=room.get("id"),
        room_topic=room.get("topic"),
        mentions_self=bool(data.get("mentionSelf")),
        is_self=bool(data.get("self")),
        attachment=attachment,
        message_id=data.get("id"),
    )
