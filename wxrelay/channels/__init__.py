"""Messaging transports."""

from wxrelay.channels.base import BaseTransport
from wxrelay.channels.wechat import WechatBridgeTransport

__all__ = ["BaseTransport", "WechatBridgeTransport"]
