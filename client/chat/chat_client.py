"""
Chat client module.

This module handles client-side chat messaging functionality over a WebSocket
connection to the relay.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake

from client.utils.config import ClientConfig
from client.utils.logger import logger
from common.protocol_definitions import (
    create_join_message, create_chat_message, create_image_message,
    create_load_more_message
)


class ChatClient:
    """Client-side chat functionality."""

    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig()
        self.websocket = None

    async def connect(self, retry_count: int = 3, base_delay: float = 0.5) -> bool:
        """Establish connection to the server with retry logic and exponential backoff."""
        for attempt in range(1, retry_count + 1):
            try:
                self.websocket = await websockets.connect(
                    self.config.get_url(), max_size=self.config.max_frame_size
                )
                logger.log_connection(self.config.host, self.config.port, True)
                return True
            except (OSError, InvalidHandshake) as e:
                logger.log_connection(self.config.host, self.config.port, False)
                logger.log_error("connection", e)
                if attempt < retry_count:
                    delay = base_delay * (2 ** (attempt - 1))
                    logger.info(f"Retrying connection in {delay}s (attempt {attempt}/{retry_count})...")
                    await asyncio.sleep(delay)
        logger.error(f"Failed to connect after {retry_count} attempts")
        return False

    async def send_message(self, message: Dict[str, Any]) -> bool:
        """Send a JSON message to the server."""
        if not self.websocket:
            logger.error("Not connected to server")
            return False

        try:
            await self.websocket.send(json.dumps(message))
            logger.log_sent(message)
            return True
        except ConnectionClosed as e:
            logger.log_error("send", e)
            return False

    async def join(self, username: Optional[str] = None) -> bool:
        """Announce our display name."""
        if username:
            self.config.username = username
        return await self.send_message(create_join_message(self.config.username))

    async def send_chat(self, text: str) -> bool:
        """Send a chat message."""
        return await self.send_message(create_chat_message(self.config.username, text))

    async def send_image(self, image: str, image_type: str, text: str = '') -> bool:
        """Send a text-encoded image, optionally with a caption."""
        return await self.send_message(create_image_message(self.config.username, image, image_type, text))

    async def load_more(self, before_id: int) -> bool:
        """Request the page of history older than ``before_id``."""
        return await self.send_message(create_load_more_message(before_id))

    async def receive(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Wait for the next frame from the server and decode it."""
        if not self.websocket:
            raise ConnectionError("Not connected to server")
        data = await asyncio.wait_for(self.websocket.recv(), timeout)
        message = json.loads(data)
        logger.log_received(message)
        return message

    async def close(self):
        """Close the connection."""
        if self.websocket is not None:
            await self.websocket.close()
            self.websocket = None
            logger.info("Disconnected from server")
