"""
Client configuration module.

This module handles client-side configuration settings.
"""

from common.constants import DEFAULT_HOST, DEFAULT_PORT, MAX_FRAME_SIZE


class ClientConfig:
    """Client configuration class."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, username: str = None):
        self.host = host
        self.port = port
        self.username = username or f"user_{id(self) % 10000}"

        # Connection settings
        self.max_frame_size = MAX_FRAME_SIZE

    def get_url(self) -> str:
        """WebSocket URL of the relay."""
        return f"ws://{self.host}:{self.port}"

    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port,
            'username': self.username
        }
