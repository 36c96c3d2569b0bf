"""
Server configuration module.

This module handles server-side configuration settings.
"""

from common.constants import (
    DEFAULT_SERVER_HOST, DEFAULT_PORT, DEFAULT_DB_PATH, LOG_DIR,
    HISTORY_LIMIT, PAGE_SIZE, MAX_IMAGE_SIZE, ALLOWED_IMAGE_TYPES, MAX_FRAME_SIZE,
    SEND_TIMEOUT
)


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 db_path: str = DEFAULT_DB_PATH, logs_dir: str = LOG_DIR):
        self.host = host
        self.port = port

        # Storage
        self.db_path = db_path

        # Logging configuration
        self.logs_dir = logs_dir

        # History settings (fixed, not client-configurable)
        self.history_limit = HISTORY_LIMIT
        self.page_size = PAGE_SIZE

        # Image policy
        self.max_image_size = MAX_IMAGE_SIZE
        self.allowed_image_types = ALLOWED_IMAGE_TYPES

        # Transport
        self.max_frame_size = MAX_FRAME_SIZE
        self.send_timeout = SEND_TIMEOUT

    def get_connection_info(self):
        """Get connection information."""
        return {
            'host': self.host,
            'port': self.port
        }

    def get_storage_settings(self):
        """Get storage settings."""
        return {
            'db_path': self.db_path
        }

    def get_history_settings(self):
        """Get history and pagination settings."""
        return {
            'history_limit': self.history_limit,
            'page_size': self.page_size
        }

    def get_log_settings(self):
        """Get logging settings."""
        return {
            'logs_dir': self.logs_dir
        }
