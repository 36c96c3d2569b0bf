"""
Server logging module.

This module handles server-side logging functionality.
"""

import logging
from datetime import datetime
from pathlib import Path

from common.constants import LOG_DIR, CHAT_LOG_FILE


class ServerLogger:
    """Server logging class."""

    def __init__(self, logs_dir: str = LOG_DIR, log_level: int = logging.INFO):
        self.logs_dir = Path(logs_dir)

        # Set up main logger
        self.logger = logging.getLogger('chat_relay_server')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create console handler
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        console_handler.setFormatter(formatter)

        # Add handler to logger
        self.logger.addHandler(console_handler)

        self.chat_log_path = self.logs_dir / CHAT_LOG_FILE

    def set_logs_dir(self, logs_dir: str):
        """Redirect the chat audit file to another directory."""
        self.logs_dir = Path(logs_dir)
        self.chat_log_path = self.logs_dir / CHAT_LOG_FILE

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_connection(self, addr, uid: int):
        """Log client connection."""
        self.info(f"New connection from {addr}, assigned uid={uid}")

    def log_join(self, username: str, uid: int):
        """Log user join."""
        self.info(f"{username} joined the chat (uid={uid})")

    def log_leave(self, username: str, uid: int):
        """Log user leave."""
        self.info(f"{username} left the chat (uid={uid})")

    def log_disconnect(self, uid: int):
        """Log a connection that closed without ever joining."""
        self.info(f"Connection uid={uid} closed")

    def log_chat(self, username: str, uid: int, message_id: int, text: str):
        """Log chat message."""
        self.info(f"Chat #{message_id} from {username} (uid={uid}): {text}")
        self._write_to_file(f"{datetime.now().isoformat()} | #{message_id} | {username} (uid={uid}) | {text}")

    def log_image(self, username: str, uid: int, message_id: int, image_type: str, size: int):
        """Log image message."""
        self.info(f"Image #{message_id} from {username} (uid={uid}): {image_type}, {size} chars")
        self._write_to_file(f"{datetime.now().isoformat()} | #{message_id} | [IMAGE {image_type}] {username} (uid={uid}) | {size} chars")

    def log_rejected(self, uid: int, reason: str):
        """Log a dropped event."""
        self.warning(f"Dropped event from uid={uid}: {reason}")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")

    def _write_to_file(self, content: str):
        """Append a line to the chat audit file."""
        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            with open(self.chat_log_path, 'a', encoding='utf-8') as f:
                f.write(content + '\n')
        except OSError as e:
            self.error(f"Failed to write to log file {self.chat_log_path}: {e}")


# Global logger instance
logger = ServerLogger()
