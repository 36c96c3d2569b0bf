"""
Shared constants for the Group Chat Relay.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 9000

# Frames carry base64 images, so the transport limit sits well above the image limit
MAX_FRAME_SIZE = 16 * 1024 * 1024

# Seconds a single outbound send may take before that delivery is skipped
SEND_TIMEOUT = 5.0

# Storage
DEFAULT_DB_PATH = 'chat.db'

# History
HISTORY_LIMIT = 100  # messages sent on join
PAGE_SIZE = 50  # messages per load_more page

# Images
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # encoded length, in characters
ALLOWED_IMAGE_TYPES = frozenset({
    'image/jpeg',
    'image/png',
    'image/gif',
    'image/webp',
})

# Logging
LOG_DIR = 'logs'
CHAT_LOG_FILE = 'chat_history.log'

# Message Types
class MessageTypes:
    # Client to Server
    JOIN = 'join'
    MESSAGE = 'message'
    IMAGE = 'image'
    LOAD_MORE = 'load_more'

    # Server to Client
    HISTORY = 'history'
    MORE_HISTORY = 'more_history'
    LEAVE = 'leave'
    # 'join', 'message' and 'image' are also relayed back to clients
