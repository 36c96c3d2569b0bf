"""
Protocol definitions for the Group Chat Relay.

This module defines the message structures and data formats used in communication
between client and server components.

Every frame is a JSON object with a ``type`` tag. Inbound frames are decoded into
one of four envelope variants; anything that does not decode cleanly yields
``None`` and is dropped by the caller without a reply.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Union

from common.constants import MessageTypes


@dataclass(frozen=True)
class ChatMessage:
    """Persisted chat message structure."""
    id: int
    username: str
    text: str
    timestamp: int  # milliseconds since epoch
    image: Optional[str] = None
    image_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys, as clients expect)."""
        return {
            "id": self.id,
            "username": self.username,
            "text": self.text,
            "timestamp": self.timestamp,
            "image": self.image,
            "imageType": self.image_type
        }


@dataclass
class JoinEnvelope:
    """Client announces its display name."""
    username: str
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    type: str = field(default=MessageTypes.JOIN, init=False)


@dataclass
class ChatEnvelope:
    """Plain text message."""
    username: str
    text: str
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    type: str = field(default=MessageTypes.MESSAGE, init=False)


@dataclass
class ImageEnvelope:
    """Image message; ``image`` is the text-encoded payload."""
    username: str
    image: str
    image_type: str
    text: str = ''
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    type: str = field(default=MessageTypes.IMAGE, init=False)


@dataclass
class LoadMoreEnvelope:
    """Request for the page of history strictly older than ``before_id``."""
    before_id: int
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    type: str = field(default=MessageTypes.LOAD_MORE, init=False)


Envelope = Union[JoinEnvelope, ChatEnvelope, ImageEnvelope, LoadMoreEnvelope]


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def _decode_join(payload: Dict[str, Any]) -> Optional[JoinEnvelope]:
    username = payload.get('username')
    if not _non_empty_str(username):
        return None
    return JoinEnvelope(username=username, raw=payload)


def _decode_message(payload: Dict[str, Any]) -> Optional[ChatEnvelope]:
    username = payload.get('username')
    text = payload.get('text')
    # Empty text is only meaningful alongside an image
    if not _non_empty_str(username) or not _non_empty_str(text):
        return None
    return ChatEnvelope(username=username, text=text, raw=payload)


def _decode_image(payload: Dict[str, Any]) -> Optional[ImageEnvelope]:
    username = payload.get('username')
    image = payload.get('image')
    image_type = payload.get('imageType')
    text = payload.get('text', '')
    if text is None:
        text = ''
    if not _non_empty_str(username) or not _non_empty_str(image):
        return None
    if not isinstance(image_type, str) or not isinstance(text, str):
        return None
    return ImageEnvelope(username=username, image=image, image_type=image_type,
                         text=text, raw=payload)


def _decode_load_more(payload: Dict[str, Any]) -> Optional[LoadMoreEnvelope]:
    before_id = payload.get('beforeId')
    # bool is an int subclass; True is not a cursor
    if isinstance(before_id, bool) or not isinstance(before_id, int):
        return None
    return LoadMoreEnvelope(before_id=before_id, raw=payload)


_DECODERS = {
    MessageTypes.JOIN: _decode_join,
    MessageTypes.MESSAGE: _decode_message,
    MessageTypes.IMAGE: _decode_image,
    MessageTypes.LOAD_MORE: _decode_load_more,
}


def decode_envelope(data: Union[str, bytes]) -> Optional[Envelope]:
    """
    Decode one inbound frame.

    Returns the matching envelope variant, or None when the frame is not valid
    UTF-8 JSON, is not an object, carries an unknown type, or lacks a required
    field.
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = data.decode('utf-8')
        except UnicodeDecodeError:
            return None

    try:
        payload = json.loads(data)
    except (ValueError, TypeError):
        return None

    if not isinstance(payload, dict):
        return None

    msg_type = payload.get('type')
    if not isinstance(msg_type, str):
        return None

    decoder = _DECODERS.get(msg_type)
    if decoder is None:
        return None
    return decoder(payload)


def encode_frame(message: Dict[str, Any]) -> str:
    """Serialize an outbound message to a text frame."""
    return json.dumps(message)


def create_join_message(username: str) -> Dict[str, Any]:
    """Create a join message (also relayed as the join announcement)."""
    return {
        "type": MessageTypes.JOIN,
        "username": username
    }


def create_chat_message(username: str, text: str) -> Dict[str, Any]:
    """Create a chat message."""
    return {
        "type": MessageTypes.MESSAGE,
        "username": username,
        "text": text
    }


def create_image_message(username: str, image: str, image_type: str, text: str = '') -> Dict[str, Any]:
    """Create an image message."""
    return {
        "type": MessageTypes.IMAGE,
        "username": username,
        "text": text,
        "image": image,
        "imageType": image_type
    }


def create_load_more_message(before_id: int) -> Dict[str, Any]:
    """Create a load more message."""
    return {
        "type": MessageTypes.LOAD_MORE,
        "beforeId": before_id
    }


def create_history_message(messages: List[ChatMessage], has_more: bool) -> Dict[str, Any]:
    """Create the history snapshot sent to a joining client."""
    return {
        "type": MessageTypes.HISTORY,
        "messages": [msg.to_dict() for msg in messages],
        "hasMore": has_more
    }


def create_more_history_message(messages: List[ChatMessage], has_more: bool) -> Dict[str, Any]:
    """Create a pagination reply."""
    return {
        "type": MessageTypes.MORE_HISTORY,
        "messages": [msg.to_dict() for msg in messages],
        "hasMore": has_more
    }


def create_leave_message(username: str) -> Dict[str, Any]:
    """Create the announcement broadcast when someone leaves."""
    return {
        "type": MessageTypes.LEAVE,
        "username": username
    }
