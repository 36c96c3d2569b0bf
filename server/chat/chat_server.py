"""
Chat server module.

Turns decoded protocol events into persistence effects and outbound frames.
Every event is handled to completion (validate, persist, fan out) under one
lock before the next is processed, so the store's append order is also the
order in which clients see messages. Database calls run in a worker thread
and every send is bounded by a timeout, so neither a slow insert nor a stalled
peer freezes the event loop.
"""

import asyncio
import sqlite3
from typing import Any, Dict, Optional, Union

from common.constants import MessageTypes
from common.protocol_definitions import (
    Envelope, JoinEnvelope, ChatEnvelope, ImageEnvelope, LoadMoreEnvelope,
    decode_envelope, encode_frame,
    create_history_message, create_more_history_message,
    create_join_message, create_leave_message
)
from server.chat.connection_registry import ConnectionRegistry
from server.storage.message_store import MessageStore, PersistenceError
from server.utils.config import ServerConfig
from server.utils.logger import logger


class ChatServer:
    """Server-side chat functionality."""

    def __init__(self, store: MessageStore, registry: Optional[ConnectionRegistry] = None,
                 config: Optional[ServerConfig] = None):
        self.store = store
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.config = config if config is not None else ServerConfig()
        self.lock = asyncio.Lock()  # One event at a time

        self._handlers = {
            MessageTypes.JOIN: self.handle_join,
            MessageTypes.MESSAGE: self.handle_chat,
            MessageTypes.IMAGE: self.handle_image,
            MessageTypes.LOAD_MORE: self.handle_load_more,
        }

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def _deliver(self, handle: Any, data: str) -> bool:
        """Send one frame; a failed or stalled send is skipped, never retried."""
        try:
            await asyncio.wait_for(handle.send(data), self.config.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.debug(f"Send timed out after {self.config.send_timeout}s, skipping connection")
            return False
        except Exception as e:
            logger.debug(f"Send failed, skipping connection: {e!r}")
            return False

    async def broadcast(self, message: Dict[str, Any], exclude_uid: Optional[int] = None) -> int:
        """
        Send a JSON message to all connected clients.
        Optionally exclude a specific client by uid. Returns the number of
        successful deliveries.
        """
        data = encode_frame(message)
        if exclude_uid is None:
            sends = self.registry.for_each(lambda handle: self._deliver(handle, data))
        else:
            sends = self.registry.for_each_except(exclude_uid, lambda handle: self._deliver(handle, data))

        if not sends:
            return 0
        results = await asyncio.gather(*sends)
        return sum(1 for ok in results if ok)

    async def send_to(self, uid: int, message: Dict[str, Any]) -> bool:
        """Send a JSON message to a specific client."""
        connection = self.registry.get(uid)
        if connection is None:
            return False
        return await self._deliver(connection.handle, encode_frame(message))

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    def handle_connect(self, handle: Any, addr=None) -> int:
        """Register a new transport connection and return its uid."""
        uid = self.registry.next_uid()
        self.registry.register(uid, handle)
        logger.log_connection(addr, uid)
        return uid

    async def handle_disconnect(self, uid: int):
        """Remove a connection and tell everyone else if it had joined."""
        async with self.lock:
            username = self.registry.unregister(uid)
            if username is None:
                logger.log_disconnect(uid)
                return
            logger.log_leave(username, uid)
            await self.broadcast(create_leave_message(username), exclude_uid=uid)

    # ------------------------------------------------------------------
    # Inbound events
    # ------------------------------------------------------------------

    async def handle_frame(self, uid: int, data: Union[str, bytes]) -> bool:
        """Decode and handle one inbound frame. Malformed frames are dropped without reply."""
        envelope = decode_envelope(data)
        if envelope is None:
            logger.debug(f"Dropped malformed frame from uid={uid}")
            return False

        async with self.lock:
            await self.handle_event(uid, envelope)
        return True

    async def handle_event(self, uid: int, envelope: Envelope):
        """Dispatch a decoded envelope to its handler. Caller holds the lock."""
        handler = self._handlers[envelope.type]
        await handler(uid, envelope)

    async def handle_join(self, uid: int, envelope: JoinEnvelope):
        """Record the name, send the history snapshot, then announce to everyone."""
        self.registry.set_name(uid, envelope.username)
        logger.log_join(envelope.username, uid)

        try:
            history = await asyncio.to_thread(self.store.recent, self.config.history_limit)
            has_more = await asyncio.to_thread(self.store.has_before, history[0].id) if history else False
        except (PersistenceError, sqlite3.Error) as e:
            logger.log_error("history snapshot", e)
        else:
            await self.send_to(uid, create_history_message(history, has_more))

        # The joiner gets its own announcement too
        await self.broadcast(create_join_message(envelope.username))

    async def handle_chat(self, uid: int, envelope: ChatEnvelope):
        """Persist a text message, then relay it verbatim."""
        try:
            message = await asyncio.to_thread(self.store.append, envelope.username, envelope.text)
        except PersistenceError as e:
            logger.log_error("message persistence", e)
            return

        logger.log_chat(envelope.username, uid, message.id, envelope.text)
        await self.broadcast(envelope.raw)

    async def handle_image(self, uid: int, envelope: ImageEnvelope):
        """Check image policy, persist, then relay verbatim. Violations are dropped silently."""
        size = len(envelope.image)
        if size > self.config.max_image_size:
            logger.log_rejected(uid, f"image too large ({size} > {self.config.max_image_size} chars)")
            return
        if envelope.image_type not in self.config.allowed_image_types:
            logger.log_rejected(uid, f"image type '{envelope.image_type}' not allowed")
            return

        try:
            message = await asyncio.to_thread(self.store.append, envelope.username, envelope.text,
                                              envelope.image, envelope.image_type)
        except PersistenceError as e:
            logger.log_error("image persistence", e)
            return

        logger.log_image(envelope.username, uid, message.id, envelope.image_type, size)
        await self.broadcast(envelope.raw)

    async def handle_load_more(self, uid: int, envelope: LoadMoreEnvelope):
        """Reply to the requester only with the page older than the cursor."""
        try:
            messages, has_more = await asyncio.to_thread(
                self.store.before, envelope.before_id, self.config.page_size)
        except (PersistenceError, sqlite3.Error) as e:
            logger.log_error("history page", e)
            return
        logger.debug(f"uid={uid} loaded {len(messages)} message(s) before #{envelope.before_id}")
        await self.send_to(uid, create_more_history_message(messages, has_more))

    def get_participant_count(self) -> int:
        """Get the number of current connections."""
        return len(self.registry)
