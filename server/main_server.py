"""
Group Chat Relay Server - WebSocket transport

WebSocket transport for the relay: accepts connections, feeds each inbound
frame to the chat server in arrival order, and reports disconnects.
"""

import asyncio
import signal
from typing import Optional

import websockets
from websockets.exceptions import ConnectionClosed

from server.chat.chat_server import ChatServer
from server.storage.message_store import MessageStore
from server.utils.config import ServerConfig
from server.utils.logger import logger


class ChatRelayServer:
    """Main server class that wires transport, chat handling and storage together."""

    def __init__(self, host: str = '0.0.0.0', port: int = 9000, db_path: str = 'chat.db',
                 config: Optional[ServerConfig] = None, store: Optional[MessageStore] = None):
        self.config = config or ServerConfig(host, port, db_path)
        self.store = store or MessageStore(self.config.db_path)
        self.chat_server = ChatServer(self.store, config=self.config)
        self._server = None

    async def handle_client(self, websocket):
        """Handle individual client connection."""
        addr = getattr(websocket, 'remote_address', None)
        uid = self.chat_server.handle_connect(websocket, addr)

        try:
            async for data in websocket:
                try:
                    await self.chat_server.handle_frame(uid, data)
                except Exception as e:
                    # One bad event never takes the connection down
                    logger.error(f"Error processing message from uid={uid}: {e!r}")
        except ConnectionClosed as e:
            logger.debug(f"Connection uid={uid} closed: {e}")
        except asyncio.CancelledError:
            logger.info(f"Connection cancelled for uid={uid}")
            raise
        finally:
            await self.chat_server.handle_disconnect(uid)

    async def start(self):
        """Start listening. Returns once the socket is bound."""
        self._server = await websockets.serve(
            self.handle_client,
            self.config.host,
            self.config.port,
            max_size=self.config.max_frame_size,
        )
        addr = ', '.join(str(sock.getsockname()) for sock in self._server.sockets)
        logger.info(f"WebSocket server listening on {addr}")
        return self._server

    @property
    def port(self) -> Optional[int]:
        """Bound port (useful when configured with port 0)."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def stop(self):
        """Stop accepting, close live connections, then flush and close the store."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self.store.close()
        logger.info("Server stopped")

    async def serve_forever(self):
        """Run until SIGINT/SIGTERM, then shut down cleanly."""
        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform; KeyboardInterrupt still works
                pass

        await self.start()
        try:
            await stop_event.wait()
            logger.info("Server shutting down...")
        finally:
            await self.stop()
