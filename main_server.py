#!/usr/bin/env python3
"""
Group Chat Relay Server - Main Entry Point

Unified entry point for the relay server:
- WebSocket transport (one persistent connection per client)
- Join/leave announcements and message fan-out
- SQLite-backed message history with pagination

Usage:
    python main_server.py

Optional arguments:
    --host HOST           Bind address (default: 0.0.0.0)
    --port PORT           WebSocket port (default: 9000)
    --db-path PATH        SQLite message database (default: chat.db)
    --log-dir DIR         Directory for the chat audit log (default: logs)
"""

if __name__ == "__main__":
    import asyncio
    import argparse

    from common.constants import DEFAULT_SERVER_HOST, DEFAULT_PORT, DEFAULT_DB_PATH, LOG_DIR
    from server.main_server import ChatRelayServer
    from server.utils.config import ServerConfig
    from server.utils.logger import logger

    # Parse command line arguments
    parser = argparse.ArgumentParser(description='Group Chat Relay Server')
    parser.add_argument('--host', type=str, default=DEFAULT_SERVER_HOST,
                       help='Host to bind to (default: 0.0.0.0)')
    parser.add_argument('--port', type=int, default=DEFAULT_PORT,
                       help='WebSocket port (default: 9000)')
    parser.add_argument('--db-path', type=str, default=DEFAULT_DB_PATH,
                       help='SQLite message database (default: chat.db)')
    parser.add_argument('--log-dir', type=str, default=LOG_DIR,
                       help='Directory for the chat audit log (default: logs)')

    args = parser.parse_args()

    logger.set_logs_dir(args.log_dir)
    config = ServerConfig(host=args.host, port=args.port, db_path=args.db_path, logs_dir=args.log_dir)

    server = None
    try:
        server = ChatRelayServer(config=config)
        logger.info(f"Server binding to {args.host}:{args.port}")
        asyncio.run(server.serve_forever())
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
        if server:
            server.store.close()
    except Exception as e:
        logger.log_error("server", e)
        if server:
            server.store.close()
        raise
