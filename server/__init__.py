"""
Server package for the Group Chat Relay.

This package contains all server-side functionality including:
- WebSocket connection handling
- Join/leave announcements and message fan-out
- Message history storage and pagination
- Configuration and utilities
"""
