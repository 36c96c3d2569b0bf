"""
Chat module for server-side messaging functionality.

Handles:
- Connection registry and display names
- Event dispatch and message broadcasting
- History snapshots and pagination replies
"""
