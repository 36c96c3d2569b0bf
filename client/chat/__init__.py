"""
Chat module for client-side messaging functionality.

Handles:
- Sending join, chat and image messages
- Receiving relayed frames
- History pagination requests
"""
