"""
Storage module for server-side message persistence.

Handles:
- Durable append-only message log (SQLite)
- Recent-history and cursor-based pagination queries
- Schema evolution for databases created by older versions
"""
