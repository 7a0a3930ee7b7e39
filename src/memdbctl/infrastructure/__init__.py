"""Infrastructure layer: SQLite engines, the database registry, catalog and accessor.

This layer depends on stdlib and third-party libs (SQLAlchemy, NetworkX).
It must never import from services, commands, output, or mcp.
"""
