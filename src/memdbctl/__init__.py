"""memdbctl: named SQLite databases and a knowledge-graph memory store."""

__version__ = "0.1.0"
