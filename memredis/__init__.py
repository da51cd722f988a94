"""In-memory Redis-like data store for tests: direct access, set and sorted set commands, transactions."""

__version__ = "0.1.0"