"""Rate limiting adapters.

This package provides a small abstraction layer so the HTTP layer depends on
an interface while the in-memory sharded tracker does the counting.
"""
