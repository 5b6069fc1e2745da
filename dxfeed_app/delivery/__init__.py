"""
Quote delivery module.

Caller-facing sinks for decoded quotes: in-memory collection and stdout.
"""
