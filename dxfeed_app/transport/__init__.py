"""
Transport module.

Abstract send/close capability consumed by the protocol core, and the
WebSocket implementation that owns connection and TLS setup.
"""
