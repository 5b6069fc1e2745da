"""
Logging configuration and utilities for the dxfeed_app client.
"""
from .config import configure_logging, get_protocol_logger, log_state_transition

__all__ = ["configure_logging", "get_protocol_logger", "log_state_transition"]
