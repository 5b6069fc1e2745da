"""
dxfeed_app - dxLink Quote Snapshot Client

Streams real-time quotes from the dxFeed (tastytrade) WebSocket gateway.
Negotiates the dxLink handshake, subscribes to a set of instruments and
decodes COMPACT quote frames until every instrument has been seen.
"""

__version__ = "0.1.0"
__author__ = "dxfeed_app Team"
