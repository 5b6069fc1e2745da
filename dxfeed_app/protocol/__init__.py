"""
Feed protocol core.

Message codec, compact quote decoder, subscription tracker and the dxLink
session state machine that binds them:
CONNECTING → AWAITING_AUTH_STATE → AUTHENTICATING → AWAITING_CHANNEL →
CHANNEL_OPEN → AWAITING_FEED_CONFIG → SUBSCRIBED → COMPLETE | FAILED.
"""
