"""
Authentication module.

REST session login and quote token exchange; the resulting token is the
only thing the feed protocol core consumes.
"""
