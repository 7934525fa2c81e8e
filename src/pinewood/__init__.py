"""Pinewood — derby event management API.

HTTP API for events, cars, results, photo check-in and voting, plus a
WebSocket push layer that streams table changes to subscribed clients.
"""

__version__ = "0.1.0"
