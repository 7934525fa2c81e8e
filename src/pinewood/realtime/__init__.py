"""Real-time infrastructure — session registry, notifier, WebSocket.

Learn: Updates flow through three pieces:
1. Handlers → MutationNotifier.notify() after a successful write
2. Notifier → SessionRegistry scan → per-session outbox queue
3. WebSocket writer task → drains the outbox to the client

With Redis available, notifications are also relayed to other processes.
"""
