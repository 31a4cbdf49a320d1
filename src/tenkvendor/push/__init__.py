"""Web Push — the fallback channel for customers without an open socket.

Browsers register a PushSubscription per device; the notifier fans a
{title, body, url} payload out to them and forgets any endpoint the push
service reports as gone.
"""
