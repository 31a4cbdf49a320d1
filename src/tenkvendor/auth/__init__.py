"""Authentication shared by the REST API and the WebSocket gateway.

Tokens are issued by the storefront's auth routes (out of this package).
Both transports resolve a bearer JWT to the same Principal through
CredentialVerifier, so an admin on the dashboard and an admin socket are
checked identically.
"""
