"""
connectors — outbound access to home-automation hubs.

Provides:
  • OAuth2 auth-URL generation, code exchange and token refresh
  • Entity-state listing and service calls (e.g. ``lock.open``)
  • Fernet encryption of hub secrets at rest

Each hub backend (Home Assistant, …) is a subclass of BaseHubConnector.
"""
