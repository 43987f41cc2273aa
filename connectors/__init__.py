"""
connectors — OAuth token refresh for external services.

Provides:
  • one connector per provider (refresh token → access token exchange)
  • per-provider connection stores over SQLAlchemy
  • the ordered service registry the refresh worker sweeps
  • ad-hoc "give me a valid token" lookup for data-fetching code

Each provider is a subclass of BaseConnector.
"""
