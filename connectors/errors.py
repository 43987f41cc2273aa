"""
Error taxonomy for token refresh.

Adapters raise ``TransientRefreshError`` or ``TerminalRefreshError``; the
scanner raises ``ProviderScanError``; ``UnexpectedSweepError`` wraps whatever
escapes a sweep body.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ProviderErrorKind(str, Enum):
    INVALID_GRANT = "invalid_grant"
    TRANSIENT = "transient"


class ProviderError(Exception):
    """A provider's token exchange failed."""

    kind: ProviderErrorKind = ProviderErrorKind.TRANSIENT

    def __init__(self, message: str, *, provider: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class TransientRefreshError(ProviderError):
    """Network, rate-limit, outage or malformed response. Retried next sweep."""

    kind = ProviderErrorKind.TRANSIENT


class TerminalRefreshError(ProviderError):
    """The refresh token itself was rejected; a human must re-authorize."""

    kind = ProviderErrorKind.INVALID_GRANT


class ProviderScanError(Exception):
    """The connection store query for one provider failed."""

    def __init__(self, provider: str, cause: BaseException):
        super().__init__(f"Scan failed for provider '{provider}': {cause}")
        self.provider = provider
        self.cause = cause


class UnexpectedSweepError(Exception):
    """Anything uncaught inside a guarded sweep."""
