"""Exception taxonomy.

A rejected code is not an error: ``CodeEngine.verify`` returns a
``VerificationResult`` with ``accepted=False`` for that case.
"""

from __future__ import annotations


class AttendCodeError(Exception):
    """Base class for all AttendCode failures."""

    retriable = False


class AuthenticationError(AttendCodeError):
    """Credential missing, expired or invalid. Re-authenticate before retrying."""


class AuthorizationError(AttendCodeError):
    """Caller is authenticated but its role may not perform the operation."""


class NetworkError(AttendCodeError):
    """Secret fetch failed in transit or the backend answered with a 5xx."""

    retriable = True


class SecretFetchTimeout(NetworkError, TimeoutError):
    """Secret fetch did not complete within the configured timeout."""


class ConfigurationError(AttendCodeError, ValueError):
    """Engine parameters out of the supported range."""


class SecretFormatError(AttendCodeError, ValueError):
    """Secret is not valid base32."""


class ScopeNotProvisioned(AttendCodeError, LookupError):
    """No secret has been issued for the scope yet."""
