"""Exception hierarchy for rotating-tls.

Construction failures (``RootCAUnavailableError``,
``CertificateUnavailableError``) are raised synchronously to the caller of
:class:`~rotating_tls.credential.RotatingCredential`. ``RefreshFailedError``
is never raised by the refresh thread itself; it is recorded and surfaced
through the certificate-retrieval callback on the next handshake.
"""
from __future__ import annotations


class TLSCredentialError(Exception):
    """Base class for all rotating-tls errors."""


class ConfigurationError(TLSCredentialError, ValueError):
    """Raised when a credential is configured with invalid arguments."""


class InvalidIntervalError(ConfigurationError):
    """Raised when the refresh interval is zero or negative."""


class RootCAUnavailableError(TLSCredentialError):
    """Raised when the Root CA pool cannot be loaded during construction."""


class CertificateUnavailableError(TLSCredentialError):
    """Raised when the initial leaf certificate cannot be loaded."""


class RefreshFailedError(TLSCredentialError):
    """Recorded when a background refresh of the leaf certificate fails."""


class LoaderError(TLSCredentialError):
    """Raised by a loader when credential material cannot be read or parsed."""


class CertificateParseError(TLSCredentialError, ValueError):
    """Raised when PEM data does not yield a usable certificate or key."""


class LoadCancelledError(TLSCredentialError):
    """Raised by a loader that observes a cancelled or expired context."""


__all__ = [
    "CertificateParseError",
    "CertificateUnavailableError",
    "ConfigurationError",
    "InvalidIntervalError",
    "LoadCancelledError",
    "LoaderError",
    "RefreshFailedError",
    "RootCAUnavailableError",
    "TLSCredentialError",
]
