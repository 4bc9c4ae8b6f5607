"""rotating-tls — TLS credentials that refresh themselves.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import rotating_tls
>>> rotating_tls.__version__
'0.1.0'

Quick start
-----------
::

    from rotating_tls import PathLoader, RotatingCredential

    loader = PathLoader("ca.pem", "server.pem", "server.key")
    with RotatingCredential(loader, interval=300) as credential:
        context = credential.config().server_context()
        ...
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Credential types
# ------------------------------------------------------------------
from rotating_tls.certificates.leaf import LeafCertificate
from rotating_tls.certificates.pool import CertPool

# ------------------------------------------------------------------
# Loading
# ------------------------------------------------------------------
from rotating_tls.context import LoadContext
from rotating_tls.loader.base import Loader
from rotating_tls.loader.path import PathLoader

# ------------------------------------------------------------------
# Rotation engine
# ------------------------------------------------------------------
from rotating_tls.credential import RotatingCredential
from rotating_tls.provider import CertificateProvider, CredentialSnapshot
from rotating_tls.settings import CredentialSettings
from rotating_tls.tls import TLSConfig

# ------------------------------------------------------------------
# Errors
# ------------------------------------------------------------------
from rotating_tls.errors import (
    CertificateParseError,
    CertificateUnavailableError,
    ConfigurationError,
    InvalidIntervalError,
    LoadCancelledError,
    LoaderError,
    RefreshFailedError,
    RootCAUnavailableError,
    TLSCredentialError,
)

__all__ = [
    # version
    "__version__",
    # credential types
    "CertPool",
    "LeafCertificate",
    # loading
    "LoadContext",
    "Loader",
    "PathLoader",
    # rotation engine
    "CertificateProvider",
    "CredentialSettings",
    "CredentialSnapshot",
    "RotatingCredential",
    "TLSConfig",
    # errors
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
