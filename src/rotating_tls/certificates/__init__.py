"""Credential types handed between loaders and the TLS layer.

Provides the Root CA pool and the leaf certificate/key pair, both parsed
with the ``cryptography`` package.
"""
from __future__ import annotations

from rotating_tls.certificates.leaf import LeafCertificate
from rotating_tls.certificates.pool import CertPool

__all__ = [
    "CertPool",
    "LeafCertificate",
]
