"""Loader — the contract for fetching TLS credentials.

A Loader supplies the Root CA pool and the leaf certificate for a single
application. It can back both client and server credentials.

A Loader cannot serve different certificates depending on the SNI sent by
a client; it is intended for processes that present one certificate for all
connections but must reload it on an interval.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from rotating_tls.certificates.leaf import LeafCertificate
from rotating_tls.certificates.pool import CertPool
from rotating_tls.context import LoadContext


class Loader(ABC):
    """Abstract base class for credential sources.

    Implementations may read from disk, query a credential service, or
    anything else. Implementations performing blocking I/O must honor
    cancellation of the supplied context; :meth:`RotatingCredential.stop`
    waits for an in-flight :meth:`certificate` call to return.
    """

    @abstractmethod
    def root_ca(self, ctx: LoadContext) -> CertPool:
        """Load the Root CA pool used to validate peer certificates.

        Called exactly once, when the credential is constructed, and never
        on the refresh interval.

        Parameters
        ----------
        ctx:
            Cancellation and deadline token for this call.

        Returns
        -------
        CertPool
            The trusted roots.
        """

    @abstractmethod
    def certificate(self, ctx: LoadContext) -> LeafCertificate:
        """Load the current leaf certificate and its private key.

        Called once when the credential is constructed and then again every
        refresh interval.

        Parameters
        ----------
        ctx:
            Cancellation and deadline token for this call.

        Returns
        -------
        LeafCertificate
            Parsed certificate chain and key, ready for a handshake.
        """
