"""CertificateProvider — the lock-protected certificate cache.

The provider is the only shared mutable state in a rotating credential.
The refresh thread is its only writer; handshake callbacks are its readers.
The certificate and the last refresh error always change together, so a
reader sees either the pair before an update or the pair after it.
"""
from __future__ import annotations

import threading
from typing import NamedTuple, Optional

from rotating_tls.certificates.leaf import LeafCertificate
from rotating_tls.errors import RefreshFailedError


class CredentialSnapshot(NamedTuple):
    """The (certificate, error) pair as observed at one instant."""

    certificate: LeafCertificate
    error: Optional[RefreshFailedError]


class CertificateProvider:
    """Holds the current leaf certificate and the last refresh error.

    Parameters
    ----------
    certificate:
        The initially loaded certificate. The provider never holds None.
    """

    def __init__(self, certificate: LeafCertificate) -> None:
        self._lock = threading.Lock()
        self._state = CredentialSnapshot(certificate=certificate, error=None)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def snapshot(self) -> CredentialSnapshot:
        """Return the current (certificate, error) pair."""
        with self._lock:
            return self._state

    def get_certificate(self) -> LeafCertificate:
        """Return the certificate to present on a handshake.

        Raises
        ------
        RefreshFailedError
            If the most recent refresh failed. The cached certificate is not
            served in that case. Each call raises a new instance chained
            to the loader error; :attr:`last_error` holds the recorded one.
        """
        certificate, error = self.snapshot()
        if error is not None:
            raise RefreshFailedError(str(error)) from error.__cause__
        return certificate

    @property
    def certificate(self) -> LeafCertificate:
        """The cached certificate, regardless of any refresh error."""
        return self.snapshot().certificate

    @property
    def last_error(self) -> Optional[RefreshFailedError]:
        return self.snapshot().error

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def update(self, certificate: LeafCertificate) -> None:
        """Replace the cached certificate and clear any refresh error."""
        with self._lock:
            self._state = CredentialSnapshot(certificate=certificate, error=None)

    def fail(self, error: RefreshFailedError) -> None:
        """Record a refresh failure, keeping the cached certificate."""
        with self._lock:
            self._state = CredentialSnapshot(certificate=self._state.certificate, error=error)
