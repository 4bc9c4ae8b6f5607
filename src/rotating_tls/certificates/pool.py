"""CertPool — an immutable set of trusted Root CA certificates."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator

from cryptography import x509
from cryptography.hazmat.primitives import serialization

logger = logging.getLogger(__name__)

_PEM_CERTIFICATE = re.compile(
    rb"-----BEGIN CERTIFICATE-----\r?\n.+?\r?\n-----END CERTIFICATE-----",
    re.DOTALL,
)


@dataclass(frozen=True)
class CertPool:
    """Trust roots used to validate a peer's certificate chain.

    Parameters
    ----------
    certificates:
        The trusted CA certificates, in load order.
    """

    certificates: tuple[x509.Certificate, ...] = ()

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_pem(cls, data: bytes) -> "CertPool":
        """Build a pool from every ``CERTIFICATE`` PEM block in *data*.

        Blocks of other types are ignored, and certificate blocks that fail
        to parse are skipped rather than failing the whole bundle. The
        result may therefore be empty.

        Parameters
        ----------
        data:
            PEM-encoded bundle, typically the contents of a CA file.

        Returns
        -------
        CertPool
            Pool holding every certificate that parsed.
        """
        certificates: list[x509.Certificate] = []
        for index, match in enumerate(_PEM_CERTIFICATE.finditer(data)):
            try:
                certificates.append(x509.load_pem_x509_certificate(match.group(0)))
            except ValueError as exc:
                logger.debug("Skipping unparseable certificate block %d: %s", index, exc)
        return cls(certificates=tuple(certificates))

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def to_pem(self) -> bytes:
        """Return the pool re-encoded as a PEM bundle."""
        return b"".join(
            cert.public_bytes(serialization.Encoding.PEM) for cert in self.certificates
        )

    def subjects(self) -> list[str]:
        """Return the RFC 4514 subject of every certificate in the pool."""
        return [cert.subject.rfc4514_string() for cert in self.certificates]

    def __len__(self) -> int:
        return len(self.certificates)

    def __iter__(self) -> Iterator[x509.Certificate]:
        return iter(self.certificates)

    def __contains__(self, cert: object) -> bool:
        return cert in self.certificates
