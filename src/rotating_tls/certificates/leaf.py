"""LeafCertificate — the end-entity certificate chain and its private key.

A LeafCertificate is what this process presents during a handshake. It is
immutable: a refresh replaces the whole object rather than editing it.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from rotating_tls.errors import CertificateParseError


@dataclass(frozen=True, eq=False)
class LeafCertificate:
    """A parsed certificate chain paired with the leaf's private key.

    Parameters
    ----------
    chain:
        Certificates in presentation order; the leaf comes first and any
        intermediates follow.
    private_key:
        Private key matching the leaf certificate's public key.
    """

    chain: tuple[x509.Certificate, ...]
    private_key: PrivateKeyTypes

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_pem(
        cls,
        cert_pem: bytes,
        key_pem: bytes,
        password: bytes | None = None,
    ) -> "LeafCertificate":
        """Parse a PEM certificate chain and private key into a matched pair.

        The key may be PKCS#8, PKCS#1 (RSA) or SEC1 (EC).

        Parameters
        ----------
        cert_pem:
            PEM-encoded certificate chain, leaf first.
        key_pem:
            PEM-encoded private key.
        password:
            Password for an encrypted private key, if any.

        Returns
        -------
        LeafCertificate
            The parsed pair.

        Raises
        ------
        CertificateParseError
            If no certificate is found, the key does not parse, or the key
            does not match the leaf certificate.
        """
        try:
            chain = tuple(x509.load_pem_x509_certificates(cert_pem))
        except ValueError as exc:
            raise CertificateParseError(f"failed to parse certificate: {exc}") from exc
        if not chain:
            raise CertificateParseError("no certificate found in certificate input")

        try:
            private_key = serialization.load_pem_private_key(key_pem, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise CertificateParseError(f"failed to parse private key: {exc}") from exc

        if _public_der(private_key.public_key()) != _public_der(chain[0].public_key()):
            raise CertificateParseError("private key does not match certificate public key")

        return cls(chain=chain, private_key=private_key)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def certificate(self) -> x509.Certificate:
        """The leaf certificate itself."""
        return self.chain[0]

    @property
    def serial_number(self) -> int:
        return self.certificate.serial_number

    @property
    def subject(self) -> str:
        return self.certificate.subject.rfc4514_string()

    @property
    def not_before(self) -> datetime.datetime:
        return self.certificate.not_valid_before_utc

    @property
    def not_after(self) -> datetime.datetime:
        return self.certificate.not_valid_after_utc

    @property
    def fingerprint(self) -> str:
        """Hex SHA-256 fingerprint of the leaf certificate."""
        return self.certificate.fingerprint(hashes.SHA256()).hex()

    def is_expired(self) -> bool:
        """Return True if the leaf certificate has passed its not-after date."""
        return datetime.datetime.now(datetime.timezone.utc) > self.not_after

    def days_remaining(self) -> int:
        """Return the number of whole days until expiry (negative if expired)."""
        delta = self.not_after - datetime.datetime.now(datetime.timezone.utc)
        return delta.days

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def chain_pem(self) -> bytes:
        """Return the certificate chain as PEM bytes, leaf first."""
        return b"".join(
            cert.public_bytes(serialization.Encoding.PEM) for cert in self.chain
        )

    def key_pem(self) -> bytes:
        """Return the private key as unencrypted PKCS#8 PEM bytes."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def __repr__(self) -> str:
        return f"LeafCertificate(subject={self.subject!r}, serial={self.serial_number})"


def _public_der(public_key: object) -> bytes:
    return public_key.public_bytes(  # type: ignore[attr-defined]
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
