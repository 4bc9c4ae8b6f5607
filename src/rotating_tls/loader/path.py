"""PathLoader — reads PEM-encoded credentials from fixed filesystem paths.

Each call re-reads its files in full, so replacing the files on disk is
enough for the next refresh to pick up a reissued certificate.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from rotating_tls.certificates.leaf import LeafCertificate
from rotating_tls.certificates.pool import CertPool
from rotating_tls.context import LoadContext
from rotating_tls.errors import CertificateParseError, LoaderError
from rotating_tls.loader.base import Loader

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PathLoader(Loader):
    """Loader backed by a CA bundle, a certificate file and a key file.

    Parameters
    ----------
    ca_path:
        PEM bundle of trusted Root CA certificates.
    cert_path:
        PEM certificate chain, leaf first.
    key_path:
        PEM private key matching the leaf certificate.
    """

    def __init__(self, ca_path: PathLike, cert_path: PathLike, key_path: PathLike) -> None:
        self._ca_path = Path(ca_path)
        self._cert_path = Path(cert_path)
        self._key_path = Path(key_path)

    @property
    def ca_path(self) -> Path:
        return self._ca_path

    @property
    def cert_path(self) -> Path:
        return self._cert_path

    @property
    def key_path(self) -> Path:
        return self._key_path

    # ------------------------------------------------------------------
    # Loader interface
    # ------------------------------------------------------------------

    def root_ca(self, ctx: LoadContext) -> CertPool:
        """Read the CA bundle and parse every certificate in it.

        Certificate blocks that fail to parse are skipped.

        Raises
        ------
        LoaderError
            If the CA file cannot be read.
        """
        ctx.raise_if_cancelled()
        try:
            data = self._ca_path.read_bytes()
        except OSError as exc:
            raise LoaderError(f"failed to read ca certificate {str(self._ca_path)!r}: {exc}") from exc
        pool = CertPool.from_pem(data)
        logger.debug("Read %d root CA certificate(s) from %s", len(pool), self._ca_path)
        return pool

    def certificate(self, ctx: LoadContext) -> LeafCertificate:
        """Read the certificate and key files and pair them.

        Raises
        ------
        LoaderError
            If either file cannot be read or the pair does not parse.
        """
        ctx.raise_if_cancelled()
        try:
            cert_pem = self._cert_path.read_bytes()
            key_pem = self._key_path.read_bytes()
        except OSError as exc:
            raise LoaderError(f"failed to load certificate and key: {exc}") from exc
        try:
            return LeafCertificate.from_pem(cert_pem, key_pem)
        except CertificateParseError as exc:
            raise LoaderError(f"failed to load certificate and key: {exc}") from exc

    def __repr__(self) -> str:
        return (
            f"PathLoader(ca_path={str(self._ca_path)!r}, "
            f"cert_path={str(self._cert_path)!r}, key_path={str(self._key_path)!r})"
        )
