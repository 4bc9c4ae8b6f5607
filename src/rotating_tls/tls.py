"""TLSConfig — binds a rotating certificate into Python's ``ssl`` module.

The configuration is built once per credential and never rebuilt. Its only
dynamic behavior is :meth:`TLSConfig.get_certificate`, which reads the
provider at handshake time:

* servers use :meth:`TLSConfig.server_context`, a single ``SSLContext``
  whose ``sni_callback`` runs on every ClientHello and switches the
  connection to a context carrying the current certificate;
* clients call :meth:`TLSConfig.client_context` for each connection
  attempt and receive a context presenting the current certificate.

When the last refresh failed, both paths fail the handshake instead of
presenting the previously cached certificate.
"""
from __future__ import annotations

import logging
import ssl
import tempfile
import threading
from pathlib import Path
from typing import Optional, Union

from rotating_tls.certificates.leaf import LeafCertificate
from rotating_tls.certificates.pool import CertPool
from rotating_tls.errors import ConfigurationError, RefreshFailedError
from rotating_tls.provider import CertificateProvider

logger = logging.getLogger(__name__)

SSLConnection = Union[ssl.SSLSocket, ssl.SSLObject]


class TLSConfig:
    """TLS configuration around a Root CA pool and a certificate provider.

    Parameters
    ----------
    root_ca:
        Trust roots used to verify peers (servers when acting as a client,
        client certificates when acting as a server).
    provider:
        Source of the certificate presented on each handshake.
    require_client_certificate:
        When True, server contexts demand and verify a client certificate.
    minimum_version:
        Lowest TLS protocol version accepted.
    """

    def __init__(
        self,
        root_ca: CertPool,
        provider: CertificateProvider,
        *,
        require_client_certificate: bool = True,
        minimum_version: ssl.TLSVersion = ssl.TLSVersion.TLSv1_2,
    ) -> None:
        if not len(root_ca):
            raise ConfigurationError("root CA pool is empty")
        self._root_ca = root_ca
        self._provider = provider
        self._require_client_certificate = require_client_certificate
        self._minimum_version = minimum_version
        self._cadata = root_ca.to_pem().decode("ascii")

        self._lock = threading.Lock()
        self._server_context: Optional[ssl.SSLContext] = None
        self._leaf_contexts: dict[bool, tuple[LeafCertificate, ssl.SSLContext]] = {}

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def root_ca(self) -> CertPool:
        return self._root_ca

    @property
    def provider(self) -> CertificateProvider:
        return self._provider

    @property
    def require_client_certificate(self) -> bool:
        return self._require_client_certificate

    @property
    def minimum_version(self) -> ssl.TLSVersion:
        return self._minimum_version

    # ------------------------------------------------------------------
    # Certificate retrieval
    # ------------------------------------------------------------------

    def get_certificate(self) -> LeafCertificate:
        """Return the certificate to present on the handshake in progress.

        Raises
        ------
        RefreshFailedError
            If the most recent refresh failed.
        """
        return self._provider.get_certificate()

    # ------------------------------------------------------------------
    # SSL contexts
    # ------------------------------------------------------------------

    def server_context(self) -> ssl.SSLContext:
        """Return the server-side ``SSLContext``, the same object on every call."""
        with self._lock:
            if self._server_context is None:
                context = self._new_context(server_side=True)
                _load_leaf(context, self._provider.certificate)
                context.sni_callback = self._select_certificate
                self._server_context = context
            return self._server_context

    def client_context(self) -> ssl.SSLContext:
        """Return a client-side ``SSLContext`` presenting the current certificate.

        Call once per connection attempt.

        Raises
        ------
        RefreshFailedError
            If the most recent refresh failed.
        """
        return self._leaf_context(self.get_certificate(), server_side=False)

    def warm(self, certificate: LeafCertificate) -> None:
        """Rebuild every context already in use around *certificate*."""
        with self._lock:
            sides = list(self._leaf_contexts)
        for server_side in sides:
            self._leaf_context(certificate, server_side=server_side)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _select_certificate(
        self,
        connection: SSLConnection,
        server_name: Optional[str],
        context: ssl.SSLContext,
    ) -> Optional[int]:
        try:
            certificate = self.get_certificate()
        except RefreshFailedError as exc:
            logger.warning("Rejecting handshake for server name %r: %s", server_name, exc)
            return ssl.ALERT_DESCRIPTION_HANDSHAKE_FAILURE
        try:
            connection.context = self._leaf_context(certificate, server_side=True)
        except (ssl.SSLError, OSError):
            logger.exception("Failed to build TLS context for %r", certificate)
            return ssl.ALERT_DESCRIPTION_INTERNAL_ERROR
        return None

    def _leaf_context(self, certificate: LeafCertificate, server_side: bool) -> ssl.SSLContext:
        with self._lock:
            cached = self._leaf_contexts.get(server_side)
        if cached is not None and cached[0] is certificate:
            return cached[1]

        context = self._new_context(server_side=server_side)
        _load_leaf(context, certificate)
        logger.debug(
            "Built %s TLS context for %r",
            "server" if server_side else "client",
            certificate,
        )
        with self._lock:
            self._leaf_contexts[server_side] = (certificate, context)
        return context

    def _new_context(self, server_side: bool) -> ssl.SSLContext:
        if server_side:
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
            context.verify_mode = (
                ssl.CERT_REQUIRED if self._require_client_certificate else ssl.CERT_NONE
            )
        else:
            context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.minimum_version = self._minimum_version
        context.load_verify_locations(cadata=self._cadata)
        return context


def _load_leaf(context: ssl.SSLContext, certificate: LeafCertificate) -> None:
    """Load *certificate* into *context*.

    ``SSLContext.load_cert_chain`` only reads from files, so the chain and
    key pass through a private temporary directory that is removed before
    returning.
    """
    with tempfile.TemporaryDirectory(prefix="rotating-tls-") as workdir:
        cert_file = Path(workdir) / "cert.pem"
        key_file = Path(workdir) / "key.pem"
        cert_file.write_bytes(certificate.chain_pem())
        key_file.touch(mode=0o600)
        key_file.write_bytes(certificate.key_pem())
        context.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))
