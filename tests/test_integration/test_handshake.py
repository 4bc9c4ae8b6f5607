"""End-to-end mutual-TLS handshakes across a certificate rotation."""
from __future__ import annotations

import socket
import ssl
import threading
from dataclasses import dataclass, field
from typing import Optional

import pytest
from cryptography import x509

from rotating_tls.credential import RotatingCredential
from rotating_tls.provider import CertificateProvider
from rotating_tls.tls import TLSConfig


@dataclass
class HandshakeResult:
    server_serial: Optional[int] = None
    client_serial: Optional[int] = None
    payload: bytes = b""
    errors: list[BaseException] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and self.payload == b"ok"


def _serial(der: Optional[bytes]) -> Optional[int]:
    return x509.load_der_x509_certificate(der).serial_number if der else None


def handshake(server_context: ssl.SSLContext, client_context: ssl.SSLContext) -> HandshakeResult:
    """Run one TLS connection over a socket pair and report what each side saw."""
    result = HandshakeResult()
    server_sock, client_sock = socket.socketpair()
    server_sock.settimeout(5)
    client_sock.settimeout(5)

    def serve() -> None:
        try:
            with server_context.wrap_socket(server_sock, server_side=True) as tls:
                result.client_serial = _serial(tls.getpeercert(binary_form=True))
                tls.sendall(b"ok")
        except (ssl.SSLError, OSError) as exc:
            result.errors.append(exc)

    server = threading.Thread(target=serve)
    server.start()
    try:
        with client_context.wrap_socket(client_sock, server_hostname="localhost") as tls:
            result.server_serial = _serial(tls.getpeercert(binary_form=True))
            result.payload = tls.recv(2)
    except (ssl.SSLError, OSError) as exc:
        result.errors.append(exc)
    finally:
        server.join(timeout=5)
    return result


@pytest.fixture(scope="module")
def cert_a(authority):
    return authority.issue("server-a")


@pytest.fixture(scope="module")
def cert_b(authority):
    return authority.issue("server-b")


@pytest.fixture(scope="module")
def peer_config(authority) -> TLSConfig:
    """A static configuration for the other end of the connection."""
    return TLSConfig(authority.pool(), CertificateProvider(authority.issue("peer")))


class TestServerRotation:
    def test_server_presents_rotated_certificate(
        self, authority, gated_loader, cert_a, cert_b, peer_config, wait_for
    ) -> None:
        loader = gated_loader(authority.pool(), cert_a)
        with RotatingCredential(loader, interval=0.01) as credential:
            server_context = credential.config().server_context()

            first = handshake(server_context, peer_config.client_context())
            assert first.ok, first.errors
            assert first.server_serial == cert_a.serial_number
            assert first.client_serial == peer_config.get_certificate().serial_number

            loader.feed(cert_b)
            assert wait_for(lambda: credential.certificate is cert_b)

            assert credential.config().server_context() is server_context
            second = handshake(server_context, peer_config.client_context())
            assert second.ok, second.errors
            assert second.server_serial == cert_b.serial_number

    def test_handshake_fails_closed_until_refresh_recovers(
        self, authority, gated_loader, cert_a, cert_b, peer_config, wait_for
    ) -> None:
        loader = gated_loader(authority.pool(), cert_a)
        with RotatingCredential(loader, interval=0.01) as credential:
            server_context = credential.config().server_context()

            loader.feed(OSError("credential service unavailable"))
            assert wait_for(lambda: credential.last_error is not None)
            failed = handshake(server_context, peer_config.client_context())
            assert not failed.ok
            assert any(isinstance(exc, ssl.SSLError) for exc in failed.errors)

            loader.feed(cert_b)
            assert wait_for(lambda: credential.last_error is None)
            recovered = handshake(server_context, peer_config.client_context())
            assert recovered.ok, recovered.errors
            assert recovered.server_serial == cert_b.serial_number


class TestClientRotation:
    def test_client_presents_rotated_certificate(
        self, authority, gated_loader, cert_a, cert_b, peer_config, wait_for
    ) -> None:
        server_context = peer_config.server_context()
        loader = gated_loader(authority.pool(), cert_a)
        with RotatingCredential(loader, interval=0.01) as credential:
            config = credential.config()

            first = handshake(server_context, config.client_context())
            assert first.ok, first.errors
            assert first.client_serial == cert_a.serial_number

            loader.feed(cert_b)
            assert wait_for(lambda: credential.certificate is cert_b)
            second = handshake(server_context, config.client_context())
            assert second.ok, second.errors
            assert second.client_serial == cert_b.serial_number
