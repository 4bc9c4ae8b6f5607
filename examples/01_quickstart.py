#!/usr/bin/env python3
"""Example: Quickstart

Serves TLS with a certificate that is reissued every second by an
in-memory loader, and shows a client seeing the new certificate on each
connection without the server being restarted.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install rotating-tls
"""
from __future__ import annotations

import datetime
import socket
import threading
import time

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

import rotating_tls
from rotating_tls import CertPool, LeafCertificate, LoadContext, Loader, RotatingCredential


class IssuingLoader(Loader):
    """Issues a fresh short-lived ``localhost`` certificate on every call."""

    def __init__(self) -> None:
        self._key = ec.generate_private_key(ec.SECP256R1())
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "quickstart CA")])
        now = datetime.datetime.now(datetime.timezone.utc)
        self._ca = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(self._key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(minutes=1))
            .not_valid_after(now + datetime.timedelta(days=1))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .sign(self._key, hashes.SHA256())
        )

    def root_ca(self, ctx: LoadContext) -> CertPool:
        return CertPool(certificates=(self._ca,))

    def certificate(self, ctx: LoadContext) -> LeafCertificate:
        ctx.raise_if_cancelled()
        key = ec.generate_private_key(ec.SECP256R1())
        now = datetime.datetime.now(datetime.timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")]))
            .issuer_name(self._ca.subject)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(minutes=1))
            .not_valid_after(now + datetime.timedelta(minutes=5))
            .add_extension(x509.SubjectAlternativeName([x509.DNSName("localhost")]), critical=False)
            .sign(self._key, hashes.SHA256())
        )
        return LeafCertificate(chain=(cert,), private_key=key)


def serve(listener: socket.socket, credential: RotatingCredential) -> None:
    context = credential.config().server_context()
    while credential.running:
        try:
            conn, _ = listener.accept()
        except OSError:
            return
        with context.wrap_socket(conn, server_side=True) as tls:
            tls.sendall(b"hello")


def main() -> None:
    print(f"rotating-tls version: {rotating_tls.__version__}")

    # Step 1: Load credentials and start rotating them every second
    credential = RotatingCredential(IssuingLoader(), interval=1.0, require_client_certificate=False)
    config = credential.config()

    # Step 2: Serve TLS with the single server context
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]
    threading.Thread(target=serve, args=(listener, credential), daemon=True).start()

    # Step 3: Connect a few times; the server presents each new certificate
    client_context = config.client_context()
    for attempt in range(3):
        with socket.create_connection(("127.0.0.1", port)) as raw:
            with client_context.wrap_socket(raw, server_hostname="localhost") as tls:
                der = tls.getpeercert(binary_form=True)
                serial = x509.load_der_x509_certificate(der).serial_number
                print(f"Connection {attempt + 1}: server serial={serial} data={tls.recv(5)!r}")
        time.sleep(1.2)

    # Step 4: Stop refreshing
    credential.stop()
    listener.close()
    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
