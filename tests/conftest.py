"""Shared fixtures: throwaway certificate authorities and scripted loaders."""
from __future__ import annotations

import datetime
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Optional, Union

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from rotating_tls.certificates.leaf import LeafCertificate
from rotating_tls.certificates.pool import CertPool
from rotating_tls.context import LoadContext
from rotating_tls.loader.base import Loader


# ---------------------------------------------------------------------------
# Test certificate authority
# ---------------------------------------------------------------------------


class Authority:
    """A self-signed EC CA that issues leaf certificates for ``localhost``."""

    def __init__(self, common_name: str = "rotating-tls test CA") -> None:
        self.key = ec.generate_private_key(ec.SECP256R1())
        now = datetime.datetime.now(datetime.timezone.utc)
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
        self.cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(self.key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(minutes=5))
            .not_valid_after(now + datetime.timedelta(days=30))
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    key_encipherment=False,
                    content_commitment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(self.key.public_key()),
                critical=False,
            )
            .sign(self.key, hashes.SHA256())
        )

    def cert_pem(self) -> bytes:
        return self.cert.public_bytes(serialization.Encoding.PEM)

    def pool(self) -> CertPool:
        return CertPool(certificates=(self.cert,))

    def issue_pem(
        self,
        common_name: str = "localhost",
        key_type: str = "ec",
        key_format: serialization.PrivateFormat = serialization.PrivateFormat.PKCS8,
        validity_days: int = 1,
    ) -> tuple[bytes, bytes]:
        """Issue a leaf and return ``(cert_pem, key_pem)``."""
        if key_type == "rsa":
            key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        else:
            key = ec.generate_private_key(ec.SECP256R1())

        now = datetime.datetime.now(datetime.timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)]))
            .issuer_name(self.cert.subject)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now - datetime.timedelta(minutes=5))
            .not_valid_after(now + datetime.timedelta(days=validity_days))
            .add_extension(x509.SubjectAlternativeName([x509.DNSName("localhost")]), critical=False)
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.ExtendedKeyUsage(
                    [ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]
                ),
                critical=False,
            )
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(self.key.public_key()),
                critical=False,
            )
            .sign(self.key, hashes.SHA256())
        )
        key_pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=key_format,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return cert.public_bytes(serialization.Encoding.PEM), key_pem

    def issue(self, common_name: str = "localhost", **kwargs: object) -> LeafCertificate:
        cert_pem, key_pem = self.issue_pem(common_name, **kwargs)  # type: ignore[arg-type]
        return LeafCertificate.from_pem(cert_pem, key_pem)

    def write(self, directory: Path, common_name: str = "localhost") -> tuple[Path, Path, Path]:
        """Write CA bundle, certificate and key files; return their paths."""
        directory.mkdir(parents=True, exist_ok=True)
        ca_path = directory / "ca.pem"
        cert_path = directory / "cert.pem"
        key_path = directory / "key.pem"
        cert_pem, key_pem = self.issue_pem(common_name)
        ca_path.write_bytes(self.cert_pem())
        cert_path.write_bytes(cert_pem)
        key_path.write_bytes(key_pem)
        return ca_path, cert_path, key_path


@pytest.fixture(scope="session")
def authority() -> Authority:
    return Authority()


# ---------------------------------------------------------------------------
# Scripted loaders
# ---------------------------------------------------------------------------

Outcome = Union[LeafCertificate, BaseException]


class ScriptedLoader(Loader):
    """Loader that replays a fixed script of outcomes.

    Each :meth:`certificate` call consumes the next outcome; the last
    outcome repeats once the script is exhausted.
    """

    def __init__(
        self,
        pool: CertPool,
        outcomes: list[Outcome],
        root_error: Optional[BaseException] = None,
    ) -> None:
        self._pool = pool
        self._outcomes = list(outcomes)
        self._root_error = root_error
        self._lock = threading.Lock()
        self.root_ca_calls = 0
        self.certificate_calls = 0
        self.contexts: list[LoadContext] = []

    def root_ca(self, ctx: LoadContext) -> CertPool:
        with self._lock:
            self.root_ca_calls += 1
            self.contexts.append(ctx)
        if self._root_error is not None:
            raise self._root_error
        return self._pool

    def certificate(self, ctx: LoadContext) -> LeafCertificate:
        with self._lock:
            index = min(self.certificate_calls, len(self._outcomes) - 1)
            self.certificate_calls += 1
            self.contexts.append(ctx)
        outcome = self._outcomes[index]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class GatedLoader(Loader):
    """Loader whose refreshes block until the test feeds an outcome.

    The first :meth:`certificate` call returns *initial* immediately. Later
    calls wait for :meth:`feed` while honoring context cancellation.
    """

    def __init__(self, pool: CertPool, initial: LeafCertificate) -> None:
        self._pool = pool
        self._initial = initial
        self._outcomes: "queue.Queue[Outcome]" = queue.Queue()
        self._lock = threading.Lock()
        self.certificate_calls = 0
        self.contexts: list[LoadContext] = []

    def feed(self, outcome: Outcome) -> None:
        self._outcomes.put(outcome)

    def root_ca(self, ctx: LoadContext) -> CertPool:
        return self._pool

    def certificate(self, ctx: LoadContext) -> LeafCertificate:
        with self._lock:
            self.certificate_calls += 1
            first = self.certificate_calls == 1
            self.contexts.append(ctx)
        if first:
            return self._initial
        while True:
            try:
                outcome = self._outcomes.get(timeout=0.01)
            except queue.Empty:
                ctx.raise_if_cancelled()
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll *predicate* until it returns True or *timeout* elapses."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture()
def scripted_loader() -> type[ScriptedLoader]:
    return ScriptedLoader


@pytest.fixture()
def gated_loader() -> type[GatedLoader]:
    return GatedLoader


@pytest.fixture(name="wait_for")
def wait_for_fixture() -> Callable[..., bool]:
    return wait_for


@pytest.fixture()
def make_authority() -> type[Authority]:
    return Authority
