"""RotatingCredential — keeps a leaf certificate fresh for a TLS layer.

A RotatingCredential loads the Root CA pool once, loads the leaf
certificate, hands out an immutable :class:`~rotating_tls.tls.TLSConfig`
and then reloads the leaf certificate on a fixed interval from a single
background thread until :meth:`RotatingCredential.stop` is called.
Consumers never reconnect to pick up a new certificate; the next handshake
simply presents it.

A failed refresh keeps the previous certificate cached but records the
error, and every handshake fails with that error until a later refresh
succeeds.
"""
from __future__ import annotations

import datetime
import logging
import math
import ssl
import threading
from typing import Optional, Union

from rotating_tls.certificates.leaf import LeafCertificate
from rotating_tls.certificates.pool import CertPool
from rotating_tls.context import LoadContext
from rotating_tls.errors import (
    CertificateUnavailableError,
    InvalidIntervalError,
    RefreshFailedError,
    RootCAUnavailableError,
)
from rotating_tls.loader.base import Loader
from rotating_tls.provider import CertificateProvider
from rotating_tls.tls import TLSConfig

logger = logging.getLogger(__name__)

Interval = Union[float, int, datetime.timedelta]


def _interval_seconds(interval: Interval) -> float:
    if isinstance(interval, datetime.timedelta):
        seconds = interval.total_seconds()
    else:
        seconds = float(interval)
    if not seconds > 0:
        raise InvalidIntervalError(f"refresh interval must be positive, got {interval!r}")
    if not math.isfinite(seconds) or seconds > threading.TIMEOUT_MAX:
        raise InvalidIntervalError(
            f"refresh interval must be at most {threading.TIMEOUT_MAX}s, got {interval!r}"
        )
    return seconds


class RotatingCredential:
    """A Root CA pool plus a leaf certificate that is reloaded on an interval.

    Parameters
    ----------
    loader:
        Source of the Root CA pool and the leaf certificate.
    interval:
        Time between refreshes of the leaf certificate, in seconds or as a
        ``timedelta``. Must be positive.
    load_timeout:
        Optional deadline, in seconds, for each refresh's
        :meth:`Loader.certificate` call.
    require_client_certificate:
        Passed to :class:`TLSConfig`; controls client authentication on
        server contexts.
    minimum_version:
        Passed to :class:`TLSConfig`.

    Raises
    ------
    InvalidIntervalError
        If *interval* is zero or negative.
    RootCAUnavailableError
        If the Root CA pool cannot be loaded or is empty.
    CertificateUnavailableError
        If the initial leaf certificate cannot be loaded.
    """

    def __init__(
        self,
        loader: Loader,
        interval: Interval,
        *,
        load_timeout: Optional[float] = None,
        require_client_certificate: bool = True,
        minimum_version: ssl.TLSVersion = ssl.TLSVersion.TLSv1_2,
    ) -> None:
        self._interval = _interval_seconds(interval)
        self._load_timeout = load_timeout
        self._loader = loader
        self._ctx = LoadContext()

        try:
            root_ca = loader.root_ca(self._ctx)
        except Exception as exc:
            self._ctx.cancel()
            raise RootCAUnavailableError(f"failed to load root CA: {exc}") from exc
        if not len(root_ca):
            self._ctx.cancel()
            raise RootCAUnavailableError("failed to load root CA: no certificates found")
        self._root_ca = root_ca

        try:
            certificate = loader.certificate(self._ctx)
        except Exception as exc:
            self._ctx.cancel()
            raise CertificateUnavailableError(
                f"failed to load certificate and key: {exc}"
            ) from exc

        self._provider = CertificateProvider(certificate)
        self._config = TLSConfig(
            root_ca,
            self._provider,
            require_client_certificate=require_client_certificate,
            minimum_version=minimum_version,
        )

        logger.info(
            "Loaded %d root CA certificate(s) and %r; refreshing every %.3fs",
            len(root_ca),
            certificate,
            self._interval,
        )

        self._thread = threading.Thread(
            target=self._rotate,
            name=f"rotating-tls-{id(self):x}",
            daemon=True,
        )
        self._thread.start()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def config(self) -> TLSConfig:
        """Return the TLS configuration built at construction."""
        return self._config

    def stop(self) -> None:
        """Stop refreshing and wait for the background thread to exit.

        Cancels the context passed to any in-flight loader call. Safe to
        call from any thread and any number of times.
        """
        if self._ctx.cancel():
            logger.info("Stopping certificate refresh for %r", self._loader)
        if threading.current_thread() is not self._thread:
            self._thread.join()

    @property
    def running(self) -> bool:
        return not self._ctx.cancelled

    @property
    def interval(self) -> float:
        """Refresh interval in seconds."""
        return self._interval

    @property
    def root_ca(self) -> CertPool:
        return self._root_ca

    @property
    def certificate(self) -> LeafCertificate:
        """The last successfully loaded certificate."""
        return self._provider.certificate

    @property
    def last_error(self) -> Optional[RefreshFailedError]:
        """The error from the most recent refresh if it failed, else None."""
        return self._provider.last_error

    def __enter__(self) -> "RotatingCredential":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def __repr__(self) -> str:
        state = "running" if self.running else "stopped"
        return f"RotatingCredential(loader={self._loader!r}, interval={self._interval}, {state})"

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    def _rotate(self) -> None:
        while not self._ctx.wait(self._interval):
            self._refresh()

    def _refresh(self) -> None:
        ctx = self._ctx if self._load_timeout is None else self._ctx.child(self._load_timeout)
        logger.debug("Refreshing certificate from %r", self._loader)
        try:
            certificate = self._loader.certificate(ctx)
        except Exception as exc:
            if self._ctx.cancelled:
                return
            error = RefreshFailedError(f"failed to load certificate: {exc}")
            error.__cause__ = exc
            self._provider.fail(error)
            logger.warning("Certificate refresh failed, handshakes will fail: %s", exc)
            return
        finally:
            if ctx is not self._ctx:
                ctx.cancel()

        if self._ctx.cancelled:
            return
        previous = self._provider.snapshot()
        self._provider.update(certificate)
        if previous.error is not None:
            logger.info("Certificate refresh recovered with %r", certificate)
        elif previous.certificate.fingerprint != certificate.fingerprint:
            logger.info("Rotated certificate to %r", certificate)
        else:
            logger.debug("Reloaded unchanged certificate %r", certificate)

        try:
            self._config.warm(certificate)
        except (ssl.SSLError, OSError):
            logger.exception("Failed to rebuild TLS contexts for %r", certificate)
