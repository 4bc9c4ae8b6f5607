"""LoadContext — cancellation and deadline token handed to loaders.

Every :class:`~rotating_tls.loader.Loader` call receives a LoadContext.
Loaders that perform slow or networked I/O should poll
:attr:`LoadContext.cancelled` (or block on :meth:`LoadContext.wait`) so that
:meth:`RotatingCredential.stop` and load timeouts can abort them.
"""
from __future__ import annotations

import threading
import time
from typing import Optional

from rotating_tls.errors import LoadCancelledError


class LoadContext:
    """A cancellable context with an optional deadline.

    Parameters
    ----------
    timeout:
        Seconds until the context expires. None means no deadline.
    parent:
        Parent context; cancelling the parent cancels this context too.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        parent: Optional[LoadContext] = None,
    ) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: list[LoadContext] = []
        self._deadline: Optional[float] = None
        self._parent = parent

        if timeout is not None:
            self._deadline = time.monotonic() + timeout
        if parent is not None:
            if parent.deadline is not None and (
                self._deadline is None or parent.deadline < self._deadline
            ):
                self._deadline = parent.deadline
            parent._adopt(self)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    @property
    def deadline(self) -> Optional[float]:
        """``time.monotonic()`` value at which this context expires, if any."""
        return self._deadline

    @property
    def cancelled(self) -> bool:
        """True once the context was cancelled or its deadline passed."""
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def cancel(self) -> bool:
        """Cancel this context and all derived contexts. Idempotent.

        Returns
        -------
        bool
            True only for the call that actually cancelled the context.
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            children = list(self._children)
            self._children.clear()
        for child in children:
            child.cancel()
        if self._parent is not None:
            self._parent._release(self)
        return True

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled, the deadline passes or *timeout* elapses.

        Returns
        -------
        bool
            True if the context is cancelled when the wait ends.
        """
        remaining = self.remaining()
        if remaining is not None and (timeout is None or remaining < timeout):
            timeout = remaining
        self._event.wait(timeout)
        return self.cancelled

    def child(self, timeout: Optional[float] = None) -> LoadContext:
        """Derive a context that ends with this one or after *timeout*."""
        return LoadContext(timeout=timeout, parent=self)

    def raise_if_cancelled(self) -> None:
        """Raise :class:`LoadCancelledError` if the context has ended."""
        if self._event.is_set():
            raise LoadCancelledError("load context cancelled")
        if self.cancelled:
            raise LoadCancelledError("load context deadline exceeded")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _adopt(self, child: LoadContext) -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.append(child)
                return
        child.cancel()

    def _release(self, child: LoadContext) -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def __repr__(self) -> str:
        return f"LoadContext(cancelled={self.cancelled}, remaining={self.remaining()})"
