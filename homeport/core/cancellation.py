"""Cooperative cancellation for long-running discovery calls."""

from __future__ import annotations

import threading

from homeport.core.errors import OperationCancelledError


class CancellationToken:
    """
    Thread-safe cancellation flag shared between a caller and workers.

    Workers call ``raise_if_cancelled`` at every suspension point; the
    caller flips the flag with ``cancel`` from any thread.
    """

    def __init__(self, parent: CancellationToken | None = None) -> None:
        """
        Initialise an uncancelled token.

        Args:
            parent: Optional token whose cancellation also cancels this one.

        """
        self._event = threading.Event()
        self._parent = parent

    def child(self) -> CancellationToken:
        """Return a token cancelled by this one or by its own ``cancel``."""
        return CancellationToken(parent=self)

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation has been requested here or on a parent."""
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def wait(self, timeout: float | None = None) -> bool:
        """
        Block until this token is cancelled or the timeout expires.

        Parent cancellation is observed when the wait returns.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely.

        Returns:
            True if the token was cancelled.

        """
        return self._event.wait(timeout) or self.cancelled

    def raise_if_cancelled(self, operation: str = "operation") -> None:
        """
        Raise if cancellation has been requested.

        Args:
            operation: Name used in the error message.

        Raises:
            OperationCancelledError: If the token is cancelled.

        """
        if self.cancelled:
            raise OperationCancelledError(operation)


def check_cancelled(token: CancellationToken | None, operation: str) -> None:
    """Raise OperationCancelledError if ``token`` is set."""
    if token is not None:
        token.raise_if_cancelled(operation)
