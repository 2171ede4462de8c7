"""
Cooperative cancellation for long-running installs.

A CancellationToken is threaded through downloads, archive extraction and
build subprocesses. Each of them checks the token at natural boundaries
(per chunk, per archive member, per subprocess) and raises
InstallCancelledError once it is cancelled or its deadline has passed.
"""

import threading
import time
from typing import Optional

from bindep.core.exceptions import InstallCancelledError, InstallPhase


class CancellationToken:
    """
    Cancellation flag with an optional deadline.

    Example:
        >>> token = CancellationToken(timeout=600)
        >>> manager.ensure(cancel_token=token)
        >>> # from another thread:
        >>> token.cancel()
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize token.

        Args:
            timeout: Seconds from now after which the token counts as
                cancelled. None means no deadline.
        """
        self._event = threading.Event()
        self.deadline = time.monotonic() + timeout if timeout else None

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        """
        Seconds left before the deadline.

        Returns:
            Remaining seconds (never negative), or None without a deadline
        """
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self, phase: InstallPhase = InstallPhase.INSTALL) -> None:
        """
        Raise if the token has been cancelled.

        Raises:
            InstallCancelledError: If cancelled or past the deadline
        """
        if self._event.is_set():
            raise InstallCancelledError("operation cancelled", phase=phase)
        if self.expired:
            raise InstallCancelledError("deadline exceeded", phase=phase)


def check_cancelled(
    token: Optional[CancellationToken], phase: InstallPhase = InstallPhase.INSTALL
) -> None:
    """Check an optional token; no-op when token is None."""
    if token is not None:
        token.check(phase)


def subprocess_timeout(
    token: Optional[CancellationToken], default: Optional[float] = None
) -> Optional[float]:
    """
    Compute a subprocess timeout that respects the token's deadline.

    Args:
        token: Optional cancellation token
        default: Timeout to use when there is no deadline

    Returns:
        The smaller of the default and the remaining deadline
    """
    remaining = token.remaining() if token is not None else None
    if remaining is None:
        return default
    if default is None:
        return remaining
    return min(default, remaining)


__all__ = ["CancellationToken", "check_cancelled", "subprocess_timeout"]
