"""
Scoped privilege elevation around the TLS context hand-off.

Python has no security manager, so elevation here is a bookkeeping scope
rather than an OS-level grant: it records that privileged work is in progress,
refuses to be re-entered, and is always released before an error propagates.
Operating-system access denials raised inside the scope surface as
PrivilegeDenied so the controller can point the operator at the keystore path.
"""

import logging
import threading
from contextlib import contextmanager

from keystore_tls.utils.errors import KeystoreTLSError, PrivilegeDenied, SinkFailure

logger = logging.getLogger(__name__)

_state = threading.local()


def is_elevated() -> bool:
    """Return True while the current thread is inside elevated_privileges()."""
    return getattr(_state, 'elevated', False)


@contextmanager
def elevated_privileges():
    """
    Hold the elevated scope for the duration of the with-block.

    Raises:
        RuntimeError: If the scope is already held by this thread.
    """
    if is_elevated():
        raise RuntimeError("Privileged scope is not reentrant")

    _state.elevated = True
    logger.debug("Entered privileged scope")
    try:
        yield
    finally:
        _state.elevated = False
        logger.debug("Left privileged scope")


def run_privileged(action, path=None):
    """
    Run a zero-argument callable inside the elevated scope.

    Args:
        action: Callable taking no arguments. Its return value is passed through.
        path: Keystore path reported on PrivilegeDenied.

    Raises:
        PrivilegeDenied: If the action raised PermissionError.
        SinkFailure: If the action raised any other exception.
    """
    with elevated_privileges():
        try:
            return action()
        except PermissionError as e:
            raise PrivilegeDenied(f"Access denied during privileged TLS hand-off: {e}", path=path) from e
        except KeystoreTLSError:
            raise
        except Exception as e:
            raise SinkFailure(f"TLS context sink failed: {type(e).__name__}: {e}") from e
