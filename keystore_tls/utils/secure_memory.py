"""
Secure memory management utilities for private key material.

This module provides utilities for clearing encoded key bytes once they are no
longer needed, including a context manager for automatic cleanup.

Note: Python's memory management makes guaranteed erasure impossible. Only
mutable buffers (bytearray) can be overwritten in place; immutable copies such
as the base64 text handed to the TLS sink are left to the garbage collector.
"""

import gc
import logging
from contextlib import contextmanager

logger = logging.getLogger(__name__)


def secure_clear_bytes(buffer) -> None:
    """
    Overwrite a bytearray with zeros in place.

    Args:
        buffer: The bytearray to clear. None is ignored.

    Raises:
        TypeError: If buffer is immutable (e.g. bytes).
    """
    if buffer is None:
        return
    if not isinstance(buffer, (bytearray, memoryview)):
        raise TypeError(f"Cannot clear immutable {type(buffer).__name__} in place")

    buffer[:] = b'\x00' * len(buffer)


@contextmanager
def secure_bytes_context(buffer):
    """
    Context manager that zeroes a key buffer when the block exits.

    The buffer is cleared even if an exception occurs.

    Example:
        with secure_bytes_context(material.encoded):
            private_key_pem = encode_private_key(material)
        # material.encoded is all zeros here
    """
    try:
        yield buffer
    finally:
        if buffer is not None:
            logger.debug("Clearing %d bytes of key material", len(buffer))
            secure_clear_bytes(buffer)
        gc.collect()
