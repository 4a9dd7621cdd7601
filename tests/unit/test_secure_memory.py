"""
Tests for the secure memory utilities used to clear encoded key bytes.
"""

import pytest

from keystore_tls.utils.secure_memory import secure_bytes_context, secure_clear_bytes


class TestSecureClearBytes:
    """Tests for secure_clear_bytes."""

    def test_zeroes_bytearray_in_place(self):
        buffer = bytearray(b"private key material")
        secure_clear_bytes(buffer)
        assert buffer == bytearray(len(b"private key material"))

    def test_none_is_ignored(self):
        secure_clear_bytes(None)

    def test_empty_bytearray(self):
        buffer = bytearray()
        secure_clear_bytes(buffer)
        assert buffer == bytearray()

    def test_immutable_bytes_rejected(self):
        with pytest.raises(TypeError, match="immutable bytes"):
            secure_clear_bytes(b"cannot clear")


class TestSecureBytesContext:
    """Tests for secure_bytes_context."""

    def test_yields_buffer_then_clears(self):
        buffer = bytearray(b"secret")
        with secure_bytes_context(buffer) as inner:
            assert inner is buffer
            assert bytes(inner) == b"secret"
        assert buffer == bytearray(6)

    def test_clears_on_exception(self):
        buffer = bytearray(b"secret")
        with pytest.raises(RuntimeError):
            with secure_bytes_context(buffer):
                raise RuntimeError("encoding failed")
        assert buffer == bytearray(6)

    def test_none_buffer(self):
        with secure_bytes_context(None) as inner:
            assert inner is None
