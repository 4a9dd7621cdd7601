"""
Unit tests for PEM encoding of keystore material.

The marker strings are compared byte for byte, including the three-dash
private key markers.
"""

import base64
import pytest

from keystore_tls.utils import pem
from keystore_tls.utils.keystore import PrivateKeyMaterial


@pytest.fixture
def material():
    return PrivateKeyMaterial(encoded=bytearray(b'\x30\x82\x01\x02private-key-der'), algorithm='EC')


class TestMarkers:
    """The marker constants are part of the output contract."""

    def test_private_key_markers_use_three_dashes(self):
        assert pem.PRIVATE_KEY_HEADER == '---BEGIN PRIVATE KEY---'
        assert pem.PRIVATE_KEY_FOOTER == '---END PRIVATE KEY---'

    def test_certificate_markers_use_five_dashes(self):
        assert pem.CERTIFICATE_HEADER == '-----BEGIN CERTIFICATE-----'
        assert pem.CERTIFICATE_FOOTER == '-----END CERTIFICATE-----'


class TestEncodePrivateKey:
    """Tests for encode_private_key."""

    def test_exact_layout(self, material):
        body = base64.b64encode(bytes(material.encoded)).decode('ascii')
        assert pem.encode_private_key(material) == (
            f"---BEGIN PRIVATE KEY---\n{body}\n---END PRIVATE KEY---"
        )

    def test_no_trailing_newline(self, material):
        assert not pem.encode_private_key(material).endswith('\n')

    def test_body_decodes_to_original_bytes(self, material):
        lines = pem.encode_private_key(material).split('\n')
        assert base64.b64decode(lines[1]) == bytes(material.encoded)

    def test_body_is_single_unwrapped_line(self):
        long_material = PrivateKeyMaterial(encoded=bytearray(range(256)) * 4)
        lines = pem.encode_private_key(long_material).split('\n')
        assert len(lines) == 3
        assert len(lines[1]) > 64

    def test_uses_standard_alphabet_with_padding(self):
        # 0xfb 0xff encodes to '+/8=' in the standard alphabet, '-_8=' in the URL-safe one
        lines = pem.encode_private_key(PrivateKeyMaterial(encoded=bytearray(b'\xfb\xff'))).split('\n')
        assert lines[1] == '+/8='

    def test_none_is_a_type_error(self):
        with pytest.raises(TypeError):
            pem.encode_private_key(None)


class TestEncodeCertificateChain:
    """Tests for encode_certificate_chain."""

    def test_each_certificate_terminated_by_newline(self):
        chain = (b'leaf-der', b'issuer-der')
        expected = (
            "-----BEGIN CERTIFICATE-----\n"
            f"{base64.b64encode(b'leaf-der').decode()}\n"
            "-----END CERTIFICATE-----\n"
            "-----BEGIN CERTIFICATE-----\n"
            f"{base64.b64encode(b'issuer-der').decode()}\n"
            "-----END CERTIFICATE-----\n"
        )
        assert pem.encode_certificate_chain(chain) == expected

    def test_order_is_preserved(self):
        encoded = pem.encode_certificate_chain([b'first', b'second', b'third'])
        bodies = [der for _, der in pem.decode_pem_documents(encoded)]
        assert bodies == [b'first', b'second', b'third']

    def test_empty_chain_is_empty_string(self):
        assert pem.encode_certificate_chain(()) == ''

    def test_none_is_a_type_error(self):
        with pytest.raises(TypeError):
            pem.encode_certificate_chain(None)


class TestEncode:
    """Tests for encode."""

    def test_returns_key_then_chain(self, material):
        private_key_pem, cert_chain_pem = pem.encode(material, (b'leaf',))
        assert private_key_pem.startswith(pem.PRIVATE_KEY_HEADER)
        assert cert_chain_pem.startswith(pem.CERTIFICATE_HEADER)

    def test_is_deterministic(self, material):
        assert pem.encode(material, (b'a', b'b')) == pem.encode(material, (b'a', b'b'))


class TestDecodePemDocuments:
    """Tests for the tolerant PEM reader."""

    def test_reads_three_dash_private_key(self, material):
        documents = pem.decode_pem_documents(pem.encode_private_key(material))
        assert documents == [('PRIVATE KEY', bytes(material.encoded))]

    def test_reads_wrapped_bodies(self):
        body = base64.b64encode(bytes(range(120))).decode()
        wrapped = '\n'.join(body[i:i + 64] for i in range(0, len(body), 64))
        text = f"-----BEGIN CERTIFICATE-----\n{wrapped}\n-----END CERTIFICATE-----\n"
        assert pem.decode_pem_documents(text) == [('CERTIFICATE', bytes(range(120)))]

    def test_ignores_text_outside_documents(self):
        text = "junk\n" + pem.encode_certificate_chain([b'x']) + "trailing"
        assert pem.decode_pem_documents(text) == [('CERTIFICATE', b'x')]

    def test_invalid_base64_raises_value_error(self):
        text = "-----BEGIN CERTIFICATE-----\nabc\n-----END CERTIFICATE-----\n"
        with pytest.raises(ValueError):
            pem.decode_pem_documents(text)
