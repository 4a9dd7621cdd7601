"""
PEM text encoding for keystore material.

The marker lines below are part of the output contract and are reproduced
byte for byte. The private key markers use three dashes while the certificate
markers use the conventional five; consumers of this output are expected to
read them tolerantly (see decode_pem_documents()).

Encoding rules:
    - Standard, padded base64 on a single line (no 64-column wrapping).
    - Private key:  HEADER "\n" body "\n" FOOTER            (no trailing newline)
    - Certificate:  HEADER "\n" body "\n" FOOTER "\n"       per certificate,
                    concatenated in chain order with no extra separator.
"""

import base64
import re
from typing import Iterable, List, Tuple

PRIVATE_KEY_HEADER = '---BEGIN PRIVATE KEY---'
PRIVATE_KEY_FOOTER = '---END PRIVATE KEY---'
CERTIFICATE_HEADER = '-----BEGIN CERTIFICATE-----'
CERTIFICATE_FOOTER = '-----END CERTIFICATE-----'

_PEM_DOCUMENT = re.compile(
    r'-{3,5}BEGIN (?P<label>[A-Z0-9 ]+?)-{3,5}\s*(?P<body>[A-Za-z0-9+/=\s]*?)\s*-{3,5}END (?P=label)-{3,5}',
)


def _b64(data) -> str:
    return base64.b64encode(bytes(data)).decode('ascii')


def encode_private_key(material) -> str:
    """
    Encode private key material as a PEM document.

    Args:
        material: PrivateKeyMaterial (or any object with an ``encoded`` attribute).

    Raises:
        TypeError: If material is None.
    """
    if material is None:
        raise TypeError("encode_private_key() requires private key material, got None")
    return f"{PRIVATE_KEY_HEADER}\n{_b64(material.encoded)}\n{PRIVATE_KEY_FOOTER}"


def encode_certificate_chain(chain: Iterable[bytes]) -> str:
    """
    Encode DER certificates as concatenated PEM documents in the given order.

    An empty chain yields an empty string.

    Raises:
        TypeError: If chain is None.
    """
    if chain is None:
        raise TypeError("encode_certificate_chain() requires a certificate chain, got None")
    return ''.join(
        f"{CERTIFICATE_HEADER}\n{_b64(der)}\n{CERTIFICATE_FOOTER}\n"
        for der in chain
    )


def encode(material, chain: Iterable[bytes]) -> Tuple[str, str]:
    """Return (private_key_pem, cert_chain_pem) for the extracted key and chain."""
    return encode_private_key(material), encode_certificate_chain(chain)


def decode_pem_documents(text: str) -> List[Tuple[str, bytes]]:
    """
    Read every PEM document in text, accepting three to five dashes on markers.

    Returns:
        list: (label, der_bytes) tuples in document order, e.g. ('CERTIFICATE', b'...').

    Raises:
        ValueError: If a document body is not valid base64.
    """
    documents = []
    for match in _PEM_DOCUMENT.finditer(text):
        body = ''.join(match.group('body').split())
        try:
            der = base64.b64decode(body, validate=True)
        except ValueError as e:
            raise ValueError(f"Invalid base64 body in PEM {match.group('label')} document") from e
        documents.append((match.group('label'), der))
    return documents
