"""
PKCS#12 keystore access for the TLS startup pipeline.

Covers the first three stages of the pipeline:

    load_keystore()          open and unlock the container
    resolve_alias()          pick the key entry to serve
    extract_key_and_chain()  pull the PKCS#8 key and DER chain for that alias

Alias model:
    PKCS#12 has no native alias table, so aliases are the friendly names on the
    bags. The key entry is named by the friendly name of its leaf certificate,
    or UNNAMED_KEY_ALIAS when the leaf has no name or the key has no
    certificate at all. A key with no certificate has an empty chain.
    Additional certificates that carry their own friendly name are trusted
    certificate entries (an alias with no key). Unnamed additional certificates
    make up the rest of the key entry's chain. Unnamed entries cannot be
    enumerated. Lookups ignore case, enumeration returns names as stored.

Security Considerations:
    - Passwords are converted to bytes at the point of use and never logged.
    - The private key leaves this module only as PKCS#8 DER in a bytearray so
      the caller can zero it once it has been encoded.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from keystore_tls.utils.errors import KeystoreLoadFailure, PrivilegeDenied, SettingsMalformed

logger = logging.getLogger(__name__)

KEY_ENCODING_SCHEME = 'PKCS#8'

# Alias given to a key entry whose leaf certificate carries no friendly name
UNNAMED_KEY_ALIAS = '1'

CertificateChain = Tuple[bytes, ...]


@dataclass(frozen=True)
class PrivateKeyMaterial:
    """Encoded private key bytes plus the scheme they are encoded with."""
    encoded: bytearray
    scheme: str = KEY_ENCODING_SCHEME
    algorithm: str = 'unknown'

    def __repr__(self):
        return f"PrivateKeyMaterial(scheme={self.scheme!r}, algorithm={self.algorithm!r}, length={len(self.encoded)})"


def _to_password_bytes(password: Optional[str]) -> Optional[bytes]:
    return password.encode('utf-8') if password is not None else None


def _friendly_name(entry: pkcs12.PKCS12Certificate) -> Optional[str]:
    if entry is None or entry.friendly_name is None:
        return None
    return entry.friendly_name.decode('utf-8', errors='replace')


def _key_algorithm(key) -> str:
    if isinstance(key, rsa.RSAPrivateKey):
        return 'RSA'
    if isinstance(key, ec.EllipticCurvePrivateKey):
        return 'EC'
    if isinstance(key, ed25519.Ed25519PrivateKey):
        return 'Ed25519'
    if isinstance(key, ed448.Ed448PrivateKey):
        return 'Ed448'
    if isinstance(key, dsa.DSAPrivateKey):
        return 'DSA'
    return type(key).__name__


class KeystoreHandle:
    """
    An unlocked PKCS#12 container.

    Created by load_keystore() for a single initialization pass and not shared
    beyond it.
    """

    def __init__(self, path: str, raw: bytes, password: Optional[str], bundle: pkcs12.PKCS12KeyAndCertificates):
        self.path = path
        self._raw = raw
        self._password = password
        self._bundle = bundle

        self._key_alias = None
        self._chain: List[x509.Certificate] = []
        self._trusted = {}

        if bundle.key is not None:
            name = _friendly_name(bundle.cert)
            self._key_alias = name if name is not None else UNNAMED_KEY_ALIAS
            if bundle.cert is not None:
                self._chain.append(bundle.cert.certificate)
        elif bundle.cert is not None:
            name = _friendly_name(bundle.cert)
            if name is not None:
                self._trusted[name] = bundle.cert.certificate

        for extra in bundle.additional_certs:
            name = _friendly_name(extra)
            if name is None:
                self._chain.append(extra.certificate)
            else:
                self._trusted.setdefault(name, extra.certificate)

    def aliases(self) -> List[str]:
        """Return every enumerable alias in container order."""
        names = []
        if self._key_alias is not None:
            names.append(self._key_alias)
        for name in self._trusted:
            if name not in names:
                names.append(name)
        return names

    def _is_key_alias(self, alias: str) -> bool:
        return self._key_alias is not None and alias.casefold() == self._key_alias.casefold()

    def get_key(self, alias: str, key_password: Optional[str] = None):
        """
        Return the private key stored under alias, or None if there is none.

        With no key password the key unwrapped together with the container is
        returned. A distinct key password re-reads the container with it.

        Raises:
            KeystoreLoadFailure: If the key cannot be recovered with key_password.
        """
        if not self._is_key_alias(alias):
            return None

        if key_password is None or key_password == self._password:
            return self._bundle.key

        try:
            key, _, _ = pkcs12.load_key_and_certificates(self._raw, _to_password_bytes(key_password))
        except ValueError as e:
            raise KeystoreLoadFailure(
                f"Cannot recover private key for alias '{alias}' with the configured key password"
            ) from e
        return key

    def get_certificate_chain(self, alias: str) -> Optional[List[x509.Certificate]]:
        """Return the chain for a key entry, leaf first, or None for any other alias."""
        if not self._is_key_alias(alias):
            return None
        return list(self._chain)


def load_keystore(path: str, password: Optional[str] = None) -> KeystoreHandle:
    """
    Open a PKCS#12 keystore from disk.

    Args:
        path: Filesystem path of the .p12/.pfx file.
        password: Store password, or None to open it without one.

    Returns:
        KeystoreHandle: The unlocked container.

    Raises:
        PrivilegeDenied: If the file exists but may not be read.
        KeystoreLoadFailure: If the file is missing, the password is wrong,
                             or the container is malformed.
    """
    try:
        with open(path, 'rb') as f:
            raw = f.read()
    except PermissionError as e:
        raise PrivilegeDenied(f"Access denied reading keystore: {path}", path=path) from e
    except FileNotFoundError as e:
        raise KeystoreLoadFailure(f"Keystore file not found: {path}") from e
    except OSError as e:
        raise KeystoreLoadFailure(f"Could not read keystore {path}: {e.strerror}") from e

    try:
        bundle = pkcs12.load_pkcs12(raw, _to_password_bytes(password))
    except ValueError as e:
        # cryptography reports a bad password and a corrupt container the same way
        raise KeystoreLoadFailure(
            f"Could not open keystore {path}: invalid password or malformed PKCS#12 data"
        ) from e

    logger.debug("Opened PKCS#12 keystore %s", path)
    return KeystoreHandle(path, raw, password, bundle)


def resolve_alias(handle: KeystoreHandle, configured_alias: Optional[str] = None) -> str:
    """
    Decide which alias to extract.

    A configured alias is returned verbatim; whether it names a key is checked
    by extract_key_and_chain(). Without one, the lexically first alias wins.

    Raises:
        SettingsMalformed: If no alias is configured and the keystore has none.
    """
    if configured_alias is not None:
        return configured_alias

    aliases = sorted(handle.aliases())
    if not aliases:
        raise SettingsMalformed("No alias found, therefore no key found in keystore!")

    inferred_alias = aliases[0]
    logger.info("SSL ssl.key_alias not configured, took first alias in keystore: %s", inferred_alias)
    return inferred_alias


def extract_key_and_chain(handle: KeystoreHandle, alias: str,
                          key_password: Optional[str] = None) -> Tuple[PrivateKeyMaterial, CertificateChain]:
    """
    Pull the private key and certificate chain stored under alias.

    Returns:
        tuple: (PrivateKeyMaterial, CertificateChain). The chain holds DER bytes,
               leaf first, in the order the keystore keeps them. It may be empty.

    Raises:
        SettingsMalformed: If the alias has no private key.
        KeystoreLoadFailure: If the key cannot be unwrapped with key_password.
    """
    key = handle.get_key(alias, key_password)
    if key is None:
        raise SettingsMalformed(f"Private key not found in keystore for alias: {alias}")

    encoded = bytearray(key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ))
    if not encoded:
        raise SettingsMalformed(f"Private key for alias {alias} has no encoded form")

    material = PrivateKeyMaterial(encoded=encoded, algorithm=_key_algorithm(key))
    logger.info("Discovered key from keystore")

    chain = handle.get_certificate_chain(alias) or []
    der_chain = tuple(cert.public_bytes(serialization.Encoding.DER) for cert in chain)
    logger.info("Discovered cert chain from keystore")

    return material, der_chain
