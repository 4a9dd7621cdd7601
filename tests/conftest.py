import logging
import pytest
from unittest.mock import patch
from datetime import datetime, timezone, timedelta

from cryptography import x509
from cryptography.x509.oid import NameOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import pkcs12

from keystore_tls import create_app

STORE_PASSWORD = "changeit"


def make_certificate(subject_cn, public_key, issuer_cn=None, signing_key=None, ca=False):
    """Build a certificate for subject_cn, self-signed unless an issuer is given."""
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, subject_cn)]))
        .issuer_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, issuer_cn or subject_cn)]))
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=ca, path_length=None), critical=True)
        .sign(signing_key, hashes.SHA256())
    )


class KeystoreMaterial:
    """The key, chain and serialized PKCS#12 bytes behind a test keystore."""

    def __init__(self, key, chain, data, password):
        self.key = key
        self.chain = chain
        self.data = data
        self.password = password

    def write(self, path):
        path.write_bytes(self.data)
        return str(path)


def build_keystore(name=b"server", password=STORE_PASSWORD, cas_extra=(), include_key=True, chain_length=2,
                   include_cert=True):
    """
    Serialize a PKCS#12 keystore holding a leaf key with a CA-issued chain.

    chain_length counts the leaf: 2 means leaf + CA. include_cert=False stores
    the key on its own, with no certificates.
    """
    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_cert = make_certificate("Test CA", ca_key.public_key(), signing_key=ca_key, ca=True)

    leaf_key = ec.generate_private_key(ec.SECP256R1())
    leaf_cert = make_certificate("server.example.com", leaf_key.public_key(),
                                 issuer_cn="Test CA", signing_key=ca_key)

    chain = [leaf_cert] + ([ca_cert] if chain_length > 1 else [])
    if not include_cert:
        chain = []
    cas = chain[1:] + list(cas_extra)

    encryption = (serialization.BestAvailableEncryption(password.encode())
                  if password else serialization.NoEncryption())
    data = pkcs12.serialize_key_and_certificates(
        name=name,
        key=leaf_key if include_key else None,
        cert=leaf_cert if include_key and include_cert else None,
        cas=cas or None,
        encryption_algorithm=encryption,
    )
    return KeystoreMaterial(leaf_key, chain, data, password)


class RecordingSink:
    """Context sink that remembers every hand-off."""

    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def mk_ssl_context(self, cert_chain_pem, private_key_pem):
        self.calls.append((cert_chain_pem, private_key_pem))
        if self.error is not None:
            raise self.error


@pytest.fixture(autouse=True)
def _restore_logger_propagation():
    """create_app() installs non-propagating loggers; undo that so caplog keeps working."""
    yield
    for name in ('keystore_tls', 'security_events', 'flask.app', 'werkzeug'):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True


@pytest.fixture
def keystore(tmp_path):
    """A password-protected keystore with one key alias and a two-certificate chain."""
    material = build_keystore()
    material.path = material.write(tmp_path / "keystore.p12")
    return material


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture(scope='function')
def app():
    with patch("keystore_tls.utils.logging_config.setup_logging"):
        app = create_app()
    app.config.update({"TESTING": True})
    yield app


@pytest.fixture(scope='function')
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def keystore_factory(tmp_path):
    """Build and write a keystore; returns KeystoreMaterial with a ``path`` attribute."""
    counter = {'n': 0}

    def factory(**kwargs):
        counter['n'] += 1
        material = build_keystore(**kwargs)
        material.path = material.write(tmp_path / f"keystore-{counter['n']}.p12")
        return material

    return factory


@pytest.fixture
def make_certificate_fn():
    return make_certificate


@pytest.fixture
def sink_factory():
    return RecordingSink
