"""
TLS setup utilities for application-level TLS.

Bridges the keystore pipeline to Gunicorn: the PEM material extracted from the
PKCS#12 keystore is re-serialized into files that Gunicorn's --certfile and
--keyfile options accept.

Environment Variables:
    SSL_ENABLED: Enable/disable TLS from the keystore (default: "false")
    SSL_KEYSTORE_FILE: Path to the PKCS#12 keystore (default: "/app/tls/keystore.p12")
    SSL_KEYSTORE_PASS / SSL_KEYSTORE_PASS_FILE: Optional keystore password
    SSL_KEY_PASS / SSL_KEY_PASS_FILE: Optional key password
    SSL_KEY_ALIAS: Optional alias of the key entry (default: first alias)
    APPLICATION_TLS_OUTPUT_DIR: Where the PEM files are written (default: "/tmp/tls")
"""

import os
import logging

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from keystore_tls.utils.pem import decode_pem_documents
from keystore_tls.utils.settings import settings_from_config
from keystore_tls.utils.ssl_setup import SSLStatus, configure_ssl_from_keystore

logger = logging.getLogger(__name__)

TLS_STATUS_ENV = 'APPLICATION_TLS_STATUS'


class PemFileContextSink:
    """
    Context sink that writes the PEM chain and key to disk for Gunicorn.

    The incoming PEM text is read tolerantly (three or five dash markers), each
    document is parsed with cryptography, and the files are written in standard
    RFC 7468 form. Parsing doubles as a format check; no trust validation is done.
    """

    def __init__(self, output_dir, cert_filename='chain.crt', key_filename='application.key'):
        self.output_dir = output_dir
        self.certfile = os.path.join(output_dir, cert_filename)
        self.keyfile = os.path.join(output_dir, key_filename)
        self.written = False

    def mk_ssl_context(self, cert_chain_pem, private_key_pem):
        """
        Write the chain and key files.

        Raises:
            ValueError: If the chain holds no certificate or the key is unreadable.
            OSError: If the files cannot be written.
        """
        certificates = [
            x509.load_der_x509_certificate(der)
            for label, der in decode_pem_documents(cert_chain_pem)
            if label == 'CERTIFICATE'
        ]
        if not certificates:
            raise ValueError("Certificate chain is empty; Gunicorn requires a server certificate")

        key_documents = [der for label, der in decode_pem_documents(private_key_pem) if label == 'PRIVATE KEY']
        if len(key_documents) != 1:
            raise ValueError(f"Expected exactly one private key document, found {len(key_documents)}")
        private_key = serialization.load_der_private_key(key_documents[0], password=None)

        os.makedirs(self.output_dir, exist_ok=True)

        with open(self.certfile, 'wb') as f:
            for cert in certificates:
                f.write(cert.public_bytes(serialization.Encoding.PEM))

        # Write private key (unencrypted, required by Gunicorn), owner-only
        fd = os.open(self.keyfile, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, 'wb') as f:
            f.write(private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption()
            ))
        os.chmod(self.keyfile, 0o600)

        self.written = True
        logger.info("Wrote TLS certificate chain (%d certificate(s)) to %s and key to %s",
                    len(certificates), self.certfile, self.keyfile)


def configure_tls_for_gunicorn(config_object=None):
    """
    Configure TLS settings for Gunicorn from the PKCS#12 keystore.

    Runs the keystore pipeline with a PemFileContextSink and records the outcome
    in the APPLICATION_TLS_STATUS environment variable so the Gunicorn workers
    can report it. A failed setup falls back to plain HTTP.

    Args:
        config_object: Config class to read settings from (default: keystore_tls.config.Config).

    Returns:
        dict or None: A dictionary with 'certfile' and 'keyfile' keys for Gunicorn's
                      --certfile and --keyfile options. None if TLS is disabled or
                      could not be configured.
    """
    if config_object is None:
        from keystore_tls.config import Config
        config_object = Config

    settings = settings_from_config(config_object)
    sink = PemFileContextSink(config_object.APPLICATION_TLS_OUTPUT_DIR)

    result = configure_ssl_from_keystore(settings, sink)
    os.environ[TLS_STATUS_ENV] = result.status.value

    if result.status is not SSLStatus.CONFIGURED:
        if result.status is SSLStatus.FAILED:
            logger.warning("Application TLS could not be configured; serving plain HTTP")
        return None

    logger.info("Application TLS enabled: certfile=%s, keyfile=%s", sink.certfile, sink.keyfile)
    return {'certfile': sink.certfile, 'keyfile': sink.keyfile}
