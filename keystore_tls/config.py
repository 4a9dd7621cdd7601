import os
from keystore_tls.utils.environment import (
    loadBoolConfigValue,
    loadConfigValueFromFileOrEnvironment,
    loadOptionalConfigValue,
)

class Config:
    """

    Configuration for the Keystore TLS service
    """
    # Deployment environment, drives log verbosity
    ENVIRONMENT = os.environ.get('ENVIRONMENT', 'production')

    # Whether to serve TLS from the PKCS#12 keystore at all
    SSL_ENABLED = loadBoolConfigValue('SSL_ENABLED', 'false', prefer=True)

    # Path to the PKCS#12 keystore holding the server key and chain
    SSL_KEYSTORE_FILE = loadConfigValueFromFileOrEnvironment('SSL_KEYSTORE_FILE', '/app/tls/keystore.p12')

    # Keystore and key passwords; None means "open without a password"
    SSL_KEYSTORE_PASS = loadOptionalConfigValue('SSL_KEYSTORE_PASS')
    SSL_KEY_PASS = loadOptionalConfigValue('SSL_KEY_PASS')

    # Alias of the key entry; None means "take the first alias in the keystore"
    SSL_KEY_ALIAS = loadOptionalConfigValue('SSL_KEY_ALIAS')

    # Where the PEM material handed to Gunicorn is written
    APPLICATION_TLS_OUTPUT_DIR = os.environ.get('APPLICATION_TLS_OUTPUT_DIR', '/tmp/tls')
