"""
Error taxonomy for keystore-backed TLS initialization.

Every failure raised by the keystore pipeline derives from KeystoreTLSError so
the startup controller can catch the whole family in one place. Messages name
paths and aliases but never passwords or key material.
"""


class KeystoreTLSError(Exception):
    """Base class for all keystore TLS initialization failures."""
    pass


class SettingsMalformed(KeystoreTLSError):
    """The keystore opened, but holds no alias or no private key for the resolved alias."""
    pass


class KeystoreLoadFailure(KeystoreTLSError):
    """The keystore file is missing, the password is wrong, or the container is malformed."""
    pass


class PrivilegeDenied(KeystoreTLSError):
    """Access to the keystore or the context hand-off was denied by the operating environment."""

    def __init__(self, message, path=None):
        super().__init__(message)
        self.path = path


class SinkFailure(KeystoreTLSError):
    """The TLS context sink raised while receiving the PEM material."""
    pass
