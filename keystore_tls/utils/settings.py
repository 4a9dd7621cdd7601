"""
Settings provider for keystore-backed TLS.

The startup controller only ever talks to the KeystoreSettings interface, so the
values can come from the Flask config, the process environment, or a test double.
Optional values are returned as None when absent; an empty string is never used
as an "unset" marker.
"""

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from keystore_tls.utils.environment import TRUE_STRINGS


@runtime_checkable
class KeystoreSettings(Protocol):
    """Interface consumed by configure_ssl_from_keystore()."""

    def is_ssl_enabled(self) -> bool: ...

    def get_keystore_file(self) -> str: ...

    def get_keystore_pass(self) -> Optional[str]: ...

    def get_key_pass(self) -> Optional[str]: ...

    def get_key_alias(self) -> Optional[str]: ...


def _optional(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value)
    return value if value else None


class MappingKeystoreSettings:
    """
    KeystoreSettings backed by a mapping such as a Flask ``app.config``.

    Keys read: SSL_ENABLED, SSL_KEYSTORE_FILE, SSL_KEYSTORE_PASS, SSL_KEY_PASS
    and SSL_KEY_ALIAS. SSL_ENABLED accepts a bool or a string; strings other than
    true/yes/on/1 disable SSL.
    """

    def __init__(self, mapping: Mapping[str, Any]):
        self._mapping = mapping

    def is_ssl_enabled(self) -> bool:
        value = self._mapping.get('SSL_ENABLED', False)
        if isinstance(value, str):
            return value.lower().strip() in TRUE_STRINGS
        return bool(value)

    def get_keystore_file(self) -> str:
        keystore_file = _optional(self._mapping.get('SSL_KEYSTORE_FILE'))
        if keystore_file is None:
            raise ValueError("SSL_KEYSTORE_FILE must be set when SSL is enabled.")
        return keystore_file

    def get_keystore_pass(self) -> Optional[str]:
        return _optional(self._mapping.get('SSL_KEYSTORE_PASS'))

    def get_key_pass(self) -> Optional[str]:
        return _optional(self._mapping.get('SSL_KEY_PASS'))

    def get_key_alias(self) -> Optional[str]:
        return _optional(self._mapping.get('SSL_KEY_ALIAS'))

    def __repr__(self):
        # Passwords are deliberately left out
        return (f"MappingKeystoreSettings(enabled={self.is_ssl_enabled()}, "
                f"keystore_file={self._mapping.get('SSL_KEYSTORE_FILE')!r}, "
                f"key_alias={self.get_key_alias()!r})")


def settings_from_config(config_object=None) -> MappingKeystoreSettings:
    """
    Build a settings provider from a Config class (or instance).

    Defaults to keystore_tls.config.Config, i.e. the process environment.
    """
    if config_object is None:
        from keystore_tls.config import Config
        config_object = Config

    values = {
        key: getattr(config_object, key)
        for key in dir(config_object)
        if key.isupper()
    }
    return MappingKeystoreSettings(values)
