"""
Startup controller for keystore-backed TLS.

configure_ssl_from_keystore() runs the whole pipeline once:

    settings -> load_keystore -> resolve_alias -> extract_key_and_chain
             -> pem.encode -> run_privileged(sink)

Failures never propagate to the caller. They are logged and returned as an
SSLSetupResult with status FAILED, so the host keeps running without TLS while
still being able to tell "disabled" apart from "broken".
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from keystore_tls.utils import pem
from keystore_tls.utils.errors import PrivilegeDenied
from keystore_tls.utils.keystore import extract_key_and_chain, load_keystore, resolve_alias
from keystore_tls.utils.privileged import run_privileged
from keystore_tls.utils.secure_memory import secure_bytes_context
from keystore_tls.utils.settings import KeystoreSettings

logger = logging.getLogger(__name__)
security_logger = logging.getLogger('security_events')


class SSLStatus(Enum):
    DISABLED = 'disabled'
    CONFIGURED = 'configured'
    FAILED = 'failed'


class SetupState(Enum):
    """Stages of a single initialization pass, in order."""
    DISABLED = 'disabled'
    ENABLED = 'enabled'
    LOADING = 'loading'
    RESOLVING_ALIAS = 'resolving_alias'
    EXTRACTING = 'extracting'
    ENCODING = 'encoding'
    INVOKING = 'invoking'
    DONE = 'done'
    FAILED = 'failed'


@dataclass(frozen=True)
class SSLSetupResult:
    """Outcome of configure_ssl_from_keystore()."""
    status: SSLStatus
    error: Optional[Exception] = None
    alias: Optional[str] = None
    failed_state: Optional[SetupState] = None

    @property
    def ok(self) -> bool:
        """True unless the pipeline failed; a disabled pipeline is not a failure."""
        return self.status is not SSLStatus.FAILED


def _sink_callable(sink):
    if hasattr(sink, 'mk_ssl_context'):
        return sink.mk_ssl_context
    if callable(sink):
        return sink
    raise TypeError(f"{type(sink).__name__} is not a TLS context sink")


def _is_access_denied(error: Exception) -> bool:
    return isinstance(error, (PrivilegeDenied, PermissionError)) or isinstance(error.__cause__, PermissionError)


def configure_ssl_from_keystore(settings, sink) -> SSLSetupResult:
    """
    Extract the server key and chain from the configured keystore and hand them to sink.

    Args:
        settings: A KeystoreSettings provider.
        sink: An object with ``mk_ssl_context(cert_chain_pem, private_key_pem)``,
              or a callable with the same signature. Invoked at most once, and
              only when every stage succeeded.

    Returns:
        SSLSetupResult: DISABLED when SSL is off (no file is touched),
                        CONFIGURED after a successful hand-off, FAILED otherwise.
    """
    state = SetupState.ENABLED
    keystore_path = None

    try:
        if not isinstance(settings, KeystoreSettings):
            raise TypeError(f"{type(settings).__name__} is not a keystore settings provider")

        if not settings.is_ssl_enabled():
            logger.info("SSL is disabled")
            logger.debug("SSL setup state: %s -> %s", SetupState.DISABLED.value, SetupState.DONE.value)
            return SSLSetupResult(status=SSLStatus.DISABLED)

        deliver = _sink_callable(sink)
        logger.info("SSL: attempting with PKCS#12 keystore..")

        state = SetupState.LOADING
        keystore_path = settings.get_keystore_file()
        handle = load_keystore(keystore_path, settings.get_keystore_pass())

        state = SetupState.RESOLVING_ALIAS
        alias = resolve_alias(handle, settings.get_key_alias())

        state = SetupState.EXTRACTING
        material, chain = extract_key_and_chain(handle, alias, settings.get_key_pass())
        del handle

        state = SetupState.ENCODING
        with secure_bytes_context(material.encoded):
            private_key_pem, cert_chain_pem = pem.encode(material, chain)

        state = SetupState.INVOKING
        run_privileged(lambda: deliver(cert_chain_pem, private_key_pem), path=keystore_path)

        state = SetupState.DONE
        logger.info("SSL context configured from keystore alias '%s' (%d certificate(s) in chain)", alias, len(chain))
        return SSLSetupResult(status=SSLStatus.CONFIGURED, alias=alias)

    except Exception as e:
        logger.error(
            "Failed to load SSL certs and keys from keystore! (%s during %s: %s)",
            type(e).__name__, state.value, e,
            exc_info=True
        )
        if _is_access_denied(e):
            logger.error("Check the keystore path is correct: %s", keystore_path)
            security_logger.warning("Keystore access denied", extra={
                'event_type': 'keystore_access_denied',
                'keystore_path': keystore_path,
                'stage': state.value,
            })
        return SSLSetupResult(status=SSLStatus.FAILED, error=e, failed_state=state)
