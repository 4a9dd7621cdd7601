"""
Gunicorn entrypoint with keystore-backed TLS.

This script serves as the Docker container entrypoint for the service. It reads
Gunicorn configuration from environment variables, extracts the server key and
certificate chain from the PKCS#12 keystore, and then execs into Gunicorn.

The TLS integration works as follows:
    1. ``configure_tls_for_gunicorn()`` runs the keystore pipeline once. It
       records the outcome (disabled, configured or failed) in
       APPLICATION_TLS_STATUS, which Gunicorn inherits.
    2. If the keystore yielded a key and chain, the returned dict provides
       ``certfile`` and ``keyfile`` paths which are appended to GUNICORN_CMD_ARGS.
    3. Otherwise (returns None), Gunicorn runs in plain HTTP mode. A broken
       keystore never stops the service from starting; check the logs.

Environment Variables:
    GUNICORN_CMD_ARGS: Additional Gunicorn CLI arguments (default: "").
    GUNICORN_LOG_LEVEL: Log level passed to ``--log-level`` (default: "info").
    FLASK_APP: The WSGI application module (default: "wsgi:app").

Security Considerations:
    - Uses ``os.execvp`` to replace the Python process with Gunicorn, ensuring
      proper signal handling and PID 1 behavior in containers.
    - Uses ``shlex.split`` for safe parsing of GUNICORN_CMD_ARGS to prevent
      shell injection via malformed environment variables.
"""

import os
import shlex


def main():
    """
    Build and exec the Gunicorn command with optional TLS arguments.

    Returns:
        This function does not return; it calls ``os.execvp()`` to replace
        the current process.

    Raises:
        OSError: If ``os.execvp`` fails (e.g., gunicorn not found on PATH).
    """
    from keystore_tls.utils.logging_config import setup_logging
    from keystore_tls.utils.tls_setup import configure_tls_for_gunicorn

    setup_logging({'ENVIRONMENT': os.environ.get('ENVIRONMENT', 'production')})
    tls_config = configure_tls_for_gunicorn()

    gunicorn_cmd_args = os.environ.get('GUNICORN_CMD_ARGS', '')
    log_level = os.environ.get('GUNICORN_LOG_LEVEL', 'info')
    flask_app = os.environ.get('FLASK_APP', 'wsgi:app')

    if tls_config:
        gunicorn_cmd_args += f" --certfile {shlex.quote(tls_config['certfile'])} --keyfile {shlex.quote(tls_config['keyfile'])}"

    cmd = f"gunicorn --log-level {log_level} {flask_app} {gunicorn_cmd_args}"
    args = shlex.split(cmd)

    os.execvp(args[0], args)


if __name__ == '__main__':
    main()
