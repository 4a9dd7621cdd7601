"""
Logging Configuration for the Keystore TLS service

This module configures structured JSON logging, with separate loggers for
security events (such as denied keystore access), application events (the
keystore pipeline itself), and access logs. All logs are formatted for SIEM
compatibility.
"""

import logging
import logging.config
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any
from flask import request, g

SERVICE_NAME = 'keystore-tls'

# Attributes every LogRecord carries; anything else was passed via ``extra``
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'exc_info', 'exc_text',
    'stack_info', 'getMessage', 'taskName',
])


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs logs in JSON format suitable for SIEM ingestion.
    """

    def format(self, record):
        """Format log record as JSON."""

        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'service': SERVICE_NAME,
            'version': '1.0',
        }

        if getattr(record, 'process', None):
            log_entry['process_id'] = record.process

        # Request context is absent during startup, when the keystore is read
        try:
            if request:
                log_entry['request_context'] = {
                    'method': request.method,
                    'path': request.path,
                    'remote_addr': request.remote_addr,
                }
                if hasattr(g, 'request_id'):
                    log_entry['request_id'] = g.request_id
        except RuntimeError:
            pass

        if record.exc_info and record.exc_info != (None, None, None):
            try:
                exc_type, exc_value, exc_traceback = record.exc_info
                log_entry['exception'] = {
                    'type': exc_type.__name__ if exc_type else None,
                    'message': str(exc_value) if exc_value else None,
                    'traceback': self.formatException(record.exc_info) if exc_traceback else None
                }
            except (AttributeError, TypeError, ValueError):
                log_entry['exception'] = {
                    'type': 'UnknownException',
                    'message': 'Exception information not available',
                    'traceback': None
                }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class SecurityEventFilter(logging.Filter):
    """Filter that only allows security events through."""

    def filter(self, record):
        return record.name == 'security_events'


class ApplicationEventFilter(logging.Filter):
    """Filter that allows application events but excludes security events."""

    def filter(self, record):
        return record.name != 'security_events' and not record.name.startswith('gunicorn')


class AccessLogFilter(logging.Filter):
    """Filter for access logs."""

    def filter(self, record):
        return record.name.startswith('gunicorn.access')


def _resolve_log_level(app_config: Dict[str, Any] = None) -> str:
    if app_config:
        if app_config.get('ENVIRONMENT') == 'development':
            return 'DEBUG'
        if app_config.get('ENVIRONMENT') == 'production':
            return 'WARNING'
    return 'INFO'


def setup_logging(app_config: Dict[str, Any] = None) -> None:
    """
    Set up structured logging configuration.

    The keystore_tls logger stays at INFO or below outside development so that
    alias inference and keystore failures are always visible to operators.

    Args:
        app_config: Flask app configuration dict (or any mapping)
    """

    # Skip custom logging setup during testing to preserve caplog functionality
    if app_config and app_config.get('TESTING'):
        return

    log_level = _resolve_log_level(app_config)
    pipeline_level = 'DEBUG' if log_level == 'DEBUG' else 'INFO'

    def stdout_handler(formatter, filter_name, level):
        return {
            'class': 'logging.StreamHandler',
            'stream': sys.stdout,
            'formatter': formatter,
            'filters': [filter_name] if filter_name else [],
            'level': level,
        }

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {'()': JSONFormatter},
            'simple': {'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'},
        },
        'filters': {
            'security_events': {'()': SecurityEventFilter},
            'application_events': {'()': ApplicationEventFilter},
            'access_logs': {'()': AccessLogFilter},
        },
        'handlers': {
            'security_events': stdout_handler('json', 'security_events', 'INFO'),
            'application_events': stdout_handler('json', 'application_events', 'DEBUG'),
            'access_logs': stdout_handler('json', 'access_logs', 'INFO'),
            'console': stdout_handler('simple', None, 'ERROR'),
        },
        'loggers': {
            'security_events': {'handlers': ['security_events'], 'level': 'INFO', 'propagate': False},
            'keystore_tls': {'handlers': ['application_events'], 'level': pipeline_level, 'propagate': False},
            'flask.app': {'handlers': ['application_events'], 'level': log_level, 'propagate': False},
            'gunicorn.access': {'handlers': ['access_logs'], 'level': 'INFO', 'propagate': False},
            'gunicorn.error': {'handlers': ['application_events'], 'level': 'INFO', 'propagate': False},
            'werkzeug': {'handlers': ['application_events'], 'level': 'WARNING', 'propagate': False},
        },
        'root': {
            'handlers': ['console'],
            'level': 'ERROR',
        }
    }

    # In development, also log to console with simple format
    if app_config and app_config.get('ENVIRONMENT') == 'development':
        config['handlers']['console']['level'] = 'DEBUG'
        config['loggers']['flask.app']['handlers'].append('console')
        config['loggers']['keystore_tls']['handlers'].append('console')

    logging.config.dictConfig(config)


def add_request_id_middleware(app):
    """
    Add middleware to generate and track request IDs for correlation.
    """
    import uuid

    @app.before_request
    def before_request():
        g.request_id = str(uuid.uuid4())

    @app.after_request
    def after_request(response):
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id
        return response


def configure_security_logging(app):
    """
    Configure security logging for the Flask application.

    Args:
        app: Flask application instance
    """

    # Skip security logging setup during testing to preserve caplog functionality
    if app.config.get('TESTING'):
        return

    setup_logging(app.config)
    add_request_id_middleware(app)

    app.logger.info("Keystore TLS service startup", extra={
        'event_type': 'system_startup',
        'environment': app.config.get('ENVIRONMENT', 'unknown'),
        'ssl_enabled': bool(app.config.get('SSL_ENABLED')),
    })

    @app.errorhandler(500)
    def log_internal_error(error):
        app.logger.error(f"Internal server error: {error}", exc_info=True)
        return "Internal Server Error", 500
