import os
from flask import Flask, Blueprint, jsonify

from keystore_tls.utils.tls_setup import TLS_STATUS_ENV

def create_app():
    """
    Creates the Flask application for the Keystore TLS service.
    """
    app = Flask(__name__)
    app.config.from_object('keystore_tls.config.Config')

    bp = Blueprint('health', __name__)

    @bp.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'keystore-tls',
            'version': '1.0.0',
            # Set by the entrypoint before Gunicorn starts; TLS setup fails open
            'tls': os.environ.get(TLS_STATUS_ENV, 'unknown'),
        }), 200

    app.register_blueprint(bp)

    # Configure structured security logging
    from keystore_tls.utils.logging_config import configure_security_logging
    configure_security_logging(app)

    return app
