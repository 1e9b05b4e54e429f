import logging

from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

import config

# Configure logging
logging.basicConfig(level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO), format=config.LOG_FORMAT)

# Create the app
app = Flask(__name__)
app.secret_key = config.SESSION_SECRET
app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

# Import routes to register them with the app
import routes  # noqa: E402,F401


# JSON error handlers; the UI only ever parses JSON from this service
@app.errorhandler(400)
def bad_request(error):
    return jsonify({'error': 'Bad Request',
                    'message': 'The request could not be understood due to malformed syntax.'}), 400


@app.errorhandler(404)
def not_found(error):
    return jsonify({'error': 'Not Found', 'message': 'The requested endpoint does not exist.'}), 404


@app.errorhandler(405)
def method_not_allowed(error):
    return jsonify({'error': 'Method Not Allowed'}), 405


@app.errorhandler(500)
def internal_error(error):
    logging.error(f"Internal server error: {error}")
    return jsonify({'error': 'Internal Server Error',
                    'message': 'An unexpected error occurred. Please try again later.'}), 500
