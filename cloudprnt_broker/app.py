"""
CloudPRNT Broker - Main Application
===================================

Flask wiring for the job broker between the order kiosk and a Star
CloudPRNT printer.

Run: python -m cloudprnt_broker
"""

import sys
import time
import logging
from datetime import datetime
from flask import Flask, Response, g, jsonify, request
from flask_cors import CORS

from . import __version__
from . import config
from .protocol import BrokerRequest, BrokerResponse, ProtocolHandler, ORDER_PATH, CLOUDPRNT_PATH
from .store import JobStore

logger = logging.getLogger(__name__)
access_logger = logging.getLogger('cloudprnt_broker.access')


# =============================================================================
# Application Setup
# =============================================================================

def create_app(store: JobStore = None, handler: ProtocolHandler = None) -> Flask:
    """
    Build the Flask application.

    Args:
        store: Job store to serve (a new empty one by default)
        handler: Protocol handler (built around the store by default)
    """
    if handler is None:
        if store is None:
            store = JobStore(max_finished=config.MAX_FINISHED_JOBS)
        handler = ProtocolHandler(store)
    store = handler.store

    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_BODY_BYTES
    app.extensions['cloudprnt_store'] = store
    app.extensions['cloudprnt_handler'] = handler

    # Browsers only; requests without an Origin header pass through untouched
    CORS(app, origins=config.ALLOWED_ORIGINS)

    _register_request_logging(app)
    _register_routes(app, handler)
    return app


def _register_request_logging(app: Flask):
    """One access log line per request."""

    @app.before_request
    def _start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get('request_started')
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        access_logger.info('%s %s %s %s - %.3f ms',
                           request.method, request.path, response.status_code,
                           response.content_length or '-', elapsed_ms)
        return response


def _to_broker_request() -> BrokerRequest:
    return BrokerRequest(
        method=request.method,
        path=request.path,
        query=request.args.to_dict(),
        body=request.get_json(silent=True),
    )


def _to_flask_response(result: BrokerResponse):
    if result.is_json:
        return jsonify(result.body), result.status
    return Response(result.body, status=result.status, content_type=result.content_type)


def _register_routes(app: Flask, handler: ProtocolHandler):
    store = handler.store

    # =========================================================================
    # Health & Info Endpoints
    # =========================================================================

    @app.route('/', methods=['GET'])
    def index():
        """Liveness text."""
        return Response('CloudPRNT broker is running.', content_type=config.CONTENT_TYPE)

    @app.route('/health', methods=['GET'])
    def health():
        """Health check with queue counts."""
        return jsonify({
            'status': 'online',
            'version': __version__,
            'python': sys.version.split()[0],
            'jobs': store.counts(),
            'timestamp': datetime.now().isoformat(),
        })

    # =========================================================================
    # Kiosk API
    # =========================================================================

    @app.route(ORDER_PATH, methods=['POST'])
    def submit_order():
        """Queue an order for printing."""
        return _to_flask_response(handler.handle(_to_broker_request()))

    @app.route('/api/debug/jobs', methods=['GET'])
    def debug_jobs():
        """List every job (unauthenticated; disable in production)."""
        if not config.DEBUG_ENDPOINTS:
            return jsonify({'error': 'Not found'}), 404
        return jsonify(store.to_dicts())

    # =========================================================================
    # CloudPRNT Endpoint
    # =========================================================================

    @app.route(CLOUDPRNT_PATH, methods=['POST', 'GET', 'DELETE'])
    def cloudprnt():
        """Printer poll (POST), job fetch (GET) and result (DELETE)."""
        return _to_flask_response(handler.handle(_to_broker_request()))


app = create_app()


# =============================================================================
# Main
# =============================================================================

def configure_logging(level: str = config.LOG_LEVEL):
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    # Access lines come from cloudprnt_broker.access
    logging.getLogger('werkzeug').setLevel(logging.WARNING)


def main():
    """Run the service."""
    configure_logging()

    print("=" * 60)
    print("  CloudPRNT Broker")
    print("=" * 60)
    print(f"  Version: {__version__}")
    print(f"  Port: {config.PORT}")
    print("=" * 60)
    print("  Kiosk API:")
    print("    POST   /api/order                     - Queue order text")
    print("    GET    /api/debug/jobs                - List jobs")
    print("  CloudPRNT (configure the printer to this URL):")
    print("    POST   /cloudprnt                     - Printer poll")
    print("    GET    /cloudprnt?job_token=          - Fetch job")
    print("    DELETE /cloudprnt?job_token=&status=  - Print result")
    print("=" * 60)

    logger.info('CloudPRNT broker listening on %s:%s', config.HOST, config.PORT)
    app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG, threaded=True)


if __name__ == '__main__':
    main()
