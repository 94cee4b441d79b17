"""
Admin Panel WSGI Entry Point

Usage Examples:
    # Production WSGI deployment
    gunicorn "app:application"

    # Development server
    python app.py --config development --port 5000
"""

import argparse
import os
import signal
import sys

from admin_panel import SUPPORTED_ENVIRONMENTS
from admin_panel.app import cleanup_application, create_app
from admin_panel.monitoring.logging import get_logger

logger = get_logger(__name__)

# WSGI application instance for deployment
application = create_app(os.getenv('FLASK_ENV', 'production'))


def _handle_shutdown(signum, frame):
    logger.info("Shutdown signal received", signal=signum)
    cleanup_application(application)
    sys.exit(0)


signal.signal(signal.SIGTERM, _handle_shutdown)


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Admin panel development server')
    parser.add_argument('--host', default=os.getenv('HOST', '127.0.0.1'))
    parser.add_argument('--port', type=int, default=int(os.getenv('PORT', '5000')))
    parser.add_argument('--debug', action='store_true')
    parser.add_argument(
        '--config',
        default=os.getenv('FLASK_ENV', 'development'),
        choices=SUPPORTED_ENVIRONMENTS,
        help='Configuration environment (default: development)'
    )
    args = parser.parse_args()

    dev_app = application
    if args.config != os.getenv('FLASK_ENV', 'production'):
        cleanup_application(application)
        dev_app = create_app(args.config)

    try:
        dev_app.run(host=args.host, port=args.port, debug=args.debug, threaded=True)
    except KeyboardInterrupt:
        logger.info("Development server stopped by user")
    finally:
        cleanup_application(dev_app)
