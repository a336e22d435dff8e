"""Flask application for the mock file upload service."""

import logging
import signal
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

from flask import Flask, jsonify, request

from .config import MockServerConfig, load_config
from .upload_endpoint import UPLOAD_ENDPOINT, get_uploads, register_upload_endpoint

_server_start_time: datetime | None = None
_request_count: int = 0
_config: MockServerConfig | None = None

app = Flask(__name__)


def setup_logging(config: MockServerConfig) -> logging.Logger:
    """Configure logging for mock server with rotation.

    Args:
        config: Mock server configuration

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("clinic_intake.mock_server")
    logger.setLevel(config.log_level)
    logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_path = Path(config.log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


logger = logging.getLogger("clinic_intake.mock_server")


@app.before_request
def log_request():
    """Log all incoming requests."""
    global _request_count
    _request_count += 1

    logger.info(
        f"Request #{_request_count}: {request.method} {request.path} "
        f"(Content-Length: {request.content_length or 0})"
    )


@app.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint.

    Returns JSON with server status, port, endpoints, uptime, request count,
    stored upload count and timestamp.
    """
    uptime_seconds = 0
    if _server_start_time:
        uptime_seconds = int((datetime.now(timezone.utc) - _server_start_time).total_seconds())

    health_response = {
        "status": "healthy",
        "version": "1.0.0",
        "port": _config.port if _config else 8090,
        "endpoints": ["/health", UPLOAD_ENDPOINT],
        "uptime_seconds": uptime_seconds,
        "request_count": _request_count,
        "upload_count": len(get_uploads()),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    return jsonify(health_response), 200


@app.errorhandler(404)
def not_found(error):
    """Answer unknown paths with a Drive-style error object."""
    return jsonify({"error": {"code": 404, "message": f"Not found: {request.path}"}}), 404


@app.errorhandler(500)
def internal_error(error):
    """Answer server errors with a Drive-style error object."""
    logger.error(f"Internal server error: {error}")
    return jsonify({"error": {"code": 500, "message": "Internal Server Error"}}), 500


def setup_graceful_shutdown():
    """Setup graceful shutdown handlers for SIGTERM and SIGINT.

    Signal handlers can only be registered in the main thread; elsewhere a
    warning is logged and the server runs without them.
    """
    def shutdown_handler(signum, frame):
        logger.info(f"Received shutdown signal ({signum}), shutting down mock server")
        sys.exit(0)

    try:
        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)
    except ValueError as e:
        logger.warning(
            f"Could not register signal handlers (not in main thread): {e}. "
            f"Graceful shutdown via signals will not be available."
        )


def initialize_app(config: MockServerConfig) -> None:
    """Initialize Flask app with configuration.

    Args:
        config: Mock server configuration
    """
    global _config, _server_start_time, _request_count
    _config = config
    _server_start_time = datetime.now(timezone.utc)
    _request_count = 0

    setup_logging(config)
    register_upload_endpoint(app, config)
    Path(config.storage_dir).mkdir(parents=True, exist_ok=True)
    logger.info("Mock server application initialized")


def run_server(
    host: str | None = None,
    port: int | None = None,
    config: MockServerConfig | None = None,
    debug: bool = False,
) -> None:
    """Run the Flask mock server.

    Args:
        host: Host address; defaults to config.host
        port: Port number; defaults to config.port
        config: Mock server configuration (loads from file if not provided)
        debug: Enable debug mode (default: False)
    """
    if config is None:
        config = load_config()
    if host is not None:
        config.host = host
    if port is not None:
        config.port = port

    initialize_app(config)
    setup_graceful_shutdown()

    logger.info(f"Starting mock upload server on http://{config.host}:{config.port}")
    logger.info(f"Uploads accepted at: http://{config.host}:{config.port}{UPLOAD_ENDPOINT}")

    app.run(
        host=config.host,
        port=config.port,
        debug=debug,
        use_reloader=False,
    )


if __name__ == "__main__":
    run_server()
