"""Mock file upload service for local development and tests."""

from .app import app, initialize_app, run_server
from .config import MockServerConfig, load_config

__all__ = ["app", "initialize_app", "run_server", "MockServerConfig", "load_config"]
