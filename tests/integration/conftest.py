"""Integration test fixtures and configuration.

This module provides fixtures for integration tests, including:
- The mock upload server behind a requests session
- An uploader wired to that session

Requests are routed into the Flask test client through a transport
adapter, so the real DriveUploader code path runs without opening a port.
"""

import logging
from pathlib import Path
from typing import Iterator
from urllib.parse import urlsplit

import pytest
import requests
from flask.testing import FlaskClient
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

from clinic_intake.config.schema import DriveConfig
from clinic_intake.mock_server.app import app, initialize_app
from clinic_intake.mock_server.config import MockServerConfig
from clinic_intake.transport import DriveUploader, StaticTokenProvider


logger = logging.getLogger(__name__)

MOCK_BASE_URL = "http://mock-drive.test"
MOCK_TOKEN = "integration-token"
MOCK_FOLDER = "intake-forms"


class FlaskTestAdapter(BaseAdapter):
    """Transport adapter sending prepared requests to a Flask test client."""

    def __init__(self, client: FlaskClient) -> None:
        super().__init__()
        self.client = client

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        parts = urlsplit(request.url)
        flask_response = self.client.open(
            parts.path,
            method=request.method,
            query_string=parts.query,
            data=request.body,
            headers=dict(request.headers),
        )

        response = requests.Response()
        response.status_code = flask_response.status_code
        response.headers = CaseInsensitiveDict(flask_response.headers)
        response._content = flask_response.get_data()
        response.encoding = "utf-8"
        response.url = request.url
        response.request = request
        return response

    def close(self) -> None:
        pass


@pytest.fixture
def mock_server_config(tmp_path: Path) -> MockServerConfig:
    """Mock server storing uploads under tmp_path."""
    return MockServerConfig(
        storage_dir=str(tmp_path / "uploads"),
        log_path=str(tmp_path / "logs" / "mock-server.log"),
        required_token=MOCK_TOKEN,
        allowed_folders=[MOCK_FOLDER],
    )


@pytest.fixture
def mock_server_client(mock_server_config: MockServerConfig) -> FlaskClient:
    """Flask test client for an initialized mock server."""
    initialize_app(mock_server_config)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def mock_server_session(mock_server_client: FlaskClient) -> Iterator[requests.Session]:
    """requests session whose traffic reaches the mock server."""
    session = requests.Session()
    session.mount(MOCK_BASE_URL, FlaskTestAdapter(mock_server_client))
    yield session
    session.close()


@pytest.fixture
def drive_config() -> DriveConfig:
    return DriveConfig(
        upload_url=f"{MOCK_BASE_URL}/upload/drive/v3/files?uploadType=multipart&fields=id",
        folder_id=MOCK_FOLDER,
    )


@pytest.fixture
def uploader(drive_config: DriveConfig, mock_server_session: requests.Session) -> DriveUploader:
    """Uploader posting to the mock server."""
    return DriveUploader(
        drive_config,
        StaticTokenProvider(MOCK_TOKEN),
        session=mock_server_session,
    )
