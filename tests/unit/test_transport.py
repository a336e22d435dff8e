"""Unit tests for the pooled HTTP client and the upload client."""

import json
from pathlib import Path
from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from clinic_intake.config.schema import DriveConfig, TransportConfig
from clinic_intake.mock_server.upload_endpoint import parse_multipart_related
from clinic_intake.transport.drive_client import (
    DriveUploader,
    StaticTokenProvider,
    build_multipart_body,
)
from clinic_intake.transport.http_client import (
    RETRY_METHODS,
    ConnectionPool,
    ConnectionPoolConfig,
)
from clinic_intake.utils.exceptions import (
    ConfigurationError,
    UploadError,
    UploadFailureReason,
)

UPLOAD_URL = "http://127.0.0.1:8090/upload/drive/v3/files?uploadType=multipart"


def _response(status_code: int, payload=None, text: str = "") -> Mock:
    response = Mock(status_code=status_code)
    if payload is None:
        response.json.side_effect = ValueError("no json")
        response.text = text
    else:
        response.json.return_value = payload
        response.text = json.dumps(payload)
    return response


@pytest.fixture
def drive_config() -> DriveConfig:
    return DriveConfig(upload_url=UPLOAD_URL, folder_id="intake-forms")


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


class TestConnectionPool:
    """Tests for the pooled session."""

    def test_invalid_config(self):
        with pytest.raises(ValueError, match="max_connections"):
            ConnectionPoolConfig(max_connections=0)
        with pytest.raises(ValueError, match="retry_count"):
            ConnectionPoolConfig(retry_count=-1)

    def test_from_transport_config(self):
        config = ConnectionPoolConfig.from_transport_config(
            TransportConfig(max_retries=5, backoff_factor=0.5, verify_tls=False)
        )

        assert config.retry_count == 5
        assert config.backoff_factor == 0.5
        assert config.verify_tls is False

    def test_session_reused_and_closed(self):
        # Arrange
        pool = ConnectionPool(ConnectionPoolConfig(retry_count=2))

        # Act
        first = pool.get_session()
        second = pool.get_session()

        # Assert
        assert first is second
        retries = first.get_adapter("https://example.com").max_retries
        assert retries.total == 2
        assert "POST" not in retries.allowed_methods
        pool.close()
        assert pool.get_session() is not first

    def test_context_manager_closes(self):
        with ConnectionPool() as pool:
            pool.get_session()
        assert pool._session is None

    def test_post_is_never_retried(self):
        assert "POST" not in RETRY_METHODS


class TestStaticTokenProvider:
    """Tests for StaticTokenProvider."""

    def test_explicit_token(self, monkeypatch):
        monkeypatch.setenv("CLINIC_INTAKE_DRIVE_TOKEN", "from-env")
        assert StaticTokenProvider("explicit").get_token() == "explicit"

    def test_token_from_env(self, monkeypatch):
        monkeypatch.setenv("CLINIC_INTAKE_DRIVE_TOKEN", "from-env")
        assert StaticTokenProvider().get_token() == "from-env"

    def test_missing_token(self):
        with pytest.raises(ConfigurationError, match="CLINIC_INTAKE_DRIVE_TOKEN"):
            StaticTokenProvider().get_token()


class TestMultipartBody:
    """Tests for the multipart/related upload body."""

    def test_body_parts(self):
        # Arrange
        content = b"%PDF-1.7\r\n\r\nbinary\x00\xff"

        # Act
        body = build_multipart_body(content, "form.pdf", "folder-1", "BOUNDARY")
        metadata, file_bytes = parse_multipart_related(body, "BOUNDARY")

        # Assert
        assert body.startswith(b"--BOUNDARY\r\nContent-Type: application/json")
        assert body.endswith(b"--BOUNDARY--\r\n")
        assert metadata == {"name": "form.pdf", "parents": ["folder-1"]}
        assert file_bytes == content


class TestDriveUploader:
    """Tests for DriveUploader with a mocked session."""

    def test_upload_success(self, drive_config, session):
        """Test a successful upload returns the service's file id."""
        # Arrange
        session.post.return_value = _response(200, {"id": "1AbC", "name": "form.pdf"})
        uploader = DriveUploader(drive_config, StaticTokenProvider("token-1"), session=session)

        # Act
        result = uploader.upload(b"%PDF-data", "form.pdf")

        # Assert
        assert result.file_id == "1AbC"
        assert result.folder_id == "intake-forms"
        assert result.size_bytes == 9
        args, kwargs = session.post.call_args
        assert args[0] == UPLOAD_URL
        assert kwargs["headers"]["Authorization"] == "Bearer token-1"
        assert kwargs["headers"]["Content-Type"].startswith("multipart/related; boundary=")
        assert kwargs["timeout"] == (10, 30)

    def test_folder_override(self, drive_config, session):
        session.post.return_value = _response(200, {"id": "1"})
        uploader = DriveUploader(drive_config, StaticTokenProvider("t"), session=session)

        result = uploader.upload(b"data", "form.pdf", folder_id="other-folder")

        boundary = session.post.call_args.kwargs["headers"]["Content-Type"].split("boundary=")[1]
        metadata, _ = parse_multipart_related(session.post.call_args.kwargs["data"], boundary)
        assert result.folder_id == "other-folder"
        assert metadata["parents"] == ["other-folder"]

    def test_empty_content(self, drive_config, session):
        uploader = DriveUploader(drive_config, StaticTokenProvider("t"), session=session)

        with pytest.raises(UploadError) as exc_info:
            uploader.upload(b"", "form.pdf")

        assert exc_info.value.reason == UploadFailureReason.DATA_UNAVAILABLE
        session.post.assert_not_called()

    def test_missing_folder(self, session):
        uploader = DriveUploader(
            DriveConfig(upload_url=UPLOAD_URL), StaticTokenProvider("t"), session=session
        )

        with pytest.raises(UploadError) as exc_info:
            uploader.upload(b"data", "form.pdf")

        assert exc_info.value.reason == UploadFailureReason.INVALID_DESTINATION

    def test_service_error_payload(self, drive_config, session):
        session.post.return_value = _response(
            404, {"error": {"code": 404, "message": "File not found: folder-x"}}
        )
        uploader = DriveUploader(drive_config, StaticTokenProvider("t"), session=session)

        with pytest.raises(UploadError, match="File not found") as exc_info:
            uploader.upload(b"data", "form.pdf")

        assert exc_info.value.reason == UploadFailureReason.UPLOAD_REJECTED
        assert exc_info.value.status_code == 404

    def test_http_error_without_json(self, drive_config, session):
        session.post.return_value = _response(502, text="<html>Bad gateway</html>")
        uploader = DriveUploader(drive_config, StaticTokenProvider("t"), session=session)

        with pytest.raises(UploadError) as exc_info:
            uploader.upload(b"data", "form.pdf")

        assert exc_info.value.reason == UploadFailureReason.UPLOAD_REJECTED
        assert exc_info.value.status_code == 502

    def test_response_without_id(self, drive_config, session):
        session.post.return_value = _response(200, {"kind": "drive#file"})
        uploader = DriveUploader(drive_config, StaticTokenProvider("t"), session=session)

        with pytest.raises(UploadError) as exc_info:
            uploader.upload(b"data", "form.pdf")

        assert exc_info.value.reason == UploadFailureReason.MALFORMED_RESPONSE

    def test_connection_error_propagates(self, drive_config, session):
        session.post.side_effect = requests.ConnectionError("refused")
        uploader = DriveUploader(drive_config, StaticTokenProvider("t"), session=session)

        with pytest.raises(requests.ConnectionError):
            uploader.upload(b"data", "form.pdf")

    def test_failure_audited(self, drive_config, session, caplog):
        uploader = DriveUploader(drive_config, StaticTokenProvider("t"), session=session)

        with caplog.at_level("INFO"):
            with pytest.raises(UploadError):
                uploader.upload(b"", "form.pdf")

        assert "AUDIT [FORM_UPLOADED] | status=failure" in caplog.text
        assert "reason=DATA_UNAVAILABLE" in caplog.text

    def test_upload_file(self, drive_config, session, tmp_path: Path):
        path = tmp_path / "ClinicForm_Jane_Doe.pdf"
        path.write_bytes(b"%PDF-data")
        session.post.return_value = _response(200, {"id": "9"})
        uploader = DriveUploader(drive_config, StaticTokenProvider("t"), session=session)

        result = uploader.upload_file(path)

        assert result.filename == "ClinicForm_Jane_Doe.pdf"
        assert result.file_id == "9"

    def test_upload_missing_file(self, drive_config, session, tmp_path: Path):
        uploader = DriveUploader(drive_config, StaticTokenProvider("t"), session=session)

        with pytest.raises(UploadError) as exc_info:
            uploader.upload_file(tmp_path / "missing.pdf")

        assert exc_info.value.reason == UploadFailureReason.DATA_UNAVAILABLE

    def test_creates_pooled_session(self, drive_config):
        with patch("clinic_intake.transport.drive_client.ConnectionPool") as mock_pool:
            uploader = DriveUploader(drive_config, StaticTokenProvider("t"))
            uploader.close()

        assert uploader.session is mock_pool.return_value.get_session.return_value
        mock_pool.return_value.close.assert_called_once()
