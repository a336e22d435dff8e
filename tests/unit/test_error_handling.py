"""Unit tests for error categorization and remediation guidance."""

import pytest
from requests.exceptions import ConnectionError, HTTPError, SSLError, Timeout
from unittest.mock import Mock

from clinic_intake.utils.exceptions import (
    ConfigurationError,
    DataStoreError,
    ErrorCategory,
    InvalidStageTransitionError,
    ScheduleError,
    SerializationError,
    SignatureImageError,
    TemplateLoadError,
    UploadError,
    UploadFailureReason,
    ValidationError,
    categorize_error,
    create_error_info,
)


class TestErrorCategorization:
    """Test error categorization functionality."""

    def test_connection_error_is_critical(self):
        assert categorize_error(ConnectionError("Network unreachable")) == ErrorCategory.CRITICAL

    def test_ssl_error_is_critical(self):
        assert categorize_error(SSLError("bad cert")) == ErrorCategory.CRITICAL

    def test_configuration_error_is_critical(self):
        assert categorize_error(ConfigurationError("bad")) == ErrorCategory.CRITICAL

    def test_timeout_is_transient(self):
        assert categorize_error(Timeout("slow")) == ErrorCategory.TRANSIENT

    def test_datastore_error_is_transient(self):
        assert categorize_error(DataStoreError("unavailable")) == ErrorCategory.TRANSIENT

    @pytest.mark.parametrize("status_code", [429, 500, 503])
    def test_upload_server_errors_are_transient(self, status_code):
        error = UploadError("rejected", UploadFailureReason.UPLOAD_REJECTED, status_code)
        assert categorize_error(error) == ErrorCategory.TRANSIENT

    @pytest.mark.parametrize("status_code", [None, 401, 404])
    def test_upload_client_errors_are_permanent(self, status_code):
        error = UploadError("rejected", UploadFailureReason.UPLOAD_REJECTED, status_code)
        assert categorize_error(error) == ErrorCategory.PERMANENT

    def test_http_error_by_status(self):
        server = HTTPError(response=Mock(status_code=502))
        client = HTTPError(response=Mock(status_code=400))

        assert categorize_error(server) == ErrorCategory.TRANSIENT
        assert categorize_error(client) == ErrorCategory.PERMANENT

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad row"),
            TemplateLoadError("missing"),
            SerializationError("write failed"),
            SignatureImageError("bad png"),
            ScheduleError("no appointment"),
            InvalidStageTransitionError("out of order"),
            Exception("anything else"),
        ],
    )
    def test_permanent_errors(self, error):
        assert categorize_error(error) == ErrorCategory.PERMANENT


class TestErrorInfoCreation:
    """Test structured error info."""

    def test_error_info_fields(self):
        # Arrange
        error = TemplateLoadError("Template file not found: intake.pdf")

        # Act
        info = create_error_info(error, patient_name="Jane Doe")

        # Assert
        assert info.category == ErrorCategory.PERMANENT
        assert info.error_type == "TemplateLoadError"
        assert info.message == "Template file not found: intake.pdf"
        assert "templates.template_path" in info.remediation
        assert info.is_retryable is False
        assert info.patient_name == "Jane Doe"

    def test_transient_error_is_retryable(self):
        assert create_error_info(Timeout("slow")).is_retryable is True

    def test_technical_details_from_cause(self):
        try:
            try:
                raise OSError("disk full")
            except OSError as e:
                raise SerializationError("cannot write") from e
        except SerializationError as error:
            info = create_error_info(error)

        assert info.technical_details == "Caused by: OSError: disk full"
        assert "fill the form again" in info.remediation

    @pytest.mark.parametrize(
        "error,expected",
        [
            (SignatureImageError("x"), "Capture the signature again"),
            (InvalidStageTransitionError("x"), "Visit steps must happen in order"),
            (
                UploadError("x", UploadFailureReason.INVALID_DESTINATION),
                "drive.folder_id",
            ),
            (UploadError("x", UploadFailureReason.DATA_UNAVAILABLE), "Generate the form again"),
            (UploadError("x", UploadFailureReason.UPLOAD_REJECTED, 403), "access token"),
            (ConnectionError("x"), "drive.upload_url"),
            (Timeout("x"), "transport.timeout_read"),
            (ValidationError("x"), "intake_sample.csv"),
            (ConfigurationError("x"), "config.example.json"),
            (DataStoreError("x"), "datastore settings"),
        ],
    )
    def test_remediation(self, error, expected):
        assert expected in create_error_info(error).remediation
