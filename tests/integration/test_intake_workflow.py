"""Integration tests for the clinic intake workflow.

Covers a patient's full pass through a clinic day: booking the next open
slot, check-in, filling and signing the intake form, uploading it to the
mock upload server, recording vitals and the doctor visit.
"""

import json
from datetime import date
from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from pypdf import PdfReader

from clinic_intake.cli.main import cli
from clinic_intake.clinic import (
    ClinicScheduleService,
    IntakeSession,
    PatientRepository,
    next_available_slot,
)
from clinic_intake.mock_server.upload_endpoint import get_uploads
from clinic_intake.models.appointment import VisitStage
from clinic_intake.models.vitals import Vitals
from clinic_intake.template_engine import materialize
from clinic_intake.transport import DriveUploader, StaticTokenProvider
from clinic_intake.utils.exceptions import (
    InvalidStageTransitionError,
    UploadError,
    UploadFailureReason,
)
from clinic_intake.utils.formatters import build_output_filename

pytestmark = pytest.mark.integration

MOCK_FOLDER = "intake-forms"
OFFICE_ID = "office-springfield"


class TestClinicDayWorkflow:
    """A walk-through of one patient's visit."""

    def test_patient_visit_end_to_end(
        self, clinic_store, form_template, jane_doe, signature_png, uploader, tmp_path
    ):
        """Test booking through the doctor visit with a signed, uploaded form."""
        # Arrange
        service = ClinicScheduleService(clinic_store)
        patients = PatientRepository(clinic_store)

        # Act - pick the next open slot and book it
        summary = service.resolve_day(date(2024, 3, 5))
        slot = next_available_slot(summary.appointments)
        session = IntakeSession(
            appointment_id=slot.id,
            office_id=summary.clinic_day.office_id,
            patient_id="patient-jane-doe-2",
            record=jane_doe,
        )
        service.book_appointment(OFFICE_ID, slot.id, session.patient_id, jane_doe.full_name)
        service.check_in(OFFICE_ID, slot.id)
        patients.save(session.patient_id, session.record)

        # Act - produce and deliver the form
        result = materialize(form_template, session.record, signature=signature_png)
        filename = build_output_filename(jane_doe.first_name, jane_doe.last_name)
        upload = uploader.upload(result.content, filename)

        # Act - clinical steps
        patients.record_vitals(
            session.patient_id, Vitals(heart_rate=72, chief_complaint="Cough"), session=session
        )
        service.send_to_doctor(OFFICE_ID, slot.id, "dr-lee")
        final = service.mark_seen(OFFICE_ID, slot.id)

        # Assert - schedule
        assert slot.id == "appt-0930"
        assert final.stage is VisitStage.SEEN_BY_DOCTOR
        stored = clinic_store.get(f"offices/{OFFICE_ID}/appointments", slot.id)
        assert stored["patientId"] == "patient-jane-doe-2"
        assert stored["providerId"] == "dr-lee"
        next_slot = next_available_slot(service.resolve_day(date(2024, 3, 5)).appointments)
        assert next_slot.id == "appt-1000"

        # Assert - patient documents
        assert patients.fetch(session.patient_id).full_name == "Jane Doe"
        assert patients.fetch_vitals(session.patient_id).heart_rate == 72

        # Assert - uploaded form
        assert result.is_success
        assert result.stamped_placements == 7
        assert upload.folder_id == MOCK_FOLDER
        stored_upload = get_uploads()[upload.file_id]
        assert stored_upload["name"] == filename
        uploaded_bytes = Path(stored_upload["path"]).read_bytes()
        assert uploaded_bytes == result.content
        fields = PdfReader(BytesIO(uploaded_bytes)).get_form_text_fields()
        assert fields["FullName"] == "Jane Doe"
        assert fields["FemaleCheck"] == "X"
        assert fields["Date_9"] == "03/05/2024"

    def test_vitals_before_check_in_is_refused(self, clinic_store):
        """Test vitals cannot mark an open slot as done."""
        # Arrange
        patients = PatientRepository(clinic_store)
        session = IntakeSession(appointment_id="appt-1000", office_id=OFFICE_ID)

        # Act & Assert
        with pytest.raises(InvalidStageTransitionError):
            patients.record_vitals("patient-x", Vitals(spo2=98), session=session)
        slot = clinic_store.get(f"offices/{OFFICE_ID}/appointments", "appt-1000")
        assert "stage" not in slot
        assert clinic_store.get("patients", "patient-x") is None


class TestUploadToMockServer:
    """Uploads against the mock server's rules."""

    def test_upload_file_from_disk(self, uploader, template_file):
        """Test uploading a saved PDF keeps its name."""
        # Act
        result = uploader.upload_file(template_file)

        # Assert
        assert result.filename == "intake-form.pdf"
        assert result.size_bytes == template_file.stat().st_size
        assert get_uploads()[result.file_id]["folder_id"] == MOCK_FOLDER

    def test_wrong_token_is_rejected(self, drive_config, mock_server_session):
        """Test the mock server's 401 becomes an UPLOAD_REJECTED error."""
        # Arrange
        uploader = DriveUploader(
            drive_config, StaticTokenProvider("wrong-token"), session=mock_server_session
        )

        # Act
        with pytest.raises(UploadError) as exc_info:
            uploader.upload(b"%PDF-1.7 form", "form.pdf")

        # Assert
        assert exc_info.value.reason is UploadFailureReason.UPLOAD_REJECTED
        assert exc_info.value.status_code == 401
        assert get_uploads() == {}

    def test_unknown_folder_is_rejected(self, uploader):
        """Test a folder the server does not know returns 404."""
        # Act
        with pytest.raises(UploadError) as exc_info:
            uploader.upload(b"%PDF-1.7 form", "form.pdf", folder_id="someone-elses-folder")

        # Assert
        assert exc_info.value.status_code == 404
        assert "someone-elses-folder" in str(exc_info.value)


class TestCliWorkflow:
    """The form fill command against the mock server."""

    def test_fill_and_upload_from_cli(
        self, tmp_path, template_file, clinic_store_file, drive_config, mock_server_session,
        signature_png,
    ):
        """Test form fill --upload stores the signed form in the shared folder."""
        # Arrange
        config_file = tmp_path / "config.json"
        config_file.write_text(
            json.dumps(
                {
                    "templates": {"template_path": str(template_file)},
                    "output": {"output_dir": str(tmp_path / "output"), "keep_local_copy": False},
                    "drive": drive_config.model_dump(),
                    "datastore": {"json_path": str(clinic_store_file)},
                }
            )
        )
        record_file = tmp_path / "record.json"
        record_file.write_text(
            json.dumps({"firstName": "Carlos", "lastName": "Rivera", "gender": "Male"})
        )
        signature = tmp_path / "signature.png"
        signature.write_bytes(signature_png)

        def build_uploader(config, token_provider, transport=None):
            return DriveUploader(config, token_provider, session=mock_server_session)

        # Act
        with patch(
            "clinic_intake.cli.form_commands.DriveUploader", side_effect=build_uploader
        ):
            result = CliRunner().invoke(
                cli,
                [
                    "--config", str(config_file),
                    "--log-file", str(tmp_path / "cli.log"),
                    "form", "fill", str(record_file),
                    "--signature", str(signature),
                    "--upload", "--token", "integration-token",
                ],
            )

        # Assert
        assert result.exit_code == 0, result.output
        assert "✓ Uploaded ClinicForm_" in result.output
        assert "Saved:" not in result.output
        assert not (tmp_path / "output").exists()
        (upload,) = get_uploads().values()
        assert upload["name"].endswith("_Carlos_Rivera.pdf")
        fields = PdfReader(upload["path"]).get_form_text_fields()
        assert fields["MaleCheck"] == "X"
        assert fields["FullName"] == "Carlos Rivera"
