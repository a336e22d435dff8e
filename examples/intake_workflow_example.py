"""End-to-end intake workflow example.

This module demonstrates the programmatic API: resolving today's clinic,
filling and signing an intake form, uploading it, and moving the patient
through the visit stages.

Run from the project root with the mock upload server running:

    clinic-intake mock start --background
    CLINIC_INTAKE_DRIVE_TOKEN=local-dev-token python examples/intake_workflow_example.py
"""

import json
import logging
from datetime import date
from pathlib import Path

from clinic_intake.clinic import ClinicScheduleService, IntakeSession, next_available_slot
from clinic_intake.config import load_config
from clinic_intake.models.intake import Ethnicity, Gender, IntakeRecord, Race
from clinic_intake.store import JsonDocumentStore
from clinic_intake.template_engine import TemplateLoader, materialize
from clinic_intake.transport import DriveUploader, StaticTokenProvider
from clinic_intake.utils.exceptions import ClinicIntakeError, create_error_info
from clinic_intake.utils.formatters import build_output_filename, parse_formatted_address

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def example_1_resolve_clinic_day(service: ClinicScheduleService) -> IntakeSession:
    """Example 1: Find the clinic for a day and pick the next open slot."""
    print("=" * 80)
    print("EXAMPLE 1: Resolve Clinic Day")
    print("=" * 80)

    summary = service.resolve_day(date(2024, 3, 5))
    if not summary.is_clinic_day:
        print("No clinic scheduled.")
        return IntakeSession()

    print(f"Office: {summary.office.name} ({summary.office.phone})")
    for appointment in summary.appointments:
        print(f"  {appointment.time:>8}  {appointment.status}")

    slot = next_available_slot(summary.appointments)
    print(f"Next available slot: {slot.time if slot else 'none'}")
    print()
    return IntakeSession(
        appointment_id=slot.id if slot else "",
        office_id=summary.clinic_day.office_id,
    )


def example_2_fill_form(session: IntakeSession) -> bytes:
    """Example 2: Collect answers and materialize the signed form."""
    print("=" * 80)
    print("EXAMPLE 2: Fill and Sign the Intake Form")
    print("=" * 80)

    session.record = IntakeRecord(
        first_name="Jane",
        last_name="Doe",
        dob="04/12/1986",
        gender=Gender.FEMALE,
        race=Race.WHITE,
        ethnicity=Ethnicity.NOT_HISPANIC,
        income="3 Persons - $4143 or Less",
        uninsured=True,
        is_existing_patient=False,
        form_date=date.today(),
    ).with_address(parse_formatted_address("123 Main St, Springfield, IL 62701, USA"))

    config = load_config(Path("examples/config.example.json"))
    template = TemplateLoader().load_from_file(
        Path(config.templates.template_path), version=config.templates.template_version
    )
    signature = Path("examples/signature.png")
    result = materialize(
        template, session.record, signature=signature if signature.exists() else None
    )

    print(f"Status: {result.status.value}")
    print(f"Filled fields: {len(result.filled_fields)}")
    print(f"Signature lines: {result.stamped_placements}")
    print()
    return result.content or b""


def example_3_upload(content: bytes, record: IntakeRecord) -> None:
    """Example 3: Upload the form to the shared folder."""
    print("=" * 80)
    print("EXAMPLE 3: Upload")
    print("=" * 80)

    config = load_config(Path("examples/config.example.json"))
    uploader = DriveUploader(
        config.drive,
        StaticTokenProvider(env_var=config.drive.token_env_var),
        transport=config.transport,
    )
    filename = build_output_filename(record.first_name, record.last_name)
    try:
        result = uploader.upload(content, filename)
        print(f"Uploaded {filename} as {result.file_id}")
    except ClinicIntakeError as e:
        error_info = create_error_info(e, patient_name=record.full_name)
        print(f"Upload failed: {error_info.message}")
        print(f"Remediation: {error_info.remediation}")
    finally:
        uploader.close()
    print()


def main():
    """Run all examples against the sample clinic store."""
    # In-memory copy so the sample file is left unchanged
    store = JsonDocumentStore(data=json.loads(Path("examples/clinic_store.json").read_text()))
    service = ClinicScheduleService(store)

    session = example_1_resolve_clinic_day(service)
    content = example_2_fill_form(session)
    if content:
        example_3_upload(content, session.record)

    if session.has_appointment:
        service.book_appointment(
            session.office_id, session.appointment_id, "patient-jane-doe", "Jane Doe"
        )
        appointment = service.check_in(session.office_id, session.appointment_id)
        print(f"Appointment {appointment.id}: {appointment.notes}")


if __name__ == "__main__":
    main()
