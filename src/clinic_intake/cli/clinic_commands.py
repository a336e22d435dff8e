"""Clinic day CLI commands.

Commands:
    clinic today - Show the office, providers and appointments for a day
    clinic advance <office> <appointment> <stage> - Move a visit forward
    clinic send-to-doctor <office> <appointment> <provider> - Assign a provider
    clinic record-vitals <patient> <vitals.json> - Store a patient's vitals
"""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import click

from clinic_intake.clinic import (
    ClinicScheduleService,
    IntakeSession,
    PatientRepository,
    next_available_slot,
)
from clinic_intake.config import load_config
from clinic_intake.models.appointment import Appointment, VisitStage
from clinic_intake.models.vitals import Vitals
from clinic_intake.store import DocumentStore, JsonDocumentStore, create_store
from clinic_intake.utils.exceptions import ClinicIntakeError, ValidationError

logger = logging.getLogger(__name__)

STORE_OPTION_HELP = "JSON document store file (overrides the configured data store)"


def _open_store(ctx: click.Context, store_path: Optional[Path]) -> DocumentStore:
    if store_path:
        logger.info(f"Using JSON document store: {store_path}")
        return JsonDocumentStore(store_path)
    if ctx.obj and "config" in ctx.obj:
        config_obj = ctx.obj["config"]
    else:
        config_obj = load_config()
    return create_store(config_obj.datastore)


def _fail(e: Exception) -> None:
    click.secho(f"✗ {type(e).__name__}: {e}", fg="red")
    logger.error(f"Clinic command failed: {e}")
    raise click.exceptions.Exit(1)


def _describe(appointment: Appointment) -> str:
    stage = appointment.stage.label if appointment.stage else "Open"
    return f"{appointment.time} {appointment.patient_name or '-'} [{stage}]"


@click.group(name="clinic")
def clinic_group() -> None:
    """Clinic day workflow commands.

    Use these commands to look up the clinic scheduled for a day and move
    patients through check-in, vitals and the doctor visit.
    """


@clinic_group.command(name="today")
@click.option(
    "--date",
    "day",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Day to show (YYYY-MM-DD, default: today)",
)
@click.option("--store", "store_path", type=click.Path(path_type=Path), help=STORE_OPTION_HELP)
@click.pass_context
def today_command(ctx: click.Context, day: Optional[datetime], store_path: Optional[Path]) -> None:
    """Show the clinic scheduled for a day.

    Examples:
        clinic-intake clinic today

        clinic-intake clinic today --date 2024-03-05 --store data/clinic-store.json
    """
    target = day.date() if day else date.today()
    try:
        service = ClinicScheduleService(_open_store(ctx, store_path))
        summary = service.resolve_day(target)
    except ClinicIntakeError as e:
        _fail(e)

    click.echo("=" * 50)
    click.echo(f"CLINIC DAY {target:%m/%d/%Y}")
    click.echo("=" * 50)

    if not summary.is_clinic_day:
        click.secho("No clinic is scheduled for this day.", fg="yellow")
        return

    office = summary.office
    click.echo(f"Office:  {office.name}")
    click.echo(f"Address: {office.address}")
    click.echo(f"Phone:   {office.phone}")

    click.echo(f"\nProviders ({len(summary.providers)}):")
    for provider in summary.providers:
        click.echo(f"  - {provider.name} ({provider.specialty}) [{provider.id}]")

    click.echo(f"\nAppointments ({summary.booked_count}/{len(summary.appointments)} booked):")
    for appointment in summary.appointments:
        line = f"  {appointment.time:>8}  {appointment.status:<9} {appointment.patient_name or '-'}"
        if appointment.notes:
            line += f"  ({appointment.notes})"
        click.echo(f"{line}  [{appointment.id}]")

    slot = next_available_slot(summary.appointments)
    if slot:
        click.secho(f"\nNext available slot: {slot.time} [{slot.id}]", fg="green")
    else:
        click.secho("\nNo open slots remaining.", fg="yellow")


@clinic_group.command(name="advance")
@click.argument("office_id")
@click.argument("appointment_id")
@click.argument("stage", type=click.Choice([stage.value for stage in VisitStage]))
@click.option("--patient-id", default=None, help="Patient to book (required for 'booked')")
@click.option("--patient-name", default="", help="Patient display name for 'booked'")
@click.option("--provider-id", default=None, help="Provider (required for 'sent_to_doctor')")
@click.option("--store", "store_path", type=click.Path(path_type=Path), help=STORE_OPTION_HELP)
@click.pass_context
def advance_command(
    ctx: click.Context,
    office_id: str,
    appointment_id: str,
    stage: str,
    patient_id: Optional[str],
    patient_name: str,
    provider_id: Optional[str],
    store_path: Optional[Path],
) -> None:
    """Move an appointment to its next visit stage.

    Stages: booked, checked_in, vitals_done, sent_to_doctor, seen_by_doctor.

    Example:
        clinic-intake clinic advance office1 appt-0900 checked_in
    """
    target = VisitStage(stage)
    try:
        service = ClinicScheduleService(_open_store(ctx, store_path))
        if target is VisitStage.BOOKED:
            if not patient_id:
                raise ValidationError("--patient-id is required to book an appointment")
            appointment = service.book_appointment(
                office_id, appointment_id, patient_id, patient_name
            )
        elif target is VisitStage.SENT_TO_DOCTOR:
            if not provider_id:
                raise ValidationError("--provider-id is required to send a patient to the doctor")
            appointment = service.send_to_doctor(office_id, appointment_id, provider_id)
        else:
            appointment = service.advance_appointment(office_id, appointment_id, target)
    except ClinicIntakeError as e:
        _fail(e)

    click.secho(f"✓ {_describe(appointment)}", fg="green")


@clinic_group.command(name="send-to-doctor")
@click.argument("office_id")
@click.argument("appointment_id")
@click.argument("provider_id")
@click.option("--store", "store_path", type=click.Path(path_type=Path), help=STORE_OPTION_HELP)
@click.pass_context
def send_to_doctor_command(
    ctx: click.Context,
    office_id: str,
    appointment_id: str,
    provider_id: str,
    store_path: Optional[Path],
) -> None:
    """Assign a provider to a patient whose vitals are done.

    Example:
        clinic-intake clinic send-to-doctor office1 appt-0900 dr-lee
    """
    try:
        service = ClinicScheduleService(_open_store(ctx, store_path))
        appointment = service.send_to_doctor(office_id, appointment_id, provider_id)
    except ClinicIntakeError as e:
        _fail(e)

    click.secho(f"✓ {_describe(appointment)} with provider {provider_id}", fg="green")


@clinic_group.command(name="record-vitals")
@click.argument("patient_id")
@click.argument("vitals_file", type=click.Path(exists=True, path_type=Path))
@click.option("--office-id", default=None, help="Office of the patient's appointment")
@click.option("--appointment-id", default="", help="Appointment to mark as vitals done")
@click.option("--store", "store_path", type=click.Path(path_type=Path), help=STORE_OPTION_HELP)
@click.pass_context
def record_vitals_command(
    ctx: click.Context,
    patient_id: str,
    vitals_file: Path,
    office_id: Optional[str],
    appointment_id: str,
    store_path: Optional[Path],
) -> None:
    """Store vitals for a patient.

    With --office-id and --appointment-id the appointment also moves to the
    vitals-done stage.

    Example:
        clinic-intake clinic record-vitals p1 vitals.json --office-id office1 --appointment-id appt-0900
    """
    try:
        try:
            data = json.loads(vitals_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ValidationError(f"Cannot read vitals from {vitals_file}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Vitals file {vitals_file} must hold a JSON object")

        vitals = Vitals.from_mapping(data)
        session = IntakeSession(
            appointment_id=appointment_id, office_id=office_id, patient_id=patient_id
        )
        PatientRepository(_open_store(ctx, store_path)).record_vitals(
            patient_id, vitals, session=session
        )
    except ClinicIntakeError as e:
        _fail(e)

    click.secho(f"✓ Vitals recorded for patient {patient_id}", fg="green")
    if session.has_appointment:
        click.echo(f"  Appointment {appointment_id} marked vitals done")
