"""Clinic day resolution and appointment workflow.

A clinic day is resolved in a chain: the day's document in the "days"
collection names the hosting office; the office document, its providers and
its appointments for that day are then read from the office's
sub-collections.

Appointments move through the visit stages one step at a time. Every write
stores the current stage together with the legacy milestone flags.
"""

from datetime import date, datetime
from typing import Any, Iterable, List, Optional

from clinic_intake.logging_audit import get_operation_logger, log_audit_event
from clinic_intake.models.appointment import (
    Appointment,
    ClinicDay,
    ClinicDaySummary,
    Office,
    Provider,
    VisitStage,
    advance_stage,
)
from clinic_intake.store.base import DocumentStore
from clinic_intake.utils.exceptions import ScheduleError

logger = get_operation_logger("schedule")

DAYS_COLLECTION = "days"
OFFICES_COLLECTION = "offices"


def clinic_day_key(day: date) -> str:
    """Document id of a clinic day: month-day-two digit year, no padding.

    Example:
        >>> clinic_day_key(date(2024, 3, 5))
        '3-5-24'
    """
    return f"{day.month}-{day.day}-{day:%y}"


def parse_appointment_time(value: Any) -> Optional[datetime]:
    """Parse an appointment "dateTime" value into a naive local datetime.

    Accepts datetime objects (Firestore timestamps) and ISO-8601 strings
    (JSON store). Timezone-aware values are converted to local time.

    Returns:
        Datetime, or None when the value is missing or unparseable
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def sort_appointments(appointments: Iterable[Appointment]) -> List[Appointment]:
    """Sort by start time, then id for slots starting together."""
    return sorted(appointments, key=lambda a: (a.starts_at, a.id))


def next_available_slot(appointments: Iterable[Appointment]) -> Optional[Appointment]:
    """Return the earliest unbooked appointment, or None if all are booked.

    The input order does not matter.
    """
    for appointment in sort_appointments(appointments):
        if not appointment.booked:
            return appointment
    return None


def _appointments_path(office_id: str) -> str:
    return f"{OFFICES_COLLECTION}/{office_id}/appointments"


def _providers_path(office_id: str) -> str:
    return f"{OFFICES_COLLECTION}/{office_id}/providers"


class ClinicScheduleService:
    """Reads the clinic schedule and records visit progress.

    Args:
        store: Document store holding days, offices and appointments
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # Resolution chain

    def resolve_clinic_day(self, day: date) -> Optional[ClinicDay]:
        """Find the clinic running on a day.

        Returns:
            ClinicDay, or None when there is no clinic that day or its
            document does not name an office
        """
        key = clinic_day_key(day)
        data = self.store.get(DAYS_COLLECTION, key)
        if data is None:
            logger.info(f"No clinic scheduled for {day.isoformat()} (key {key})")
            return None

        office_id = data.get("officeId")
        if not office_id:
            logger.warning(f"Clinic day {key} has no officeId; treating as no clinic")
            return None

        return ClinicDay(id=key, date=day, office_id=office_id)

    def fetch_office(self, office_id: str) -> Optional[Office]:
        """Fetch an office; missing fields fall back to placeholder text."""
        data = self.store.get(OFFICES_COLLECTION, office_id)
        if data is None:
            logger.warning(f"Office not found: {office_id}")
            return None
        return Office.from_document(office_id, data)

    def list_offices(self) -> List[Office]:
        """List offices that have both a name and an address."""
        offices = []
        for office_id, data in self.store.list(OFFICES_COLLECTION):
            if not data.get("name") or not data.get("address"):
                logger.warning(f"Skipping office {office_id}: missing name or address")
                continue
            offices.append(Office.from_document(office_id, data))
        return offices

    def fetch_providers(self, office_id: str) -> List[Provider]:
        """Providers working at an office, sorted by name."""
        providers = [
            Provider.from_document(provider_id, data)
            for provider_id, data in self.store.list(_providers_path(office_id))
        ]
        return sorted(providers, key=lambda p: (p.name.casefold(), p.id))

    def fetch_appointments(self, office_id: str, day: date) -> List[Appointment]:
        """Appointments at an office starting on a given day.

        Documents without a parseable "dateTime" are skipped.
        """
        appointments = []
        for appointment_id, data in self.store.list(_appointments_path(office_id)):
            starts_at = parse_appointment_time(data.get("dateTime"))
            if starts_at is None:
                logger.debug(f"Skipping appointment {appointment_id}: no valid dateTime")
                continue
            if starts_at.date() != day:
                continue
            appointments.append(Appointment.from_document(appointment_id, data, starts_at))

        logger.debug(
            f"Found {len(appointments)} appointments for office {office_id} "
            f"on {day.isoformat()}"
        )
        return sort_appointments(appointments)

    def resolve_day(self, day: date) -> ClinicDaySummary:
        """Resolve everything needed for a clinic day.

        An office document that is missing is replaced by placeholder details
        so the day still resolves.

        Example:
            >>> summary = ClinicScheduleService(store).resolve_day(date.today())
            >>> if summary.is_clinic_day:
            ...     slot = next_available_slot(summary.appointments)
        """
        summary = ClinicDaySummary(day=day)
        clinic_day = self.resolve_clinic_day(day)
        if clinic_day is None:
            return summary

        summary.clinic_day = clinic_day
        office = self.fetch_office(clinic_day.office_id)
        if office is None:
            office = Office.from_document(clinic_day.office_id, {})
        summary.office = office
        summary.providers = self.fetch_providers(clinic_day.office_id)
        summary.appointments = self.fetch_appointments(clinic_day.office_id, day)
        return summary

    # Visit workflow

    def get_appointment(self, office_id: str, appointment_id: str) -> Appointment:
        """Load one appointment.

        Raises:
            ScheduleError: If the appointment does not exist or has no valid
                start time
        """
        data = self.store.get(_appointments_path(office_id), appointment_id)
        if data is None:
            raise ScheduleError(
                f"Appointment {appointment_id} not found for office {office_id}"
            )
        starts_at = parse_appointment_time(data.get("dateTime"))
        if starts_at is None:
            raise ScheduleError(f"Appointment {appointment_id} has no valid dateTime")
        return Appointment.from_document(appointment_id, data, starts_at)

    def advance_appointment(
        self,
        office_id: str,
        appointment_id: str,
        target: VisitStage,
        **fields: Any,
    ) -> Appointment:
        """Move an appointment to the next visit stage and persist it.

        Args:
            office_id: Office owning the appointment
            appointment_id: Appointment id
            target: Requested stage; must directly follow the current one
            **fields: Extra document fields written with the stage

        Returns:
            Updated appointment

        Raises:
            ScheduleError: If the appointment does not exist
            InvalidStageTransitionError: If target is not the next stage
        """
        appointment = self.get_appointment(office_id, appointment_id)
        previous = appointment.stage
        appointment.stage = advance_stage(previous, target)
        appointment.booked = True

        update = appointment.stage_fields()
        update.update(fields)
        self.store.set(_appointments_path(office_id), appointment_id, update, merge=True)

        log_audit_event(
            "STAGE_ADVANCED",
            {
                "status": "success",
                "office_id": office_id,
                "appointment_id": appointment_id,
                "from_stage": previous.value if previous else "open",
                "to_stage": target.value,
            },
        )
        return appointment

    def book_appointment(
        self,
        office_id: str,
        appointment_id: str,
        patient_id: str,
        patient_name: str = "",
    ) -> Appointment:
        """Book an open slot for a patient."""
        appointment = self.advance_appointment(
            office_id,
            appointment_id,
            VisitStage.BOOKED,
            patientId=patient_id,
            patientName=patient_name,
        )
        appointment.patient_id = patient_id
        appointment.patient_name = patient_name
        return appointment

    def check_in(self, office_id: str, appointment_id: str) -> Appointment:
        return self.advance_appointment(office_id, appointment_id, VisitStage.CHECKED_IN)

    def mark_vitals_done(self, office_id: str, appointment_id: str) -> Appointment:
        return self.advance_appointment(office_id, appointment_id, VisitStage.VITALS_DONE)

    def send_to_doctor(
        self, office_id: str, appointment_id: str, provider_id: str
    ) -> Appointment:
        """Assign a provider and mark the patient as waiting for them.

        Raises:
            ScheduleError: If the provider does not work at the office
            InvalidStageTransitionError: If vitals were not recorded yet
        """
        known = {provider.id for provider in self.fetch_providers(office_id)}
        if provider_id not in known:
            raise ScheduleError(
                f"Provider {provider_id} is not registered at office {office_id}"
            )
        appointment = self.advance_appointment(
            office_id,
            appointment_id,
            VisitStage.SENT_TO_DOCTOR,
            providerId=provider_id,
        )
        appointment.provider_id = provider_id
        return appointment

    def mark_seen(self, office_id: str, appointment_id: str) -> Appointment:
        return self.advance_appointment(
            office_id, appointment_id, VisitStage.SEEN_BY_DOCTOR
        )
