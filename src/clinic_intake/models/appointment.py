"""Clinic schedule data models.

This module defines offices, providers, clinic days and appointments, plus the
visit stage state machine an appointment moves through on a clinic day.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Mapping, Optional

from clinic_intake.utils.exceptions import InvalidStageTransitionError

logger = logging.getLogger(__name__)

UNKNOWN_OFFICE_NAME = "Unknown Office"
UNKNOWN_OFFICE_ADDRESS = "No Address"
UNKNOWN_OFFICE_PHONE = "No Phone"
UNKNOWN_PROVIDER_NAME = "Unknown Provider"
DEFAULT_SPECIALTY = "General"


class VisitStage(Enum):
    """Ordered stages of a patient visit.

    Each appointment holds exactly one current stage. Stages only move one
    step forward; see advance_stage().
    """

    BOOKED = "booked"
    CHECKED_IN = "checked_in"
    VITALS_DONE = "vitals_done"
    SENT_TO_DOCTOR = "sent_to_doctor"
    SEEN_BY_DOCTOR = "seen_by_doctor"

    @property
    def order(self) -> int:
        return STAGE_ORDER.index(self)

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


STAGE_ORDER: tuple[VisitStage, ...] = (
    VisitStage.BOOKED,
    VisitStage.CHECKED_IN,
    VisitStage.VITALS_DONE,
    VisitStage.SENT_TO_DOCTOR,
    VisitStage.SEEN_BY_DOCTOR,
)


def advance_stage(current: Optional[VisitStage], target: VisitStage) -> VisitStage:
    """Validate a visit stage transition.

    An open slot (None) may only become BOOKED; any other stage may only move
    to the stage directly after it.

    Args:
        current: Current stage, or None for an unbooked slot
        target: Requested stage

    Returns:
        The target stage

    Raises:
        InvalidStageTransitionError: If target is not the next stage

    Example:
        >>> advance_stage(VisitStage.CHECKED_IN, VisitStage.VITALS_DONE)
        <VisitStage.VITALS_DONE: 'vitals_done'>
    """
    expected = next_stage(current)
    if target is not expected:
        current_label = current.label if current else "Open"
        expected_label = expected.label if expected else "nothing (visit complete)"
        raise InvalidStageTransitionError(
            f"Cannot move appointment from {current_label} to {target.label}. "
            f"Next allowed stage: {expected_label}"
        )
    return target


def next_stage(current: Optional[VisitStage]) -> Optional[VisitStage]:
    """Return the stage after current, or None when the visit is complete."""
    if current is None:
        return VisitStage.BOOKED
    position = current.order + 1
    return STAGE_ORDER[position] if position < len(STAGE_ORDER) else None


def infer_stage(data: Mapping[str, Any]) -> Optional[VisitStage]:
    """Determine the stage of a stored appointment document.

    Uses the "stage" field when present; otherwise the highest legacy
    milestone flag that is set (seenDoctor, vitalsDone, isCheckedIn, booked).

    Args:
        data: Appointment document

    Returns:
        VisitStage, or None for an open slot
    """
    stored = data.get("stage")
    if stored:
        try:
            return VisitStage(stored)
        except ValueError:
            logger.warning(f"Unknown stage value {stored!r}; inferring from flags")

    if data.get("seenDoctor"):
        return VisitStage.SEEN_BY_DOCTOR
    if data.get("providerId"):
        return VisitStage.SENT_TO_DOCTOR
    if data.get("vitalsDone"):
        return VisitStage.VITALS_DONE
    if data.get("isCheckedIn"):
        return VisitStage.CHECKED_IN
    if data.get("booked"):
        return VisitStage.BOOKED
    return None


@dataclass
class Office:
    """A clinic office location.

    Attributes:
        id: Store document id
        name: Display name
        address: Street address
        phone: Contact phone
    """

    id: str
    name: str = UNKNOWN_OFFICE_NAME
    address: str = UNKNOWN_OFFICE_ADDRESS
    phone: str = UNKNOWN_OFFICE_PHONE

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "Office":
        return cls(
            id=doc_id,
            name=data.get("name") or UNKNOWN_OFFICE_NAME,
            address=data.get("address") or UNKNOWN_OFFICE_ADDRESS,
            phone=data.get("phone") or UNKNOWN_OFFICE_PHONE,
        )


@dataclass
class Provider:
    """A provider working at an office."""

    id: str
    name: str = UNKNOWN_PROVIDER_NAME
    specialty: str = DEFAULT_SPECIALTY

    @classmethod
    def from_document(cls, doc_id: str, data: Mapping[str, Any]) -> "Provider":
        return cls(
            id=doc_id,
            name=data.get("name") or UNKNOWN_PROVIDER_NAME,
            specialty=data.get("specialty") or DEFAULT_SPECIALTY,
        )


@dataclass
class ClinicDay:
    """A day on which an office runs a clinic.

    Attributes:
        id: Date key document id ("M-D-YY")
        date: Calendar day
        office_id: Office hosting the clinic
    """

    id: str
    date: date
    office_id: str


@dataclass
class Appointment:
    """A time slot at an office, possibly booked by a patient.

    Attributes:
        id: Store document id
        time: Display time ("9:30 AM")
        date: Display date ("2024-03-05")
        starts_at: Slot start time
        patient_id: Linked patient document id ("" when open)
        patient_name: Patient display name
        booked: Whether the slot is taken
        stage: Current visit stage (None for an open slot)
        provider_id: Provider the patient was sent to
    """

    id: str
    time: str
    date: str
    starts_at: datetime
    patient_id: str = ""
    patient_name: str = ""
    booked: bool = False
    stage: Optional[VisitStage] = None
    provider_id: Optional[str] = None

    @property
    def is_checked_in(self) -> bool:
        return self._reached(VisitStage.CHECKED_IN)

    @property
    def vitals_done(self) -> bool:
        return self._reached(VisitStage.VITALS_DONE)

    @property
    def seen_doctor(self) -> bool:
        return self._reached(VisitStage.SEEN_BY_DOCTOR)

    @property
    def status(self) -> str:
        return "Booked" if self.booked else "Available"

    @property
    def notes(self) -> Optional[str]:
        """Comma-joined milestones reached, or None."""
        milestones = []
        if self.is_checked_in:
            milestones.append("Checked In")
        if self.vitals_done:
            milestones.append("Vitals Done")
        if self.stage is VisitStage.SENT_TO_DOCTOR:
            milestones.append("Waiting for Doctor")
        if self.seen_doctor:
            milestones.append("Seen Doctor")
        return ", ".join(milestones) if milestones else None

    def _reached(self, stage: VisitStage) -> bool:
        return self.stage is not None and self.stage.order >= stage.order

    def stage_fields(self) -> dict[str, Any]:
        """Store fields describing the current stage.

        The legacy flags are written alongside "stage" for older readers.
        """
        fields: dict[str, Any] = {
            "stage": self.stage.value if self.stage else None,
            "booked": self.booked,
            "isCheckedIn": self.is_checked_in,
            "vitalsDone": self.vitals_done,
            "seenDoctor": self.seen_doctor,
        }
        if self.provider_id:
            fields["providerId"] = self.provider_id
        return fields

    @classmethod
    def from_document(
        cls, doc_id: str, data: Mapping[str, Any], starts_at: datetime
    ) -> "Appointment":
        """Build an appointment from a store document.

        Args:
            doc_id: Document id
            data: Document fields
            starts_at: Parsed "dateTime" of the slot

        Returns:
            Appointment
        """
        stage = infer_stage(data)
        return cls(
            id=doc_id,
            time=starts_at.strftime("%I:%M %p").lstrip("0"),
            date=starts_at.strftime("%Y-%m-%d"),
            starts_at=starts_at,
            patient_id=data.get("patientId") or "",
            patient_name=data.get("patientName") or "",
            booked=bool(data.get("booked")) or stage is not None,
            stage=stage,
            provider_id=data.get("providerId"),
        )


@dataclass
class ClinicDaySummary:
    """Everything the front desk needs for one day.

    Attributes:
        day: Calendar day that was resolved
        clinic_day: Clinic day record, or None when no clinic runs that day
        office: Hosting office
        providers: Providers at the office, sorted by name
        appointments: The day's appointments, sorted by start time
    """

    day: date
    clinic_day: Optional[ClinicDay] = None
    office: Optional[Office] = None
    providers: List[Provider] = field(default_factory=list)
    appointments: List[Appointment] = field(default_factory=list)

    @property
    def is_clinic_day(self) -> bool:
        return self.clinic_day is not None

    @property
    def booked_count(self) -> int:
        return sum(1 for appointment in self.appointments if appointment.booked)
