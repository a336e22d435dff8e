"""Intake session context.

The session links the record being collected to the appointment that brought
the patient in. It is passed explicitly to every operation that needs the
link; nothing about the current patient is kept in module state.
"""

from dataclasses import dataclass, field
from typing import Optional

from clinic_intake.models.intake import IntakeRecord


@dataclass
class IntakeSession:
    """One patient's pass through the intake steps.

    Attributes:
        appointment_id: Appointment being served ("" for a walk-in)
        office_id: Office hosting the appointment
        patient_id: Patient document id, once known
        record: Answers collected so far
    """

    appointment_id: str = ""
    office_id: Optional[str] = None
    patient_id: str = ""
    record: IntakeRecord = field(default_factory=IntakeRecord)

    @property
    def has_appointment(self) -> bool:
        return bool(self.appointment_id and self.office_id)

    def reset_record(self) -> None:
        """Start the answers over, keeping the appointment link."""
        self.record = IntakeRecord()
