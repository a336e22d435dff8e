"""Patient document access."""

import logging
from typing import Optional

from clinic_intake.clinic.schedule import ClinicScheduleService
from clinic_intake.clinic.session import IntakeSession
from clinic_intake.models.appointment import VisitStage, advance_stage
from clinic_intake.models.intake import IntakeRecord
from clinic_intake.models.vitals import Vitals
from clinic_intake.store.base import DocumentStore

logger = logging.getLogger(__name__)

PATIENTS_COLLECTION = "patients"


class PatientRepository:
    """Reads and writes patient documents.

    Args:
        store: Document store holding the "patients" collection
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def fetch(self, patient_id: str) -> Optional[IntakeRecord]:
        """Load a patient's intake answers, or None if unknown."""
        data = self.store.get(PATIENTS_COLLECTION, patient_id)
        if data is None:
            logger.info(f"No patient document for id {patient_id}")
            return None
        return IntakeRecord.from_mapping(data)

    def save(self, patient_id: str, record: IntakeRecord) -> None:
        """Store a patient's intake answers, keeping other document fields."""
        self.store.set(PATIENTS_COLLECTION, patient_id, record.to_mapping(), merge=True)
        logger.debug(f"Saved patient {patient_id}")

    def fetch_vitals(self, patient_id: str) -> Optional[Vitals]:
        data = self.store.get(PATIENTS_COLLECTION, patient_id)
        if not data or not data.get("vitals"):
            return None
        return Vitals.from_mapping(data["vitals"])

    def record_vitals(
        self,
        patient_id: str,
        vitals: Vitals,
        session: Optional[IntakeSession] = None,
    ) -> None:
        """Store vitals on the patient document.

        When the session is linked to an appointment, the appointment moves
        to the vitals-done stage. The stage is checked first, so refused
        vitals leave the patient document untouched.

        Raises:
            ScheduleError: If the linked appointment does not exist
            InvalidStageTransitionError: If the appointment is not checked in
        """
        schedule = None
        if session is not None and session.has_appointment:
            schedule = ClinicScheduleService(self.store)
            appointment = schedule.get_appointment(session.office_id, session.appointment_id)
            advance_stage(appointment.stage, VisitStage.VITALS_DONE)

        self.store.set(
            PATIENTS_COLLECTION, patient_id, {"vitals": vitals.to_mapping()}, merge=True
        )
        logger.info(f"Recorded vitals for patient {patient_id}")

        if schedule is not None:
            schedule.mark_vitals_done(session.office_id, session.appointment_id)
