"""Clinic module.

This module provides clinic day resolution, the appointment visit workflow,
patient records and the intake session context.
"""

from clinic_intake.clinic.patients import PatientRepository
from clinic_intake.clinic.schedule import (
    ClinicScheduleService,
    clinic_day_key,
    next_available_slot,
    parse_appointment_time,
)
from clinic_intake.clinic.session import IntakeSession

__all__ = [
    "ClinicScheduleService",
    "IntakeSession",
    "PatientRepository",
    "clinic_day_key",
    "next_available_slot",
    "parse_appointment_time",
]
