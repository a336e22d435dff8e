"""Models module.

This module provides data models and dataclasses for the application.
"""

from clinic_intake.models.appointment import (
    Appointment,
    ClinicDay,
    ClinicDaySummary,
    Office,
    Provider,
    VisitStage,
    advance_stage,
)
from clinic_intake.models.intake import (
    Ethnicity,
    Gender,
    IntakeRecord,
    MaritalStatus,
    PostalAddress,
    Race,
)
from clinic_intake.models.results import (
    MaterializationResult,
    MaterializationStatus,
    UploadResult,
)
from clinic_intake.models.vitals import Vitals

__all__ = [
    "Appointment",
    "ClinicDay",
    "ClinicDaySummary",
    "Office",
    "Provider",
    "VisitStage",
    "advance_stage",
    "Ethnicity",
    "Gender",
    "IntakeRecord",
    "MaritalStatus",
    "PostalAddress",
    "Race",
    "MaterializationResult",
    "MaterializationStatus",
    "UploadResult",
    "Vitals",
]
