"""Unit tests for clinic schedule models and the visit stage machine."""

from datetime import datetime

import pytest

from clinic_intake.models.appointment import (
    Appointment,
    Office,
    Provider,
    VisitStage,
    advance_stage,
    infer_stage,
    next_stage,
)
from clinic_intake.models.vitals import Vitals
from clinic_intake.utils.exceptions import InvalidStageTransitionError, ValidationError


class TestVisitStageTransitions:
    """Tests for one-step stage advancement."""

    def test_open_slot_can_only_be_booked(self):
        assert advance_stage(None, VisitStage.BOOKED) is VisitStage.BOOKED
        with pytest.raises(InvalidStageTransitionError):
            advance_stage(None, VisitStage.CHECKED_IN)

    @pytest.mark.parametrize(
        "current,target",
        [
            (VisitStage.BOOKED, VisitStage.CHECKED_IN),
            (VisitStage.CHECKED_IN, VisitStage.VITALS_DONE),
            (VisitStage.VITALS_DONE, VisitStage.SENT_TO_DOCTOR),
            (VisitStage.SENT_TO_DOCTOR, VisitStage.SEEN_BY_DOCTOR),
        ],
    )
    def test_each_stage_advances_one_step(self, current, target):
        assert advance_stage(current, target) is target

    def test_skipping_a_stage_raises(self):
        """Test that vitals cannot be skipped on the way to the doctor."""
        with pytest.raises(InvalidStageTransitionError, match="Next allowed stage: Vitals Done"):
            advance_stage(VisitStage.CHECKED_IN, VisitStage.SENT_TO_DOCTOR)

    def test_moving_backwards_raises(self):
        with pytest.raises(InvalidStageTransitionError):
            advance_stage(VisitStage.SEEN_BY_DOCTOR, VisitStage.CHECKED_IN)

    def test_repeating_a_stage_raises(self):
        with pytest.raises(InvalidStageTransitionError):
            advance_stage(VisitStage.CHECKED_IN, VisitStage.CHECKED_IN)

    def test_complete_visit_has_no_next_stage(self):
        assert next_stage(VisitStage.SEEN_BY_DOCTOR) is None
        with pytest.raises(InvalidStageTransitionError, match="visit complete"):
            advance_stage(VisitStage.SEEN_BY_DOCTOR, VisitStage.SEEN_BY_DOCTOR)


class TestInferStage:
    """Tests for reading the stage of stored documents."""

    def test_stage_field_wins(self):
        assert infer_stage({"stage": "vitals_done", "seenDoctor": True}) is VisitStage.VITALS_DONE

    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"booked": True}, VisitStage.BOOKED),
            ({"booked": True, "isCheckedIn": True}, VisitStage.CHECKED_IN),
            ({"isCheckedIn": True, "vitalsDone": True}, VisitStage.VITALS_DONE),
            ({"vitalsDone": True, "providerId": "dr-lee"}, VisitStage.SENT_TO_DOCTOR),
            ({"isCheckedIn": True, "seenDoctor": True}, VisitStage.SEEN_BY_DOCTOR),
            ({"booked": False}, None),
            ({}, None),
        ],
    )
    def test_legacy_flags(self, data, expected):
        """Test that the highest legacy milestone decides the stage."""
        assert infer_stage(data) is expected

    def test_unknown_stage_value_falls_back_to_flags(self):
        assert infer_stage({"stage": "triage", "isCheckedIn": True}) is VisitStage.CHECKED_IN


class TestAppointment:
    """Tests for the Appointment model."""

    def test_from_document(self):
        """Test building an appointment from a store document."""
        # Arrange
        data = {
            "booked": True,
            "stage": "vitals_done",
            "patientId": "patient-1",
            "patientName": "Jane Doe",
        }
        starts_at = datetime(2024, 3, 5, 9, 30)

        # Act
        appointment = Appointment.from_document("appt-1", data, starts_at)

        # Assert
        assert appointment.time == "9:30 AM"
        assert appointment.date == "2024-03-05"
        assert appointment.status == "Booked"
        assert appointment.is_checked_in
        assert appointment.vitals_done
        assert not appointment.seen_doctor
        assert appointment.notes == "Checked In, Vitals Done"

    def test_open_slot(self):
        appointment = Appointment.from_document("a", {}, datetime(2024, 3, 5, 13, 0))
        assert appointment.time == "1:00 PM"
        assert appointment.status == "Available"
        assert appointment.stage is None
        assert appointment.notes is None

    def test_notes_for_patient_waiting_for_doctor(self):
        appointment = Appointment(
            id="a",
            time="9:00 AM",
            date="2024-03-05",
            starts_at=datetime(2024, 3, 5, 9),
            booked=True,
            stage=VisitStage.SENT_TO_DOCTOR,
        )
        assert appointment.notes == "Checked In, Vitals Done, Waiting for Doctor"

    def test_stage_fields_include_legacy_flags(self):
        """Test that writes keep the legacy flags in step with the stage."""
        # Arrange
        appointment = Appointment(
            id="a",
            time="9:00 AM",
            date="2024-03-05",
            starts_at=datetime(2024, 3, 5, 9),
            booked=True,
            stage=VisitStage.SEEN_BY_DOCTOR,
            provider_id="dr-lee",
        )

        # Act
        fields = appointment.stage_fields()

        # Assert
        assert fields == {
            "stage": "seen_by_doctor",
            "booked": True,
            "isCheckedIn": True,
            "vitalsDone": True,
            "seenDoctor": True,
            "providerId": "dr-lee",
        }


class TestOfficeAndProvider:
    """Tests for placeholder values on incomplete documents."""

    def test_office_placeholders(self):
        office = Office.from_document("o1", {"name": "Downtown"})
        assert office.name == "Downtown"
        assert office.address == "No Address"
        assert office.phone == "No Phone"

    def test_provider_placeholders(self):
        provider = Provider.from_document("p1", {})
        assert provider.name == "Unknown Provider"
        assert provider.specialty == "General"


class TestVitals:
    """Tests for the Vitals model."""

    def test_store_mapping_uses_store_keys(self):
        # Arrange
        vitals = Vitals(heart_rate=72, pain_level=3, recent_travel=True)

        # Act
        data = vitals.to_mapping()

        # Assert
        assert data["heartRate"] == 72
        assert data["painLevel"] == 3
        assert data["recentTravel"] is True
        assert Vitals.from_mapping(data) == vitals

    def test_from_mapping_ignores_unknown_keys(self):
        vitals = Vitals.from_mapping({"temperature": 98.6, "mood": "good"})
        assert vitals.temperature_f == 98.6

    def test_pain_level_out_of_range(self):
        with pytest.raises(ValidationError, match="pain_level"):
            Vitals(pain_level=11)

    def test_spo2_out_of_range(self):
        with pytest.raises(ValidationError, match="spo2"):
            Vitals(spo2=120)
