"""Unit tests for the intake record model."""

from datetime import date

import pytest

from clinic_intake.models.intake import (
    Ethnicity,
    Gender,
    IntakeRecord,
    MaritalStatus,
    PostalAddress,
    Race,
    parse_choice,
    split_income_option,
)
from clinic_intake.utils.exceptions import ValidationError


class TestParseChoice:
    """Tests for single-select answer parsing."""

    def test_matches_option_label(self):
        """Test that the option label selects the member."""
        assert parse_choice(Gender, "Female") is Gender.FEMALE

    def test_matches_member_name_case_insensitive(self):
        """Test that the member name is accepted in any case."""
        assert parse_choice(MaritalStatus, "widowed") is MaritalStatus.WIDOWED
        assert parse_choice(Race, "AMERICAN_INDIAN") is Race.AMERICAN_INDIAN

    def test_race_accepts_both_slash_spellings(self):
        """Test that the app label and the form label both parse."""
        assert parse_choice(Race, "Black / African American") is Race.BLACK
        assert parse_choice(Race, "Black/African American") is Race.BLACK

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_unanswered_returns_none(self, value):
        """Test that missing answers mean not answered."""
        assert parse_choice(Ethnicity, value) is None

    def test_enum_member_passes_through(self):
        """Test that an enum member is returned unchanged."""
        assert parse_choice(Gender, Gender.MALE) is Gender.MALE

    def test_unknown_option_raises(self):
        """Test that an answer outside the options is rejected."""
        with pytest.raises(ValidationError, match="Invalid Gender value"):
            parse_choice(Gender, "Purple")


class TestIncomeOption:
    """Tests for income bracket splitting."""

    def test_split_income_option(self):
        assert split_income_option("3 Persons - $4143 or Less") == (
            "3 Persons",
            "$4143 or Less",
        )

    def test_split_malformed_option(self):
        assert split_income_option("lots") == ("", "")


class TestIntakeRecordDerivedValues:
    """Tests for values derived from the stored answers."""

    def test_empty_record_defaults(self):
        """Test that a new record has blank answers and no selections."""
        # Arrange & Act
        record = IntakeRecord()

        # Assert
        assert record.full_name == ""
        assert record.gender is None
        assert record.race_label == ""
        assert not record.is_male
        assert not record.is_female
        assert record.is_existing_patient is None
        assert record.form_date is None
        assert record.form_date_text == ""

    def test_full_name(self, jane_doe):
        assert jane_doe.full_name == "Jane Doe"

    def test_race_label_uses_form_label(self):
        """Test that the race text uses the template's spelling."""
        record = IntakeRecord(race=Race.BLACK)
        assert record.race_label == "Black/African American"

    def test_per_option_flags_follow_selection(self, jane_doe):
        """Test that exactly one flag per category is set."""
        # Assert
        assert jane_doe.is_female and not jane_doe.is_male
        assert jane_doe.is_white
        assert not (jane_doe.is_black or jane_doe.is_asian or jane_doe.is_american_indian)
        assert jane_doe.is_married
        assert not (
            jane_doe.is_single
            or jane_doe.is_separated
            or jane_doe.is_divorced
            or jane_doe.is_widowed
        )
        assert jane_doe.is_non_hispanic and not jane_doe.is_hispanic

    def test_changing_selection_changes_flags(self, jane_doe):
        """Test that the flags cannot disagree with the selection."""
        # Act
        jane_doe.race = Race.ASIAN

        # Assert
        assert jane_doe.is_asian
        assert not jane_doe.is_white

    def test_city_state_derived_when_blank(self, jane_doe):
        assert jane_doe.city_state_text == "Springfield, IL"
        assert jane_doe.city_state_zip_text == "Springfield, IL 62701"

    def test_city_state_explicit_value_wins(self):
        record = IntakeRecord(city="Springfield", state="IL", city_state="Springfield IL")
        assert record.city_state_text == "Springfield IL"

    def test_dob_text_from_date(self):
        record = IntakeRecord(date_of_birth=date(1990, 1, 2))
        assert record.dob_text == "01/02/1990"

    def test_form_date_text(self, jane_doe):
        assert jane_doe.form_date_text == "03/05/2024"

    def test_family_size_and_threshold(self, jane_doe):
        assert jane_doe.family_size == "3 Persons"
        assert jane_doe.income_threshold == "$4143 or Less"


class TestIntakeRecordMapping:
    """Tests for building records from documents and payloads."""

    def test_from_mapping_camel_case(self):
        """Test that store documents with camelCase keys are read."""
        # Arrange
        data = {
            "firstName": "Carlos",
            "lastName": "Rivera",
            "dob": "07/30/1975",
            "maritalStatus": "Single",
            "race": "White",
            "ethnicity": "Hispanic/Latino",
            "gender": "Male",
            "isExistingPatient": True,
            "reason": "Follow-up",
            "familySize": "2 Persons",
            "incomeThreshold": "$3287 or Less",
        }

        # Act
        record = IntakeRecord.from_mapping(data)

        # Assert
        assert record.full_name == "Carlos Rivera"
        assert record.date_of_birth == date(1975, 7, 30)
        assert record.marital_status is MaritalStatus.SINGLE
        assert record.ethnicity is Ethnicity.HISPANIC
        assert record.is_existing_patient is True
        assert record.reason_for_visit == "Follow-up"
        assert record.income == "2 Persons - $3287 or Less"

    def test_from_mapping_snake_case(self):
        """Test that CSV rows with snake_case keys are read."""
        # Arrange
        data = {
            "first_name": "Mei",
            "last_name": "Chen",
            "marital_status": "divorced",
            "uninsured": "yes",
            "form_date": "2024-03-05",
        }

        # Act
        record = IntakeRecord.from_mapping(data)

        # Assert
        assert record.first_name == "Mei"
        assert record.marital_status is MaritalStatus.DIVORCED
        assert record.uninsured is True
        assert record.form_date == date(2024, 3, 5)

    def test_from_mapping_missing_keys_use_defaults(self):
        record = IntakeRecord.from_mapping({})
        assert record == IntakeRecord(form_date=date.today())

    def test_from_mapping_blank_new_patient_answer_stays_unanswered(self):
        record = IntakeRecord.from_mapping({"isExistingPatient": ""})
        assert record.is_existing_patient is None

    def test_from_mapping_selection_beats_legacy_flags(self):
        """Test that a stale legacy flag cannot contradict the selection."""
        # Arrange
        data = {"race": "Asian", "isWhite": True, "isAsian": False}

        # Act
        record = IntakeRecord.from_mapping(data)

        # Assert
        assert record.race is Race.ASIAN
        assert record.is_asian
        assert not record.is_white

    def test_from_mapping_invalid_choice_raises(self):
        with pytest.raises(ValidationError, match="MaritalStatus"):
            IntakeRecord.from_mapping({"maritalStatus": "Engaged"})

    def test_from_mapping_unparseable_date_left_unset(self):
        record = IntakeRecord.from_mapping({"dob": "sometime in spring"})
        assert record.dob == "sometime in spring"
        assert record.date_of_birth is None

    def test_to_mapping_round_trips_selections(self, jane_doe):
        """Test that a stored record reads back with the same answers."""
        # Act
        restored = IntakeRecord.from_mapping(jane_doe.to_mapping())

        # Assert
        assert restored.full_name == jane_doe.full_name
        assert restored.gender is jane_doe.gender
        assert restored.race is jane_doe.race
        assert restored.marital_status is jane_doe.marital_status
        assert restored.income == jane_doe.income
        assert restored.uninsured is True

    def test_with_address_returns_new_record(self, jane_doe):
        """Test that applying a lookup result leaves the original intact."""
        # Arrange
        postal = PostalAddress(
            raw="9 Elm Ave, Peoria, IL 61602, USA",
            street="9 Elm Ave",
            city="Peoria",
            state="IL",
            zip="61602",
        )

        # Act
        updated = jane_doe.with_address(postal)

        # Assert
        assert updated.address == "9 Elm Ave"
        assert updated.city_state == "Peoria, IL"
        assert updated.city_state_zip == "Peoria, IL 61602"
        assert jane_doe.address == "123 Main St"
