"""Unit tests for intake CSV parsing."""

from pathlib import Path

import pytest

from clinic_intake.csv_parser import load_intake_dataframe, parse_intake_csv
from clinic_intake.models.intake import Gender, MaritalStatus, Race
from clinic_intake.utils.exceptions import ValidationError


def _write_csv(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "intake.csv"
    path.write_text(content, encoding="utf-8")
    return path


class TestParseIntakeCsv:
    """Tests for parse_intake_csv."""

    def test_sample_file(self, project_root: Path):
        """Test parsing the bundled sample file."""
        # Act
        records = parse_intake_csv(project_root / "examples" / "intake_sample.csv")

        # Assert
        assert [r.full_name for r in records] == ["Jane Doe", "Carlos Rivera", "Mei Chen"]
        jane, carlos, mei = records
        assert jane.race is Race.WHITE
        assert jane.marital_status is MaritalStatus.MARRIED
        assert jane.uninsured is True
        assert jane.raw_address == "123 Main St, Springfield, IL 62701, USA"
        assert carlos.is_existing_patient is True
        assert carlos.gender is Gender.MALE
        assert mei.marital_status is None
        assert mei.income == "Zero - No Income"

    def test_values_kept_as_text(self, tmp_path: Path):
        """Test that ZIP codes keep their leading zeros."""
        path = _write_csv(tmp_path, "first_name,last_name,zip\nAna,Silva,02134\n")

        records = parse_intake_csv(path)

        assert records[0].zip == "02134"

    def test_missing_required_columns(self, tmp_path: Path):
        path = _write_csv(tmp_path, "first_name,email\nAna,ana@example.com\n")

        with pytest.raises(ValidationError, match="Missing required columns: last_name"):
            parse_intake_csv(path)

    def test_invalid_rows_reported_together(self, tmp_path: Path):
        """Test that every bad row is reported with its row number."""
        # Arrange
        path = _write_csv(
            tmp_path,
            "first_name,last_name,gender,race\n"
            "Ana,Silva,Female,White\n"
            "Bo,Park,Unknown,Asian\n"
            ",,Male,White\n"
            "Cy,Young,Male,Green\n",
        )

        # Act
        with pytest.raises(ValidationError) as exc_info:
            parse_intake_csv(path)

        # Assert
        message = str(exc_info.value)
        assert "Found 3 validation error(s)" in message
        assert "Row 3:" in message
        assert "Row 4: first_name and last_name are both empty" in message
        assert "Row 5:" in message

    def test_unknown_columns_warn(self, tmp_path: Path, caplog):
        path = _write_csv(tmp_path, "first_name,last_name,favorite_color\nAna,Silva,blue\n")

        with caplog.at_level("WARNING"):
            records = parse_intake_csv(path)

        assert len(records) == 1
        assert "favorite_color" in caplog.text

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            parse_intake_csv(tmp_path / "missing.csv")

    def test_empty_file(self, tmp_path: Path):
        path = _write_csv(tmp_path, "")

        with pytest.raises(ValidationError, match="Failed to read CSV"):
            load_intake_dataframe(path)
