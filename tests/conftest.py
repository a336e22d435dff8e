"""
Shared pytest configuration and fixtures.

This module provides fixtures and configuration used across all test suites
(unit and integration tests).
"""

import copy
import json
import logging
import os
from datetime import date
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from clinic_intake.models.intake import (
    Ethnicity,
    Gender,
    IntakeRecord,
    MaritalStatus,
    Race,
)
from clinic_intake.store import JsonDocumentStore
from clinic_intake.template_engine import FormTemplate, TemplateLoader
from fixtures.generate_test_template import build_intake_template


OFFICE_ID = "office-springfield"

CLINIC_STORE_DATA = {
    "days": {"3-5-24": {"officeId": OFFICE_ID}},
    "offices": {
        OFFICE_ID: {
            "name": "Springfield Community Center",
            "address": "400 E Monroe St, Springfield, IL 62701",
            "phone": "(217) 555-0100",
        },
    },
    f"offices/{OFFICE_ID}/providers": {
        "dr-lee": {"name": "Dr. Ana Lee", "specialty": "Family Medicine"},
        "np-okafor": {"name": "Chidi Okafor, NP"},
    },
    f"offices/{OFFICE_ID}/appointments": {
        "appt-0900": {
            "dateTime": "2024-03-05T09:00:00",
            "booked": True,
            "stage": "checked_in",
            "patientId": "patient-jane-doe",
            "patientName": "Jane Doe",
        },
        "appt-0930": {"dateTime": "2024-03-05T09:30:00", "booked": False},
        "appt-1000": {"dateTime": "2024-03-05T10:00:00", "booked": False},
        "appt-next-day": {"dateTime": "2024-03-06T09:00:00", "booked": False},
        "appt-broken": {"dateTime": "not a time", "booked": False},
    },
    "patients": {},
}


@pytest.fixture
def project_root() -> Path:
    """
    Return the project root directory.

    Returns:
        Path: Absolute path to the project root directory.
    """
    return Path(__file__).parent.parent


@pytest.fixture
def src_dir(project_root: Path) -> Path:
    """
    Return the src directory path.

    Args:
        project_root: Project root directory fixture.

    Returns:
        Path: Absolute path to the src directory.
    """
    return project_root / "src"


@pytest.fixture
def tests_dir(project_root: Path) -> Path:
    """
    Return the tests directory path.

    Args:
        project_root: Project root directory fixture.

    Returns:
        Path: Absolute path to the tests directory.
    """
    return project_root / "tests"


@pytest.fixture
def fixtures_dir(tests_dir: Path) -> Path:
    """
    Return the test fixtures directory path.

    Args:
        tests_dir: Tests directory fixture.

    Returns:
        Path: Absolute path to the test fixtures directory.
    """
    return tests_dir / "fixtures"


@pytest.fixture(scope="session")
def template_bytes() -> bytes:
    """Return a four-page fillable intake template."""
    return build_intake_template()


@pytest.fixture
def template_file(tmp_path: Path, template_bytes: bytes) -> Path:
    """Write the intake template to a temporary file."""
    path = tmp_path / "intake-form.pdf"
    path.write_bytes(template_bytes)
    return path


@pytest.fixture
def form_template(template_bytes: bytes) -> FormTemplate:
    """Return the intake template loaded from bytes."""
    return TemplateLoader().load_from_bytes(template_bytes, name="intake-form.pdf")


@pytest.fixture
def jane_doe() -> IntakeRecord:
    """Return a complete intake record."""
    return IntakeRecord(
        email="jane.doe@example.com",
        first_name="Jane",
        last_name="Doe",
        dob="04/12/1986",
        age="38",
        phone="(217) 555-0142",
        reason_for_visit="Persistent cough",
        is_existing_patient=False,
        gender=Gender.FEMALE,
        race=Race.WHITE,
        marital_status=MaritalStatus.MARRIED,
        ethnicity=Ethnicity.NOT_HISPANIC,
        income="3 Persons - $4143 or Less",
        raw_address="123 Main St, Springfield, IL 62701, USA",
        address="123 Main St",
        city="Springfield",
        state="IL",
        zip="62701",
        uninsured=True,
        form_date=date(2024, 3, 5),
    )


@pytest.fixture
def signature_png() -> bytes:
    """Return a small PNG signature with a transparent background."""
    image = Image.new("RGBA", (200, 50), (255, 255, 255, 0))
    draw = ImageDraw.Draw(image)
    draw.line([(10, 40), (60, 10), (110, 40), (190, 15)], fill=(0, 0, 0, 255), width=3)
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def clinic_store_data() -> dict:
    """Return a copy of the sample clinic day documents."""
    return copy.deepcopy(CLINIC_STORE_DATA)


@pytest.fixture
def clinic_store(clinic_store_data: dict) -> JsonDocumentStore:
    """Return an in-memory store holding one clinic day."""
    return JsonDocumentStore(data=clinic_store_data)


@pytest.fixture
def clinic_store_file(tmp_path: Path, clinic_store_data: dict) -> Path:
    """Write the sample clinic day documents to a JSON store file."""
    path = tmp_path / "clinic-store.json"
    path.write_text(json.dumps(clinic_store_data, indent=2))
    return path


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables out of configuration tests."""
    for key in list(os.environ):
        if key.startswith("CLINIC_INTAKE_") or key.startswith("MOCK_SERVER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers installed by configure_logging during a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
