"""Static mapping from template widget names to intake record values.

Every fillable widget in the intake template is named. FIELD_MAP associates
each name with a pure function of the IntakeRecord producing the text to
write. Checkbox widgets are text widgets holding "X" or "".
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, List

from clinic_intake.models.intake import IntakeRecord

CHECKED = "X"
UNCHECKED = ""

FieldRule = Callable[[IntakeRecord], str]


def check(predicate: Callable[[IntakeRecord], bool]) -> FieldRule:
    """Build a checkbox rule from a predicate on the record."""

    def rule(record: IntakeRecord) -> str:
        return CHECKED if predicate(record) else UNCHECKED

    return rule


def _form_date(record: IntakeRecord) -> str:
    return record.form_date_text


FIELD_MAP: dict[str, FieldRule] = {
    # Identity
    "FullName": lambda r: r.full_name,
    "FirstNameField": lambda r: r.first_name,
    "LastNameField": lambda r: r.last_name,
    "DOBField": lambda r: r.dob_text,
    "AgeField": lambda r: r.age,
    "EmailField": lambda r: r.email,
    "PhoneField": lambda r: r.phone,
    # Address
    "AddressField": lambda r: r.address,
    "Address_2": lambda r: r.address,
    "FullAddress": lambda r: r.raw_address,
    "CityStateField": lambda r: r.city_state_text,
    "CityStateZipField": lambda r: r.city_state_zip_text,
    "ZipField": lambda r: r.zip,
    # Demographic text
    "GenderField": lambda r: r.gender_label,
    "MaritalStatusField": lambda r: r.marital_status_label,
    "RaceField": lambda r: r.race_label,
    "EthnicityField": lambda r: r.ethnicity_label,
    "ReasonForVisit": lambda r: r.reason_for_visit,
    "TotalIncomeField": lambda r: r.income,
    "FamilySizeField": lambda r: r.family_size,
    # Dates printed on each page
    "Date": _form_date,
    "Date_6": _form_date,
    "Date_7": _form_date,
    "Date_8": _form_date,
    "Date_9": _form_date,
    # Checkboxes
    "MaleCheck": check(lambda r: r.is_male),
    "FemaleCheck": check(lambda r: r.is_female),
    "NewPatientYes": check(lambda r: r.is_existing_patient is False),
    "NewPatientNo": check(lambda r: r.is_existing_patient is True),
    "WhiteCheck": check(lambda r: r.is_white),
    "BlackCheck": check(lambda r: r.is_black),
    "AsianCheck": check(lambda r: r.is_asian),
    "AmIndianCheck": check(lambda r: r.is_american_indian),
    "HispanicCheck": check(lambda r: r.is_hispanic),
    "NonHispanicCheck": check(lambda r: r.is_non_hispanic),
    "InsuredNo": check(lambda r: r.uninsured),
    "SingleYes": check(lambda r: r.is_single),
    "MarriedYes": check(lambda r: r.is_married),
    "SeparatedYes": check(lambda r: r.is_separated),
    "DivorcedYes": check(lambda r: r.is_divorced),
    "WidowedYes": check(lambda r: r.is_widowed),
}


@dataclass
class FieldMapReport:
    """Comparison between a template's widgets and FIELD_MAP.

    Attributes:
        mapped: Widget names with a rule
        unmapped: Widget names the fill will leave untouched
        unused: Rules with no widget in the template
    """

    mapped: List[str] = field(default_factory=list)
    unmapped: List[str] = field(default_factory=list)
    unused: List[str] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.unmapped and not self.unused


def validate_field_map(field_names: Iterable[str]) -> FieldMapReport:
    """Compare template widget names against FIELD_MAP.

    Args:
        field_names: Widget names found in the template

    Returns:
        FieldMapReport listing mapped, unmapped and unused names (sorted)
    """
    names = set(field_names)
    return FieldMapReport(
        mapped=sorted(names & FIELD_MAP.keys()),
        unmapped=sorted(names - FIELD_MAP.keys()),
        unused=sorted(FIELD_MAP.keys() - names),
    )
