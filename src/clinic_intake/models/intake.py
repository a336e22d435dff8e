"""Patient intake record model.

This module defines the IntakeRecord dataclass holding every answer collected
during an intake, along with the single-select demographic choices.

Each demographic category is stored once, as an enum member (or None when the
patient skipped the question). The per-option booleans used by the form
template (is_male, is_white, ...) are read-only properties computed from that
selection, so they always agree with it.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional, Type, TypeVar

from clinic_intake.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

FORM_DATE_FORMAT = "%m/%d/%Y"

E = TypeVar("E", bound=Enum)


class Gender(Enum):
    """Gender options offered on the demographics step."""

    MALE = "Male"
    FEMALE = "Female"


class Race(Enum):
    """Race options offered on the demographics step."""

    WHITE = "White"
    BLACK = "Black / African American"
    ASIAN = "Asian"
    AMERICAN_INDIAN = "American Indian"

    @property
    def form_label(self) -> str:
        """Label printed in the template's race text field."""
        return RACE_FORM_LABELS[self]


class MaritalStatus(Enum):
    """Marital status options; SEPARATED only exists on the paper form."""

    SINGLE = "Single"
    MARRIED = "Married"
    SEPARATED = "Separated"
    DIVORCED = "Divorced"
    WIDOWED = "Widowed"


class Ethnicity(Enum):
    """Ethnicity options offered on the demographics step."""

    HISPANIC = "Hispanic/Latino"
    NOT_HISPANIC = "Not Hispanic/Latino"


RACE_FORM_LABELS: dict[Race, str] = {
    Race.WHITE: "White",
    Race.BLACK: "Black/African American",
    Race.ASIAN: "Asian",
    Race.AMERICAN_INDIAN: "American Indian",
}

# Order in which race labels are joined in the composite race text
RACE_ORDER: tuple[Race, ...] = (
    Race.WHITE,
    Race.BLACK,
    Race.ASIAN,
    Race.AMERICAN_INDIAN,
)

# Household income brackets: "<family size> - <monthly threshold>"
INCOME_OPTIONS: tuple[str, ...] = (
    "1 Person - $2430 or Less",
    "2 Persons - $3287 or Less",
    "3 Persons - $4143 or Less",
    "4 Persons - $5000 or Less",
    "Zero - No Income",
)

# Legacy boolean flags found in older store documents and form payloads,
# mapped to the selection they are supposed to mirror.
LEGACY_FLAGS: dict[str, tuple[str, Enum]] = {
    "isMale": ("gender", Gender.MALE),
    "isFemale": ("gender", Gender.FEMALE),
    "isWhite": ("race", Race.WHITE),
    "isBlack": ("race", Race.BLACK),
    "isAsian": ("race", Race.ASIAN),
    "isAmIndian": ("race", Race.AMERICAN_INDIAN),
    "isSingle": ("marital_status", MaritalStatus.SINGLE),
    "isMarried": ("marital_status", MaritalStatus.MARRIED),
    "isDivorced": ("marital_status", MaritalStatus.DIVORCED),
    "isWidowed": ("marital_status", MaritalStatus.WIDOWED),
    "isHispanic": ("ethnicity", Ethnicity.HISPANIC),
    "isNonHispanic": ("ethnicity", Ethnicity.NOT_HISPANIC),
}


def _normalize_choice(value: str) -> str:
    return " ".join(value.replace("/", " / ").split()).casefold()


def parse_choice(enum_cls: Type[E], value: Any) -> Optional[E]:
    """Parse a single-select answer into its enum member.

    Matches either the option label ("Black / African American",
    "Black/African American") or the member name ("BLACK"), ignoring case and
    spacing around slashes.

    Args:
        enum_cls: Enum class of the category
        value: Raw answer; None or blank means "not answered"

    Returns:
        Enum member, or None when the question was not answered

    Raises:
        ValidationError: If the answer is not one of the category's options
    """
    if value is None:
        return None
    if isinstance(value, enum_cls):
        return value

    text = str(value).strip()
    if not text:
        return None

    wanted = _normalize_choice(text)
    for member in enum_cls:
        labels = {_normalize_choice(member.value), member.name.casefold()}
        if isinstance(member, Race):
            labels.add(_normalize_choice(member.form_label))
        if wanted in labels:
            return member

    options = ", ".join(member.value for member in enum_cls)
    raise ValidationError(
        f"Invalid {enum_cls.__name__} value: {text!r}. Must be one of: {options}"
    )


def split_income_option(option: str) -> tuple[str, str]:
    """Split an income bracket option into family size and threshold.

    Example:
        >>> split_income_option("2 Persons - $3287 or Less")
        ('2 Persons', '$3287 or Less')
    """
    parts = option.split(" - ")
    if len(parts) != 2:
        return "", ""
    return parts[0].strip(), parts[1].strip()


@dataclass
class PostalAddress:
    """Structured postal address returned by an address lookup.

    Attributes:
        raw: Full formatted address as returned by the lookup
        street: Street line
        city: City
        state: State abbreviation
        zip: Postal code
    """

    raw: str = ""
    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""


@dataclass
class IntakeRecord:
    """Answers collected across one patient intake.

    A record starts empty and is filled in step by step. Unanswered text
    questions are empty strings and unanswered single-select questions are
    None; both render as blank text or unchecked boxes on the form.

    Attributes:
        email: Contact email
        first_name: Patient's first name
        last_name: Patient's last name
        dob: Date of birth as typed (MM/DD/YYYY)
        date_of_birth: Date of birth as a date, when known
        age: Age as typed
        phone: Contact phone number
        reason_for_visit: Free-text reason for the visit
        is_existing_patient: Whether the patient has been seen before (None when unanswered)
        gender: Selected gender
        race: Selected race
        marital_status: Selected marital status
        ethnicity: Selected ethnicity
        income: Selected household income bracket (see INCOME_OPTIONS)
        raw_address: Full formatted address
        address: Street line
        city: City
        state: State abbreviation
        zip: Postal code
        city_state: "City, ST" (derived from city/state when blank)
        city_state_zip: "City, ST 12345" (derived when blank)
        uninsured: Patient reports having no insurance
        form_date: Date printed on the form's date fields (None leaves them blank)
    """

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    dob: str = ""
    date_of_birth: Optional[date] = None
    age: str = ""
    phone: str = ""
    reason_for_visit: str = ""
    is_existing_patient: Optional[bool] = None
    gender: Optional[Gender] = None
    race: Optional[Race] = None
    marital_status: Optional[MaritalStatus] = None
    ethnicity: Optional[Ethnicity] = None
    income: str = ""
    raw_address: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    city_state: str = ""
    city_state_zip: str = ""
    uninsured: bool = False
    form_date: Optional[date] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def dob_text(self) -> str:
        if self.dob:
            return self.dob
        if self.date_of_birth is not None:
            return self.date_of_birth.strftime(FORM_DATE_FORMAT)
        return ""

    @property
    def form_date_text(self) -> str:
        if self.form_date is None:
            return ""
        return self.form_date.strftime(FORM_DATE_FORMAT)

    @property
    def city_state_text(self) -> str:
        if self.city_state:
            return self.city_state
        if self.city and self.state:
            return f"{self.city}, {self.state}"
        return self.city or self.state

    @property
    def city_state_zip_text(self) -> str:
        if self.city_state_zip:
            return self.city_state_zip
        return " ".join(part for part in (self.city_state_text, self.zip) if part)

    # Demographic labels

    @property
    def gender_label(self) -> str:
        return self.gender.value if self.gender else ""

    @property
    def marital_status_label(self) -> str:
        return self.marital_status.value if self.marital_status else ""

    @property
    def ethnicity_label(self) -> str:
        return self.ethnicity.value if self.ethnicity else ""

    @property
    def race_label(self) -> str:
        """Comma-joined labels of every selected race, in RACE_ORDER."""
        return ", ".join(race.form_label for race in RACE_ORDER if race is self.race)

    @property
    def family_size(self) -> str:
        return split_income_option(self.income)[0]

    @property
    def income_threshold(self) -> str:
        return split_income_option(self.income)[1]

    # Per-option accessors used by the template checkboxes

    @property
    def is_male(self) -> bool:
        return self.gender is Gender.MALE

    @property
    def is_female(self) -> bool:
        return self.gender is Gender.FEMALE

    @property
    def is_white(self) -> bool:
        return self.race is Race.WHITE

    @property
    def is_black(self) -> bool:
        return self.race is Race.BLACK

    @property
    def is_asian(self) -> bool:
        return self.race is Race.ASIAN

    @property
    def is_american_indian(self) -> bool:
        return self.race is Race.AMERICAN_INDIAN

    @property
    def is_single(self) -> bool:
        return self.marital_status is MaritalStatus.SINGLE

    @property
    def is_married(self) -> bool:
        return self.marital_status is MaritalStatus.MARRIED

    @property
    def is_separated(self) -> bool:
        return self.marital_status is MaritalStatus.SEPARATED

    @property
    def is_divorced(self) -> bool:
        return self.marital_status is MaritalStatus.DIVORCED

    @property
    def is_widowed(self) -> bool:
        return self.marital_status is MaritalStatus.WIDOWED

    @property
    def is_hispanic(self) -> bool:
        return self.ethnicity is Ethnicity.HISPANIC

    @property
    def is_non_hispanic(self) -> bool:
        return self.ethnicity is Ethnicity.NOT_HISPANIC

    def with_address(self, postal: PostalAddress) -> "IntakeRecord":
        """Return a copy with the address fields taken from a lookup result.

        Args:
            postal: Structured address from an AddressLookup

        Returns:
            New IntakeRecord; this record is left unchanged
        """
        city_state = f"{postal.city}, {postal.state}" if postal.city and postal.state else ""
        city_state_zip = f"{city_state} {postal.zip}".strip() if city_state else ""
        return replace(
            self,
            raw_address=postal.raw,
            address=postal.street,
            city=postal.city,
            state=postal.state,
            zip=postal.zip,
            city_state=city_state,
            city_state_zip=city_state_zip,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "IntakeRecord":
        """Build a record from a store document, JSON payload or CSV row.

        Both the store's camelCase keys (firstName, maritalStatus, ...) and
        snake_case keys (first_name, marital_status, ...) are accepted.
        Missing keys fall back to empty values, except the form date which
        defaults to today. Legacy boolean flags such as
        isWhite are ignored: the selection string is authoritative.

        Args:
            data: Mapping of answers

        Returns:
            IntakeRecord

        Raises:
            ValidationError: If a single-select answer is not a known option
        """
        income = _text(_pick(data, "income", "selected_income"))
        if not income:
            family_size = _text(_pick(data, "familySize", "family_size"))
            threshold = _text(_pick(data, "incomeThreshold", "income_threshold"))
            if family_size and threshold:
                income = f"{family_size} - {threshold}"

        uninsured_value = _pick(data, "uninsured", "insuredNo", "insured_no")

        record = cls(
            email=_text(_pick(data, "email")),
            first_name=_text(_pick(data, "firstName", "first_name")),
            last_name=_text(_pick(data, "lastName", "last_name")),
            dob=_text(_pick(data, "dob")),
            date_of_birth=_parse_date(_pick(data, "dateOfBirth", "date_of_birth", "dob")),
            age=_text(_pick(data, "age")),
            phone=_text(_pick(data, "phone")),
            reason_for_visit=_text(
                _pick(data, "reason", "reasonForVisit", "reason_for_visit")
            ),
            is_existing_patient=_optional_bool(
                _pick(data, "isExistingPatient", "is_existing_patient")
            ),
            gender=parse_choice(Gender, _pick(data, "gender")),
            race=parse_choice(Race, _pick(data, "race", "selectedRace")),
            marital_status=parse_choice(
                MaritalStatus, _pick(data, "maritalStatus", "marital_status")
            ),
            ethnicity=parse_choice(Ethnicity, _pick(data, "ethnicity")),
            income=income,
            raw_address=_text(_pick(data, "rawAddress", "raw_address")),
            address=_text(_pick(data, "address")),
            city=_text(_pick(data, "city")),
            state=_text(_pick(data, "state")),
            zip=_text(_pick(data, "zip")),
            city_state=_text(_pick(data, "cityState", "city_state")),
            city_state_zip=_text(_pick(data, "cityStateZip", "city_state_zip")),
            uninsured=_as_bool(uninsured_value),
        )

        record.form_date = (
            _parse_date(_pick(data, "formDate", "form_date", "date")) or date.today()
        )

        _log_ignored_flags(record, data)
        return record

    def to_mapping(self) -> dict[str, Any]:
        """Serialize to the store's patient document shape."""
        return {
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "dob": self.dob_text,
            "dateOfBirth": self.date_of_birth.isoformat() if self.date_of_birth else "",
            "age": self.age,
            "phone": self.phone,
            "reason": self.reason_for_visit,
            "isExistingPatient": self.is_existing_patient,
            "gender": self.gender_label,
            "race": self.race.value if self.race else "",
            "maritalStatus": self.marital_status_label,
            "ethnicity": self.ethnicity_label,
            "income": self.income,
            "familySize": self.family_size,
            "incomeThreshold": self.income_threshold,
            "rawAddress": self.raw_address,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "cityStateZip": self.city_state_zip_text,
            "uninsured": self.uninsured,
        }


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:  # NaN from pandas
        return ""
    return str(value).strip()


def _as_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == value and bool(value)
    return str(value).strip().lower() in ("true", "1", "yes", "y", "x")


def _optional_bool(value: Any) -> Optional[bool]:
    # NaN is how pandas reports an empty cell
    if _text(value) == "" or (isinstance(value, float) and value != value):
        return None
    return _as_bool(value)


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = _text(value)
    for fmt in ("%Y-%m-%d", FORM_DATE_FORMAT):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.debug(f"Could not parse date value {text!r}; leaving it unset")
    return None


def _log_ignored_flags(record: IntakeRecord, data: Mapping[str, Any]) -> None:
    for flag, (attribute, member) in LEGACY_FLAGS.items():
        if flag not in data:
            continue
        flagged = _as_bool(data[flag])
        selected = getattr(record, attribute) is member
        if flagged != selected:
            logger.debug(
                f"Ignoring {flag}={flagged}: {attribute} selection is "
                f"{getattr(record, attribute)}"
            )
