"""Patient vitals model."""

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

from clinic_intake.utils.exceptions import ValidationError

# Store document keys for each attribute
_STORE_KEYS = {
    "height_cm": "height",
    "weight_kg": "weight",
    "temperature_f": "temperature",
    "heart_rate": "heartRate",
    "respiratory_rate": "respiratoryRate",
    "blood_pressure": "bloodPressure",
    "spo2": "spo2",
    "glucose": "glucose",
    "pain_level": "painLevel",
    "chief_complaint": "chiefComplaint",
    "allergies": "allergies",
    "recent_travel": "recentTravel",
    "recent_illness": "recentIllness",
}


@dataclass
class Vitals:
    """Vitals recorded by clinic staff before the patient sees a provider.

    Attributes:
        height_cm: Height in centimeters
        weight_kg: Weight in kilograms
        temperature_f: Body temperature in Fahrenheit
        heart_rate: Beats per minute
        respiratory_rate: Breaths per minute
        blood_pressure: Systolic pressure in mmHg
        spo2: Oxygen saturation percentage
        glucose: Blood glucose in mg/dL
        pain_level: Self-reported pain from 0 to 10
        chief_complaint: Main complaint in the patient's words
        allergies: Known allergies ("" for none)
        recent_travel: Travelled recently
        recent_illness: Recent illness description
    """

    height_cm: Optional[int] = None
    weight_kg: Optional[int] = None
    temperature_f: Optional[float] = None
    heart_rate: Optional[int] = None
    respiratory_rate: Optional[int] = None
    blood_pressure: Optional[int] = None
    spo2: Optional[int] = None
    glucose: Optional[int] = None
    pain_level: Optional[int] = None
    chief_complaint: str = ""
    allergies: str = ""
    recent_travel: bool = False
    recent_illness: str = ""

    def __post_init__(self) -> None:
        if self.pain_level is not None and not 0 <= self.pain_level <= 10:
            raise ValidationError(
                f"pain_level must be between 0 and 10, got {self.pain_level}"
            )
        if self.spo2 is not None and not 0 <= self.spo2 <= 100:
            raise ValidationError(f"spo2 must be between 0 and 100, got {self.spo2}")

    def to_mapping(self) -> dict[str, Any]:
        """Serialize to the store's vitals sub-document."""
        return {_STORE_KEYS[name]: value for name, value in asdict(self).items()}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Vitals":
        """Build vitals from a store sub-document; unknown keys are ignored."""
        values = {
            name: data[key] for name, key in _STORE_KEYS.items() if key in data
        }
        return cls(**values)
