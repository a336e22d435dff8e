"""Text formatting helpers for intake data.

Covers phone numbers, formatted postal addresses and the naming convention
for generated form files.
"""

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from clinic_intake.models.intake import PostalAddress

logger = logging.getLogger(__name__)

_STATE_ZIP = re.compile(r"^(?P<state>[A-Z]{2})(?:\s+(?P<zip>\d{5}(?:-\d{4})?))?$")
_COUNTRIES = {"usa", "us", "united states", "united states of america"}


def format_phone(number: str) -> str:
    """Format up to ten digits as (XXX) XXX-XXXX.

    Non-digits are dropped and extra digits are ignored; shorter input is
    formatted as far as it goes.

    Example:
        >>> format_phone("555-123-4567")
        '(555) 123-4567'
        >>> format_phone("55512")
        '(555) 12'
    """
    digits = re.sub(r"\D", "", number)[:10]
    if len(digits) <= 3:
        return digits
    if len(digits) <= 6:
        return f"({digits[:3]}) {digits[3:]}"
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def parse_formatted_address(text: str) -> PostalAddress:
    """Split a one-line formatted address into its parts.

    Handles the usual autocomplete shape
    "123 Main St, Springfield, IL 62701, USA". Parts that cannot be
    identified are left empty; the input is always kept as the raw address.

    Args:
        text: Formatted address

    Returns:
        PostalAddress
    """
    raw = text.strip()
    parts = [part.strip() for part in raw.split(",") if part.strip()]
    if parts and parts[-1].casefold() in _COUNTRIES:
        parts.pop()

    postal = PostalAddress(raw=raw)
    if len(parts) < 2:
        logger.debug("Address has too few parts to split; keeping raw text only")
        postal.street = parts[0] if parts else ""
        return postal

    match = _STATE_ZIP.match(parts[-1])
    if match is None:
        logger.debug("Address has no recognizable state/zip part")
        postal.street = parts[0]
        postal.city = parts[1] if len(parts) > 1 else ""
        return postal

    postal.state = match.group("state")
    postal.zip = match.group("zip") or ""
    postal.city = parts[-2] if len(parts) >= 3 else ""
    postal.street = ", ".join(parts[:-2] if len(parts) >= 3 else parts[:-1])
    return postal


class AddressLookup(ABC):
    """Resolves free text typed by the patient into a postal address."""

    @abstractmethod
    def lookup(self, text: str) -> PostalAddress:
        """Return the best matching postal address for the text."""


class FormattedAddressLookup(AddressLookup):
    """Lookup for text that is already a complete formatted address."""

    def lookup(self, text: str) -> PostalAddress:
        return parse_formatted_address(text)


def build_output_filename(
    first_name: str,
    last_name: str,
    when: Optional[datetime] = None,
    prefix: str = "ClinicForm",
) -> str:
    """Name a generated form file.

    Example:
        >>> build_output_filename("Mary Ann", "Lee", datetime(2024, 3, 5, 9, 7))
        'ClinicForm_2024-03-05_09-07_Mary_Ann_Lee.pdf'
    """
    when = when or datetime.now()
    patient = f"{first_name}_{last_name}".replace(" ", "_")
    return f"{prefix}_{when:%Y-%m-%d_%H-%M}_{patient}.pdf"
