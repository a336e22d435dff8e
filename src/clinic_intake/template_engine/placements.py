"""Signature placement tables.

Placements are static and versioned together with the template layout. A new
template revision that moves the signature lines needs a new table entry.
Coordinates are PDF points with the origin at the bottom-left of the page.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    """Rectangle in PDF points, bottom-left origin."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Rect width and height must be positive, got "
                f"{self.width}x{self.height}"
            )


@dataclass(frozen=True)
class SignaturePlacement:
    """Where one copy of the signature is drawn.

    Attributes:
        page_index: Zero-based page index
        rect: Target rectangle on that page
    """

    page_index: int
    rect: Rect


_SIGNATURE_WIDTH = 100
_SIGNATURE_HEIGHT = 25


def _line(page_index: int, x: float, y: float) -> SignaturePlacement:
    return SignaturePlacement(
        page_index, Rect(x, y, _SIGNATURE_WIDTH, _SIGNATURE_HEIGHT)
    )


PLACEMENT_TABLES: dict[str, tuple[SignaturePlacement, ...]] = {
    "intake-v1": (
        _line(1, 105, 500),
        _line(2, 80, 70),
        _line(3, 220, 350),
        _line(3, 105, 210),
        _line(3, 105, 135),
        _line(3, 105, 87),
        _line(3, 105, 45),
    ),
}


def get_placements(template_version: str) -> tuple[SignaturePlacement, ...]:
    """Return the placement table for a template version.

    Unknown versions return an empty table and log a warning, so the form is
    still produced, unsigned.
    """
    placements = PLACEMENT_TABLES.get(template_version)
    if placements is None:
        logger.warning(
            f"No signature placements for template version '{template_version}'. "
            f"Known versions: {', '.join(sorted(PLACEMENT_TABLES))}"
        )
        return ()
    return placements
