"""Result data models for form generation and upload."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class MaterializationStatus(Enum):
    """Outcome of producing a filled, signed document."""

    SUCCESS = "SUCCESS"
    TEMPLATE_UNAVAILABLE = "TEMPLATE_UNAVAILABLE"
    SERIALIZATION_FAILED = "SERIALIZATION_FAILED"


@dataclass
class MaterializationResult:
    """Result of one fill-stamp-serialize attempt.

    A failed attempt is final: to try again, load the template afresh and
    materialize again.

    Attributes:
        status: Outcome of the attempt
        content: PDF bytes on success, None otherwise
        error_message: Failure description
        filled_fields: Template fields that received a value
        skipped_fields: Template fields with no mapping
        stamped_placements: Number of signature rectangles drawn
        template_name: Name of the template used
        processing_time_ms: Time spent in milliseconds

    Example:
        >>> result = materialize(template, record, signature=png_bytes)
        >>> if result.is_success:
        ...     Path("form.pdf").write_bytes(result.content)
    """

    status: MaterializationStatus
    content: Optional[bytes] = None
    error_message: Optional[str] = None
    filled_fields: List[str] = field(default_factory=list)
    skipped_fields: List[str] = field(default_factory=list)
    stamped_placements: int = 0
    template_name: str = ""
    processing_time_ms: int = 0

    @property
    def is_success(self) -> bool:
        return self.status == MaterializationStatus.SUCCESS


@dataclass
class UploadResult:
    """Result of a successful upload to the file service.

    Attributes:
        file_id: Identifier assigned by the service
        filename: Uploaded file name
        folder_id: Destination folder
        size_bytes: Uploaded content size
        uploaded_at: Completion time
        processing_time_ms: Round-trip latency in milliseconds
    """

    file_id: str
    filename: str
    folder_id: str
    size_bytes: int
    uploaded_at: datetime = field(default_factory=datetime.now)
    processing_time_ms: int = 0
