"""Form-to-document materializer.

Projects an IntakeRecord onto the named widgets of a PDF form template,
stamps the patient's signature at the template's signature lines and
serializes the result.

Each fill starts from a fresh writer cloned from the template bytes, so a
FormTemplate can be shared freely. Nothing here retries: when any step fails
the attempt is over and the caller starts again from a freshly loaded
template.
"""

import time
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional, Union

from fpdf import FPDF
from PIL import Image
from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from pypdf.generic import NameObject, TextStringObject

from clinic_intake.logging_audit import get_operation_logger, log_audit_event
from clinic_intake.models.intake import IntakeRecord
from clinic_intake.models.results import MaterializationResult, MaterializationStatus
from clinic_intake.template_engine.field_map import FIELD_MAP
from clinic_intake.template_engine.loader import FormTemplate
from clinic_intake.template_engine.placements import SignaturePlacement, get_placements
from clinic_intake.template_engine.validators import PDF_HEADER, iter_widgets
from clinic_intake.utils.exceptions import (
    SerializationError,
    SignatureImageError,
    TemplateLoadError,
    ValidationError,
)

logger = get_operation_logger("materialize")

SignatureSource = Union[Image.Image, bytes, str, Path]


class FilledDocument:
    """A template copy with record values written into its widgets.

    Attributes:
        template: Template the document was cloned from
        writer: pypdf writer holding the document
        filled_fields: Widget names that received a value
        skipped_fields: Widget names with no mapping (left untouched)
        stamped_placements: Signature rectangles drawn so far
    """

    def __init__(self, template: FormTemplate, writer: PdfWriter) -> None:
        self.template = template
        self.writer = writer
        self.filled_fields: list[str] = []
        self.skipped_fields: list[str] = []
        self.stamped_placements = 0

    @property
    def page_count(self) -> int:
        return len(self.writer.pages)

    def to_bytes(self) -> bytes:
        """Serialize the document.

        Returns:
            PDF bytes

        Raises:
            SerializationError: If the document cannot be written. No partial
                output is returned.
        """
        buffer = BytesIO()
        try:
            self.writer.write(buffer)
        except (PyPdfError, ValueError, TypeError, KeyError, OSError) as e:
            error_msg = f"Failed to serialize filled form from {self.template.name}: {e}"
            logger.exception(error_msg)
            raise SerializationError(error_msg) from e

        content = buffer.getvalue()
        if not content:
            raise SerializationError(
                f"Serializing filled form from {self.template.name} produced no data"
            )
        return content


def fill(template: FormTemplate, record: IntakeRecord) -> FilledDocument:
    """Write record values into every mapped widget of a template copy.

    Widgets whose name is not in FIELD_MAP are logged and left untouched.
    The record is not modified.

    Args:
        template: Loaded template
        record: Intake answers

    Returns:
        FilledDocument

    Raises:
        TemplateLoadError: If the template bytes cannot be cloned or its
            fields cannot be updated
    """
    try:
        writer = PdfWriter(clone_from=PdfReader(BytesIO(template.content)))
    except (PyPdfError, ValueError, KeyError, OSError) as e:
        error_msg = f"Cannot open template {template.name} for filling: {e}"
        logger.exception(error_msg)
        raise TemplateLoadError(error_msg) from e

    document = FilledDocument(template, writer)

    for page_index, page in enumerate(writer.pages):
        values: dict[str, str] = {}
        for name, widget in iter_widgets(page):
            rule = FIELD_MAP.get(name)
            if rule is None:
                logger.warning(
                    f"No mapping for template field '{name}' on page {page_index}; "
                    f"leaving it unchanged"
                )
                if name not in document.skipped_fields:
                    document.skipped_fields.append(name)
                continue

            values[name] = rule(record)
            widget[NameObject("/Contents")] = TextStringObject(values[name])
            if name not in document.filled_fields:
                document.filled_fields.append(name)

        if not values:
            continue
        try:
            # Sets /V on the field (the parent for unnamed kids) and rebuilds /AP
            writer.update_page_form_field_values(page, values, auto_regenerate=True)
        except (PyPdfError, ValueError, KeyError) as e:
            error_msg = f"Cannot fill fields on page {page_index} of {template.name}: {e}"
            logger.exception(error_msg)
            raise TemplateLoadError(error_msg) from e

    writer.set_need_appearances_writer(True)

    logger.debug(
        f"Filled {len(document.filled_fields)} fields from {template.name} "
        f"({len(document.skipped_fields)} unmapped)"
    )
    return document


def load_signature_image(source: SignatureSource) -> Image.Image:
    """Decode a signature image.

    Args:
        source: PIL image, encoded PNG/JPEG bytes, or a path to an image file

    Returns:
        Decoded PIL image

    Raises:
        SignatureImageError: If the image cannot be read or decoded
    """
    if isinstance(source, Image.Image):
        return source

    try:
        if isinstance(source, (bytes, bytearray)):
            image = Image.open(BytesIO(source))
        else:
            image = Image.open(Path(source))
        image.load()
    except (OSError, ValueError, SyntaxError) as e:
        error_msg = f"Cannot decode signature image: {e}"
        logger.error(error_msg)
        raise SignatureImageError(error_msg) from e

    return image


def stamp_signature(
    document: FilledDocument,
    image: Optional[SignatureSource],
    placements: Iterable[SignaturePlacement],
) -> FilledDocument:
    """Draw the signature into each placement rectangle.

    The image is stretched to fill each rectangle. Placements on pages the
    document does not have are skipped.

    Args:
        document: Filled document, modified in place
        image: Signature image; None leaves the document unchanged
        placements: Target rectangles

    Returns:
        The same document

    Raises:
        SignatureImageError: If the image cannot be decoded
    """
    if image is None:
        return document

    signature = load_signature_image(image)

    by_page: dict[int, list[SignaturePlacement]] = {}
    for placement in placements:
        if not 0 <= placement.page_index < document.page_count:
            logger.debug(
                f"Skipping signature placement on page {placement.page_index}: "
                f"document has {document.page_count} pages"
            )
            continue
        by_page.setdefault(placement.page_index, []).append(placement)

    for page_index, page_placements in sorted(by_page.items()):
        page = document.writer.pages[page_index]
        page.merge_page(_render_overlay(signature, page, page_placements))
        document.stamped_placements += len(page_placements)

    logger.debug(f"Stamped signature into {document.stamped_placements} placements")
    return document


def _render_overlay(
    signature: Image.Image,
    page: PageObject,
    placements: list[SignaturePlacement],
) -> PageObject:
    """Render a transparent page holding the signature at each placement."""
    width = float(page.mediabox.right)
    height = float(page.mediabox.top)

    pdf = FPDF(unit="pt", format=(width, height))
    pdf.set_auto_page_break(False)
    pdf.add_page()
    for placement in placements:
        rect = placement.rect
        # fpdf2 measures y from the top of the page
        pdf.image(
            signature,
            x=rect.x,
            y=height - rect.y - rect.height,
            w=rect.width,
            h=rect.height,
        )

    return PdfReader(BytesIO(bytes(pdf.output()))).pages[0]


def count_pages(content: bytes) -> int:
    """Count the pages of serialized PDF content.

    Raises:
        ValidationError: If the content is not a readable PDF
    """
    if content.lstrip()[:5] != PDF_HEADER:
        raise ValidationError("Content is not a PDF document")
    try:
        return len(PdfReader(BytesIO(content)).pages)
    except (PyPdfError, ValueError, KeyError, OSError) as e:
        raise ValidationError(f"Content is not a readable PDF: {e}") from e


def materialize(
    template: Optional[FormTemplate],
    record: IntakeRecord,
    signature: Optional[SignatureSource] = None,
    placements: Optional[Iterable[SignaturePlacement]] = None,
) -> MaterializationResult:
    """Fill, sign and serialize one intake form.

    Args:
        template: Loaded template; None reports TEMPLATE_UNAVAILABLE
        record: Intake answers
        signature: Optional signature image
        placements: Signature rectangles; defaults to the table for the
            template's version

    Returns:
        MaterializationResult carrying the PDF bytes on success

    Raises:
        SignatureImageError: If the signature image cannot be decoded

    Example:
        >>> template = TemplateLoader().load_from_file(Path("templates/intake-form.pdf"))
        >>> result = materialize(template, record, signature=Path("signature.png"))
        >>> result.status
        <MaterializationStatus.SUCCESS: 'SUCCESS'>
    """
    start_time = time.time()

    if template is None:
        return _finish(
            MaterializationResult(
                status=MaterializationStatus.TEMPLATE_UNAVAILABLE,
                error_message="No form template loaded",
            ),
            start_time,
        )

    signature_image = load_signature_image(signature) if signature is not None else None
    if placements is None:
        placements = get_placements(template.version)

    try:
        document = fill(template, record)
        stamp_signature(document, signature_image, placements)
        content = document.to_bytes()
    except TemplateLoadError as e:
        return _finish(
            MaterializationResult(
                status=MaterializationStatus.TEMPLATE_UNAVAILABLE,
                error_message=str(e),
                template_name=template.name,
            ),
            start_time,
        )
    except SerializationError as e:
        return _finish(
            MaterializationResult(
                status=MaterializationStatus.SERIALIZATION_FAILED,
                error_message=str(e),
                template_name=template.name,
            ),
            start_time,
        )

    return _finish(
        MaterializationResult(
            status=MaterializationStatus.SUCCESS,
            content=content,
            filled_fields=document.filled_fields,
            skipped_fields=document.skipped_fields,
            stamped_placements=document.stamped_placements,
            template_name=template.name,
        ),
        start_time,
    )


def _finish(result: MaterializationResult, start_time: float) -> MaterializationResult:
    duration = time.time() - start_time
    result.processing_time_ms = int(duration * 1000)

    details = {
        "status": "success" if result.is_success else "failure",
        "duration": duration,
        "outcome": result.status.value,
        "template": result.template_name,
        "filled_fields": len(result.filled_fields),
        "skipped_fields": len(result.skipped_fields),
        "stamped_placements": result.stamped_placements,
    }
    if result.error_message:
        details["error_message"] = result.error_message
    log_audit_event("FORM_MATERIALIZED", details)
    return result
