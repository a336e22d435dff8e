"""PDF template validation functions.

This module provides validation functions for PDF form templates including:
- PDF header and page count checking
- Widget field name extraction
"""

import logging
from io import BytesIO
from typing import Iterator, Optional

from pypdf import PageObject, PdfReader
from pypdf.errors import PyPdfError
from pypdf.generic import DictionaryObject

from clinic_intake.utils.exceptions import TemplateLoadError


logger = logging.getLogger(__name__)

PDF_HEADER = b"%PDF-"


def open_pdf(content: bytes, source: str = "<bytes>") -> PdfReader:
    """Open PDF content and check that it has at least one page.

    Args:
        content: Raw PDF bytes
        source: Description of where the bytes came from, for error messages

    Returns:
        PdfReader over the content

    Raises:
        TemplateLoadError: If the content is not a PDF or has no pages
    """
    if not content.lstrip()[:5] == PDF_HEADER:
        error_msg = (
            f"Not a PDF document: {source}. "
            f"Check that the template is a fillable PDF file."
        )
        logger.error(error_msg)
        raise TemplateLoadError(error_msg)

    try:
        reader = PdfReader(BytesIO(content))
        page_count = len(reader.pages)
    except (PyPdfError, ValueError, KeyError, OSError) as e:
        error_msg = f"Unreadable PDF document {source}: {e}"
        logger.exception(error_msg)
        raise TemplateLoadError(error_msg) from e

    if page_count == 0:
        error_msg = f"PDF document has no pages: {source}"
        logger.error(error_msg)
        raise TemplateLoadError(error_msg)

    logger.debug(f"PDF validation passed: {source} ({page_count} pages)")
    return reader


def widget_name(annotation: DictionaryObject) -> Optional[str]:
    """Return the field name of a widget annotation.

    The name is the widget's own /T entry, or its parent field's /T when the
    widget is one of several kids of a field.
    """
    name = annotation.get("/T")
    if name is None and "/Parent" in annotation:
        name = annotation["/Parent"].get_object().get("/T")
    return str(name) if name is not None else None


def iter_widgets(page: PageObject) -> Iterator[tuple[str, DictionaryObject]]:
    """Yield (field name, widget annotation) for each named widget on a page."""
    annotations = page.get("/Annots")
    if annotations is None:
        return
    for reference in annotations.get_object():
        annotation = reference.get_object()
        if annotation.get("/Subtype") != "/Widget":
            continue
        name = widget_name(annotation)
        if name:
            yield name, annotation


def extract_field_names(reader: PdfReader) -> list[str]:
    """Extract widget field names in page order, without duplicates.

    Args:
        reader: Opened PDF

    Returns:
        Field names in the order they first appear
    """
    names: dict[str, None] = {}
    for page in reader.pages:
        for name, _ in iter_widgets(page):
            names.setdefault(name, None)
    logger.debug(f"Found {len(names)} named widgets")
    return list(names)
