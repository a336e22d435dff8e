"""Template Engine module.

This module provides PDF form template loading, filling and signing.
"""

from clinic_intake.template_engine.field_map import (
    FIELD_MAP,
    FieldMapReport,
    validate_field_map,
)
from clinic_intake.template_engine.loader import FormTemplate, TemplateLoader
from clinic_intake.template_engine.materializer import (
    FilledDocument,
    count_pages,
    fill,
    load_signature_image,
    materialize,
    stamp_signature,
)
from clinic_intake.template_engine.placements import (
    PLACEMENT_TABLES,
    Rect,
    SignaturePlacement,
    get_placements,
)
from clinic_intake.template_engine.validators import extract_field_names, open_pdf


__all__ = [
    "FIELD_MAP",
    "FieldMapReport",
    "FilledDocument",
    "FormTemplate",
    "PLACEMENT_TABLES",
    "Rect",
    "SignaturePlacement",
    "TemplateLoader",
    "count_pages",
    "extract_field_names",
    "fill",
    "get_placements",
    "load_signature_image",
    "materialize",
    "open_pdf",
    "stamp_signature",
    "validate_field_map",
]
