"""PDF form template loading and caching.

This module provides the TemplateLoader class for loading fillable PDF
templates from files or bytes with validation and caching support.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from clinic_intake.template_engine.validators import extract_field_names, open_pdf
from clinic_intake.utils.exceptions import TemplateLoadError


logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_VERSION = "intake-v1"


@dataclass(frozen=True)
class FormTemplate:
    """A validated, read-only form template.

    Fills never modify a template; each fill works on its own copy of the
    bytes, so one template can be shared by any number of fills.

    Attributes:
        name: Template name (file name for file templates)
        version: Layout version, used to select signature placements
        content: Raw PDF bytes
        page_count: Number of pages
        field_names: Named widgets in page order
    """

    name: str
    version: str
    content: bytes
    page_count: int
    field_names: tuple[str, ...]


class TemplateLoader:
    """Loads and caches PDF form templates.

    Attributes:
        _cache: Dictionary mapping resolved file paths to loaded templates
    """

    def __init__(self) -> None:
        """Initialize template loader with empty cache."""
        self._cache: dict[str, FormTemplate] = {}
        logger.debug("TemplateLoader initialized")

    def load_from_file(
        self, file_path: Path, version: str = DEFAULT_TEMPLATE_VERSION
    ) -> FormTemplate:
        """Load a PDF template from file.

        Args:
            file_path: Path to the PDF template
            version: Layout version of the template

        Returns:
            FormTemplate

        Raises:
            TemplateLoadError: If the file is missing, unreadable, not a PDF
                or has no pages
        """
        cache_key = f"{file_path.resolve()}::{version}"
        if cache_key in self._cache:
            logger.debug(f"Cache hit for template: {file_path}")
            return self._cache[cache_key]

        try:
            logger.info(f"Loading template from file: {file_path}")

            if not file_path.exists():
                raise TemplateLoadError(
                    f"Template file not found: {file_path}. "
                    f"Check that the file path is correct and the file exists."
                )

            content = file_path.read_bytes()

        except PermissionError as e:
            error_msg = (
                f"Permission denied reading template file: {file_path}. "
                f"Check file permissions."
            )
            logger.exception(error_msg)
            raise TemplateLoadError(error_msg) from e
        except OSError as e:
            error_msg = f"Cannot read template file {file_path}: {e}"
            logger.exception(error_msg)
            raise TemplateLoadError(error_msg) from e

        template = self._build(content, file_path.name, version, str(file_path))
        self._cache[cache_key] = template
        logger.debug(f"Template cached: {file_path}")
        return template

    def load_from_bytes(
        self,
        content: bytes,
        name: str = "template.pdf",
        version: str = DEFAULT_TEMPLATE_VERSION,
    ) -> FormTemplate:
        """Load a PDF template from bytes. Byte templates are not cached.

        Raises:
            TemplateLoadError: If the bytes are not a PDF or have no pages
        """
        logger.info(f"Loading template from bytes: {name}")
        return self._build(content, name, version, name)

    def _build(
        self, content: bytes, name: str, version: str, source: str
    ) -> FormTemplate:
        reader = open_pdf(content, source)
        return FormTemplate(
            name=name,
            version=version,
            content=content,
            page_count=len(reader.pages),
            field_names=tuple(extract_field_names(reader)),
        )

    def clear_cache(self) -> None:
        """Clear all cached templates.

        Useful when a template file was replaced on disk.
        """
        logger.info(f"Clearing template cache ({len(self._cache)} entries)")
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        """Get the number of templates currently cached."""
        return len(self._cache)
