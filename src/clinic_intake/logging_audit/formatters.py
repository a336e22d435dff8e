"""Custom log formatters for the clinic intake toolkit.

This module provides specialized formatters for logging, including PII redaction.
"""

import logging
import re
from typing import List, Tuple


class PIIRedactingFormatter(logging.Formatter):
    """Formatter that redacts patient identifying information from log messages.

    Intake logs routinely mention patients, so when redaction is enabled the
    formatter masks SSNs, email addresses, phone numbers, dates of birth and
    patient names before the message reaches a handler.

    Attributes:
        redact_pii: Whether to enable PII redaction
        patterns: List of (regex_pattern, replacement_text) tuples for redaction

    Example:
        >>> formatter = PIIRedactingFormatter(
        ...     fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        ...     redact_pii=True
        ... )
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact_pii: bool = False,
    ) -> None:
        """Initialize the PIIRedactingFormatter.

        Args:
            fmt: Log message format string
            datefmt: Date format string (optional)
            redact_pii: Whether to enable PII redaction
        """
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact_pii = redact_pii

        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # SSN: 123-45-6789
            (re.compile(r'\b\d{3}-\d{2}-\d{4}\b'), '[SSN-REDACTED]'),

            # Email: jane.doe@example.com
            (re.compile(r'\b[\w.+-]+@[\w-]+(?:\.[\w-]+)+\b'), '[EMAIL-REDACTED]'),

            # Phone: (555) 123-4567, 555-123-4567, 555.123.4567
            (re.compile(r'\(?\b\d{3}\)?[\s.-]?\d{3}[\s.-]\d{4}\b'), '[PHONE-REDACTED]'),

            # DOB: 01/02/1990
            (re.compile(r'\b\d{1,2}/\d{1,2}/\d{4}\b'), '[DATE-REDACTED]'),

            # name="Jane Doe", name='Jane Doe', name=Jane
            (re.compile(r'name=["\']?([^"\'|,]+)["\']?'), 'name=[NAME-REDACTED]'),

            # "Patient: Jane Doe", "Name: Jane Doe"
            (re.compile(r'(Patient|Name):\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+'),
             r'\1: [NAME-REDACTED]'),
        ]

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with optional PII redaction.

        Args:
            record: Log record to format

        Returns:
            Formatted log message with PII redacted if enabled
        """
        original = super().format(record)

        if self.redact_pii:
            for pattern, replacement in self.patterns:
                original = pattern.sub(replacement, original)

        return original
