"""CSV parser for batches of intake records.

Each row holds one patient's intake answers using snake_case column names
(first_name, marital_status, ...). Rows become IntakeRecord objects ready to
be materialized.
"""

import time
from pathlib import Path

import pandas as pd

from clinic_intake.logging_audit import get_operation_logger, log_audit_event
from clinic_intake.models.intake import IntakeRecord
from clinic_intake.utils.exceptions import ValidationError


logger = get_operation_logger("csv")

# Required CSV columns
REQUIRED_COLUMNS = ["first_name", "last_name"]

# Optional CSV columns
OPTIONAL_COLUMNS = [
    "email",
    "dob",
    "age",
    "phone",
    "reason_for_visit",
    "is_existing_patient",
    "gender",
    "race",
    "marital_status",
    "ethnicity",
    "income",
    "raw_address",
    "address",
    "city",
    "state",
    "zip",
    "uninsured",
    "form_date",
]


def load_intake_dataframe(file_path: Path) -> pd.DataFrame:
    """Load an intake CSV as strings, checking the required columns.

    All values are read as text so ZIP codes and phone numbers keep leading
    zeros; empty cells become "".

    Raises:
        ValidationError: If the file cannot be parsed or columns are missing
        FileNotFoundError: If the CSV file does not exist
    """
    logger.info(f"Loading CSV from {file_path}")

    if not file_path.exists():
        raise FileNotFoundError(f"CSV file not found: {file_path}")

    try:
        df = pd.read_csv(file_path, encoding="utf-8", dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ValidationError(
            f"Failed to read CSV file {file_path}. Ensure file is valid CSV with "
            f"UTF-8 encoding. Error: {e}"
        ) from e

    df.columns = [str(column).strip() for column in df.columns]

    missing_columns = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing_columns:
        raise ValidationError(
            f"Missing required columns: {', '.join(missing_columns)}. "
            f"Required columns are: {', '.join(REQUIRED_COLUMNS)}"
        )

    all_valid_columns = set(REQUIRED_COLUMNS + OPTIONAL_COLUMNS)
    unknown_columns = [col for col in df.columns if col not in all_valid_columns]
    if unknown_columns:
        logger.warning(
            f"CSV contains unknown columns that will be ignored: {', '.join(unknown_columns)}"
        )

    return df


def parse_intake_csv(file_path: Path) -> list[IntakeRecord]:
    """Parse every row of an intake CSV into an IntakeRecord.

    All rows are checked before anything is returned; every problem is
    reported together with its row number.

    Args:
        file_path: Path to the CSV file

    Returns:
        Records in file order

    Raises:
        ValidationError: If the file is malformed or any row is invalid
        FileNotFoundError: If the CSV file does not exist

    Example:
        >>> records = parse_intake_csv(Path("examples/intake_sample.csv"))
        >>> records[0].full_name
        'Jane Doe'
    """
    start_time = time.time()
    df = load_intake_dataframe(file_path)

    records: list[IntakeRecord] = []
    errors: list[str] = []
    for idx, row in df.iterrows():
        row_num = idx + 2  # header is row 1
        values = row.to_dict()
        if not values.get("first_name", "").strip() and not values.get("last_name", "").strip():
            errors.append(f"Row {row_num}: first_name and last_name are both empty")
            continue
        try:
            records.append(IntakeRecord.from_mapping(values))
        except ValidationError as e:
            errors.append(f"Row {row_num}: {e}")

    if errors:
        log_audit_event(
            "CSV_PROCESSED",
            {
                "status": "failure",
                "input_file": str(file_path),
                "record_count": len(df),
                "error_count": len(errors),
                "duration": time.time() - start_time,
            },
        )
        raise ValidationError(
            f"Found {len(errors)} validation error(s) in CSV:\n  - "
            + "\n  - ".join(errors)
        )

    log_audit_event(
        "CSV_PROCESSED",
        {
            "status": "success",
            "input_file": str(file_path),
            "record_count": len(records),
            "duration": time.time() - start_time,
        },
    )
    logger.info(f"Successfully parsed {len(records)} intake record(s)")
    return records
