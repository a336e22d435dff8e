"""CSV parser module.

This module loads batches of intake records from CSV files.
"""

from clinic_intake.csv_parser.parser import load_intake_dataframe, parse_intake_csv

__all__ = ["load_intake_dataframe", "parse_intake_csv"]
