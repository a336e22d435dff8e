"""Entry point for running clinic_intake as a module.

This allows the package to be executed as:
    python -m clinic_intake
"""

from clinic_intake.cli.main import cli

if __name__ == "__main__":
    cli()
