"""Main CLI entry point for the clinic intake toolkit.

This module provides the main Click command group for the clinic-intake CLI.
"""

from pathlib import Path
from typing import Optional

import click

from clinic_intake import __version__
from clinic_intake.cli.clinic_commands import clinic_group
from clinic_intake.cli.form_commands import form_group
from clinic_intake.cli.mock_commands import mock_group
from clinic_intake.cli.template_commands import template_group
from clinic_intake.config import load_config
from clinic_intake.logging_audit import (
    configure_logging,
    configure_operation_logging_from_config,
)
from clinic_intake.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="clinic-intake")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.option(
    "--redact-pii",
    is_flag=True,
    help="Redact PII (patient names, phone numbers, emails) from logs",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
    redact_pii: bool,
) -> None:
    """Clinic Intake - patient intake forms for mobile clinics.

    Fills the clinic's PDF intake form from patient answers, stamps the
    patient's signature, uploads the result to the shared drive folder and
    moves patients through the clinic-day workflow.

    Common usage:

        # Fill one form from a saved intake record
        clinic-intake form fill record.json --signature signature.png

        # Fill forms for every row of an intake CSV
        clinic-intake form batch intake.csv --output-dir output/

        # Show today's schedule
        clinic-intake clinic today

        # Enable verbose logging for debugging
        clinic-intake --verbose template validate templates/intake-form.pdf

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose
    ctx.obj["redact_pii"] = redact_pii
    ctx.obj["log_file"] = log_file

    # CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file
    redact_pii_setting = redact_pii if redact_pii else config_obj.logging.redact_pii

    configure_logging(
        level=log_level, log_file=log_file_path, redact_pii=redact_pii_setting
    )
    if not verbose:
        configure_operation_logging_from_config(config_obj.operation_logging)


cli.add_command(form_group)
cli.add_command(template_group)
cli.add_command(clinic_group)
cli.add_command(mock_group)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        clinic-intake config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)

        click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
        click.echo(f"\nConfiguration file: {config_file}")
        click.echo("\nTemplate:")
        click.echo(f"  Path:        {config_obj.templates.template_path}")
        click.echo(f"  Version:     {config_obj.templates.template_version}")

        click.echo("\nOutput:")
        click.echo(f"  Directory:   {config_obj.output.output_dir}")
        click.echo(f"  Prefix:      {config_obj.output.filename_prefix}")

        click.echo("\nUpload:")
        click.echo(f"  URL:         {config_obj.drive.upload_url}")
        click.echo(f"  Folder id:   {config_obj.drive.folder_id or 'Not configured'}")

        click.echo("\nData store:")
        click.echo(f"  Backend:     {config_obj.datastore.backend}")

        click.echo("\nTransport:")
        click.echo(f"  Verify TLS:  {config_obj.transport.verify_tls}")
        click.echo(
            f"  Timeouts:    {config_obj.transport.timeout_connect}s connect, "
            f"{config_obj.transport.timeout_read}s read"
        )
        click.echo(f"  Retries:     {config_obj.transport.max_retries}")

        click.echo("\nLogging:")
        click.echo(f"  Level:       {config_obj.logging.level}")
        click.echo(f"  Log file:    {config_obj.logging.log_file}")
        click.echo(f"  Redact PII:  {config_obj.logging.redact_pii}")

    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)


cli.add_command(config)


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"clinic-intake version {__version__}")


if __name__ == "__main__":
    cli()
