"""Intake form CLI commands.

Commands:
    form fill <record.json> - Fill, sign and save one intake form
    form batch <intake.csv> - Fill one form per CSV row
    form upload <form.pdf> - Upload a filled form to the shared folder
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click
import requests

from clinic_intake.config import Config, load_config
from clinic_intake.csv_parser import parse_intake_csv
from clinic_intake.models.intake import IntakeRecord
from clinic_intake.template_engine import (
    FormTemplate,
    TemplateLoader,
    count_pages,
    materialize,
)
from clinic_intake.transport import DriveUploader, StaticTokenProvider
from clinic_intake.utils.exceptions import (
    ClinicIntakeError,
    ValidationError,
    create_error_info,
)
from clinic_intake.utils.formatters import build_output_filename

logger = logging.getLogger(__name__)


@click.group(name="form")
def form_group() -> None:
    """Intake form commands.

    Use these commands to turn intake answers into filled, signed PDF forms
    and to deliver them to the clinic's shared folder.
    """


def _load_config_with_overrides(
    ctx: click.Context, template: Optional[Path] = None
) -> Config:
    """Load configuration, preferring the parent context.

    Args:
        ctx: Click context with parent config
        template: Optional template path override

    Returns:
        Configuration object with overrides applied
    """
    if ctx.obj and "config" in ctx.obj:
        config_obj = ctx.obj["config"]
    else:
        logger.info("Loading default configuration")
        config_obj = load_config()

    if template:
        logger.info(f"Overriding template path: {template}")
        config_obj.templates.template_path = template

    return config_obj


def load_record(record_file: Path) -> IntakeRecord:
    """Read an intake record from a JSON file.

    Raises:
        ValidationError: If the file is not a JSON object or holds invalid answers
    """
    try:
        data = json.loads(record_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError(f"Cannot read intake record {record_file}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Intake record {record_file} must be a JSON object")
    return IntakeRecord.from_mapping(data)


def _load_template(config_obj: Config) -> FormTemplate:
    return TemplateLoader().load_from_file(
        Path(config_obj.templates.template_path),
        version=config_obj.templates.template_version,
    )


def _build_uploader(config_obj: Config, token: Optional[str]) -> DriveUploader:
    return DriveUploader(
        config_obj.drive,
        StaticTokenProvider(token, env_var=config_obj.drive.token_env_var),
        transport=config_obj.transport,
    )


def _report_error(e: Exception, patient_name: Optional[str] = None) -> None:
    error_info = create_error_info(e, patient_name=patient_name)
    click.secho(f"✗ {error_info.error_type}: {error_info.message}", fg="red")
    click.echo(f"  Remediation: {error_info.remediation}")


@form_group.command(name="fill")
@click.argument("record_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--template",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="PDF form template (overrides templates.template_path)",
)
@click.option(
    "--signature",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Signature image (PNG/JPEG) stamped on every signature line",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output PDF path (default: <output_dir>/<prefix>_<date>_<name>.pdf)",
)
@click.option("--upload", is_flag=True, help="Upload the filled form after saving")
@click.option("--folder-id", default=None, help="Destination folder (overrides drive.folder_id)")
@click.option("--token", default=None, help="Access token (overrides the token environment variable)")
@click.pass_context
def fill_command(
    ctx: click.Context,
    record_file: Path,
    template: Optional[Path],
    signature: Optional[Path],
    output: Optional[Path],
    upload: bool,
    folder_id: Optional[str],
    token: Optional[str],
) -> None:
    """Fill, sign and save one intake form.

    Exit Codes:
        0: Form written (and uploaded, with --upload)
        1: Form could not be produced or uploaded

    Examples:
        clinic-intake form fill record.json --signature signature.png

        clinic-intake form fill record.json --output jane.pdf --upload
    """
    record: Optional[IntakeRecord] = None
    try:
        config_obj = _load_config_with_overrides(ctx, template)
        record = load_record(record_file)
        form_template = _load_template(config_obj)

        result = materialize(form_template, record, signature=signature)
        if not result.is_success:
            click.secho(f"✗ {result.status.value}: {result.error_message}", fg="red")
            raise click.exceptions.Exit(1)

        filename = output.name if output else build_output_filename(
            record.first_name,
            record.last_name,
            prefix=config_obj.output.filename_prefix,
        )
        click.secho(
            f"✓ Filled {len(result.filled_fields)} fields, "
            f"stamped {result.stamped_placements} signature lines "
            f"({result.processing_time_ms} ms)",
            fg="green",
        )
        if result.skipped_fields:
            click.secho(
                f"⚠ Unmapped template fields left blank: {', '.join(result.skipped_fields)}",
                fg="yellow",
            )

        if output or not upload or config_obj.output.keep_local_copy:
            output_path = output or Path(config_obj.output.output_dir) / filename
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(result.content)
            click.echo(f"Saved: {output_path}")
            logger.info(f"Saved filled form to {output_path}")

        if upload:
            uploader = _build_uploader(config_obj, token)
            try:
                upload_result = uploader.upload(result.content, filename, folder_id)
            finally:
                uploader.close()
            click.secho(f"✓ Uploaded {filename} (file id: {upload_result.file_id})", fg="green")

    except click.exceptions.Exit:
        raise
    except (ClinicIntakeError, requests.RequestException) as e:
        _report_error(e, record.full_name if record else None)
        logger.error(f"Form fill failed for {record_file}: {e}")
        raise click.exceptions.Exit(1)
    except Exception as e:
        click.secho(f"✗ Unexpected error: {e}", fg="red")
        logger.exception(f"Unexpected error filling form from {record_file}")
        raise click.exceptions.Exit(1)


def _unique_path(path: Path, used: dict[str, int]) -> Path:
    """Append a counter when a filename was already produced in this run."""
    if path.name not in used:
        used[path.name] = 0
        return path
    used[path.name] += 1
    return path.with_name(f"{path.stem}_{used[path.name]}{path.suffix}")


@form_group.command(name="batch")
@click.argument("csv_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--template",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="PDF form template (overrides templates.template_path)",
)
@click.option(
    "--output-dir",
    type=click.Path(path_type=Path),
    default=None,
    help="Directory for filled forms (overrides output.output_dir)",
)
@click.pass_context
def batch_command(
    ctx: click.Context,
    csv_file: Path,
    template: Optional[Path],
    output_dir: Optional[Path],
) -> None:
    """Fill one intake form per row of an intake CSV.

    Exit Codes:
        0: All forms written
        1: Complete failure (no forms written)
        2: Partial failure (some forms failed)

    Example:
        clinic-intake form batch examples/intake_sample.csv --output-dir output/
    """
    try:
        config_obj = _load_config_with_overrides(ctx, template)
        output_dir = output_dir or Path(config_obj.output.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        records = parse_intake_csv(csv_file)
        form_template = _load_template(config_obj)
        click.echo(f"Found {len(records)} intake records\n")

        written: list[Path] = []
        failed: list[tuple[str, str]] = []
        used_filenames: dict[str, int] = {}

        with click.progressbar(records, label="Filling forms", show_pos=True) as bar:
            for record in bar:
                result = materialize(form_template, record)
                if not result.is_success:
                    failed.append((record.full_name, result.error_message or result.status.value))
                    logger.error(f"Form for {record.full_name} failed: {result.error_message}")
                    continue

                path = _unique_path(
                    output_dir
                    / build_output_filename(
                        record.first_name,
                        record.last_name,
                        prefix=config_obj.output.filename_prefix,
                    ),
                    used_filenames,
                )
                path.write_bytes(result.content)
                written.append(path)

        display_summary(len(records), len(written), failed)

        if not failed:
            return
        if written:
            raise click.exceptions.Exit(2)
        raise click.exceptions.Exit(1)

    except click.exceptions.Exit:
        raise
    except FileNotFoundError as e:
        click.secho(f"✗ File not found: {e}", fg="red")
        raise click.exceptions.Exit(1)
    except ClinicIntakeError as e:
        _report_error(e)
        logger.error(f"Batch fill failed for {csv_file}: {e}")
        raise click.exceptions.Exit(1)
    except Exception as e:
        click.secho(f"✗ Unexpected error: {e}", fg="red")
        logger.exception(f"Unexpected error during batch fill of {csv_file}")
        raise click.exceptions.Exit(1)


def display_summary(total: int, successful: int, errors: list[tuple[str, str]]) -> None:
    """Display batch summary report.

    Example Output:
        ==================================================
        SUMMARY
        ==================================================
        Total records: 3
        Successful: 2
        Failed: 1

        Errors:
          - Jane Doe: Failed to serialize filled form ...
        ==================================================
    """
    click.echo("\n" + "=" * 50)
    click.echo("SUMMARY")
    click.echo("=" * 50)
    click.echo(f"Total records: {total}")
    click.secho(f"Successful: {successful}", fg="green" if successful > 0 else None)

    if errors:
        click.secho(f"Failed: {len(errors)}", fg="red")
        click.echo("\nErrors:")
        for name, error in errors:
            error_display = error if len(error) <= 100 else error[:97] + "..."
            click.echo(f"  - {name}: {error_display}")
    else:
        click.secho("Failed: 0", fg="green")

    click.echo("=" * 50)
    logger.info(f"SUMMARY: total={total} successful={successful} failed={len(errors)}")


@form_group.command(name="upload")
@click.argument("pdf_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--folder-id", default=None, help="Destination folder (overrides drive.folder_id)")
@click.option("--token", default=None, help="Access token (overrides the token environment variable)")
@click.pass_context
def upload_command(
    ctx: click.Context,
    pdf_file: Path,
    folder_id: Optional[str],
    token: Optional[str],
) -> None:
    """Upload a filled form to the shared folder.

    Example:
        clinic-intake form upload output/ClinicForm_2024-03-05_14-30_Jane_Doe.pdf
    """
    try:
        config_obj = _load_config_with_overrides(ctx)
        content = pdf_file.read_bytes()
        page_count = count_pages(content)
        click.echo(f"Uploading {pdf_file.name} ({page_count} pages, {len(content)} bytes)")

        uploader = _build_uploader(config_obj, token)
        try:
            result = uploader.upload(content, pdf_file.name, folder_id)
        finally:
            uploader.close()

        click.secho(f"✓ Uploaded {result.filename}", fg="green")
        click.echo(f"  File id:   {result.file_id}")
        click.echo(f"  Folder id: {result.folder_id}")

    except (ClinicIntakeError, requests.RequestException, OSError) as e:
        _report_error(e)
        logger.error(f"Upload of {pdf_file} failed: {e}")
        raise click.exceptions.Exit(1)
