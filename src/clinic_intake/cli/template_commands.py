"""Form template CLI commands.

Commands:
    template validate <file> - Check a PDF template against the field map
"""

import logging
from pathlib import Path

import click

from clinic_intake.template_engine import (
    TemplateLoader,
    get_placements,
    validate_field_map,
)
from clinic_intake.template_engine.loader import DEFAULT_TEMPLATE_VERSION
from clinic_intake.utils.exceptions import TemplateError

logger = logging.getLogger(__name__)


@click.group(name="template")
def template_group() -> None:
    """Form template commands.

    Use these commands to check that a fillable PDF template matches the
    intake field map before using it at a clinic.
    """


@template_group.command(name="validate")
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--version",
    "template_version",
    default=DEFAULT_TEMPLATE_VERSION,
    show_default=True,
    help="Template version selecting the signature placement table",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Fail when widgets or field map keys are unmatched",
)
def validate_command(file: Path, template_version: str, strict: bool) -> None:
    """Validate a PDF form template.

    Lists the template's widgets, the widgets the field map does not cover,
    the field map keys with no widget, and the signature lines for the
    template version.

    Exit Codes:
        0: Template is usable
        1: Template cannot be opened, or is incomplete with --strict

    Example:
        clinic-intake template validate templates/intake-form.pdf
    """
    try:
        template = TemplateLoader().load_from_file(file, version=template_version)
        logger.info(f"Loaded template from {file}")
        click.secho(f"✓ Template opened: {template.page_count} pages", fg="green")

        click.echo(f"\nFound {len(template.field_names)} widgets:")
        for name in sorted(template.field_names):
            click.echo(f"  - {name}")

        report = validate_field_map(template.field_names)
        if report.unmapped:
            click.secho(
                f"\n⚠ Widgets with no mapping (left blank): {', '.join(report.unmapped)}",
                fg="yellow",
            )
        if report.unused:
            click.secho(
                f"\n⚠ Field map keys with no widget: {', '.join(report.unused)}",
                fg="yellow",
            )

        placements = get_placements(template_version)
        click.echo(f"\nSignature lines ({template_version}): {len(placements)}")
        for placement in placements:
            rect = placement.rect
            note = "" if placement.page_index < template.page_count else " (page missing, skipped)"
            click.echo(
                f"  - page {placement.page_index}: x={rect.x:g} y={rect.y:g} "
                f"{rect.width:g}x{rect.height:g}{note}"
            )

        if report.is_complete:
            click.secho("\n✓ All widgets match the field map", fg="green")
            logger.info(f"Template {file} validation successful")
        elif strict:
            click.secho("\n✗ Template does not match the field map", fg="red")
            logger.error(
                f"Template {file} incomplete: unmapped={report.unmapped} unused={report.unused}"
            )
            raise click.exceptions.Exit(1)

    except TemplateError as e:
        click.secho(f"✗ Validation failed: {e}", fg="red")
        logger.error(f"Template validation failed for {file}: {e}")
        raise click.exceptions.Exit(1)
