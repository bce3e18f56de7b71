# -*- coding: utf-8 -*-
"""
sg-normalize - connector onboarding and normalization from the shell

Commands:
    infer          Propose a schema for a sample of raw records
    validate-rule  Check a mapping rule file (YAML or JSON)
    normalize      Normalize a records file with a mapping rule file
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from signalgrid.connector_normalizer import __version__
from signalgrid.connector_normalizer.config import get_config
from signalgrid.connector_normalizer.errors import InvalidMappingRuleError
from signalgrid.connector_normalizer.models import (
    create_normalization_context,
    validate_mapping_rule,
)
from signalgrid.connector_normalizer.setup import ConnectorNormalizerService

app = typer.Typer(
    name="sg-normalize",
    help="SignalGrid connector normalizer",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()

# Diagnostics shown before the table is truncated
_MAX_DIAGNOSTIC_ROWS = 25


@app.callback()
def _root(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (defaults to configured level)"
    ),
):
    """
    SignalGrid connector normalizer
    """
    level = getattr(logging, (log_level or get_config().log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("signalgrid").setLevel(level)


def _load_document(path: Path) -> Any:
    """Load a JSON or YAML document, exiting with code 1 on failure."""
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix == ".json":
                return json.load(f)
            if path.suffix in (".yaml", ".yml"):
                return yaml.safe_load(f)
    except (ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Cannot parse {path}: {e}[/red]")
        raise typer.Exit(1)
    console.print(f"[red]Unsupported file format: {path.suffix}[/red]")
    console.print("[yellow]Use .json, .yaml or .yml files[/yellow]")
    raise typer.Exit(1)


def _load_records(path: Path) -> list:
    data = _load_document(path)
    if isinstance(data, dict) and isinstance(data.get("records"), list):
        return data["records"]
    if isinstance(data, list):
        return data
    console.print("[red]Records file must hold a list or an object with 'records'[/red]")
    raise typer.Exit(1)


@app.command()
def version():
    """Show the normalizer version"""
    console.print(f"[bold green]sg-normalize v{__version__}[/bold green]")


@app.command()
def infer(
    records_file: Path = typer.Argument(..., help="Raw records (JSON or YAML)"),
    sample_size: Optional[int] = typer.Option(
        None, "--sample-size", "-n", help="Records to sample"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the schema as JSON"),
):
    """
    Propose a schema, timestamp field and value field for raw records

    Examples:
        sg-normalize infer samples.json
        sg-normalize infer samples.yaml --sample-size 500 --json
    """
    records = _load_records(records_file)
    schema = ConnectorNormalizerService().infer_schema(records, sample_size=sample_size)

    if as_json:
        typer.echo(schema.model_dump_json(indent=2))
        return

    table = Table(title=f"Inferred schema ({schema.records_sampled} records)", box=box.ROUNDED)
    table.add_column("Field", style="cyan")
    table.add_column("Type")
    table.add_column("Nullable")
    table.add_column("Non-null", justify="right")
    table.add_column("Samples")
    for field in schema.fields:
        samples = ", ".join(str(v) for v in field.sample_values[:3])
        table.add_row(
            field.name,
            field.type.value,
            "yes" if field.nullable else "no",
            str(field.non_null_count),
            samples,
        )
    console.print(table)
    console.print(f"Timestamp field: [green]{schema.suggested_timestamp_field or '-'}[/green]")
    console.print(f"Value field:     [green]{schema.suggested_value_field or '-'}[/green]")
    resolution = schema.inferred_resolution.value if schema.inferred_resolution else "-"
    console.print(f"Resolution:      [green]{resolution}[/green]")


@app.command("validate-rule")
def validate_rule(
    rule_file: Path = typer.Argument(..., help="Mapping rule (YAML or JSON)"),
):
    """
    Validate a mapping rule file
    """
    result = validate_mapping_rule(_load_document(rule_file))
    if not result.success:
        console.print(f"[red]Invalid mapping rule: {rule_file}[/red]")
        for error in result.errors:
            console.print(f"  - {error}")
        raise typer.Exit(1)
    rule = result.rule
    console.print(
        f"[green]✓[/green] Rule '{rule.id}' v{rule.version} is valid "
        f"({rule.source_type}, {len(rule.filters)} filters)"
    )


@app.command()
def normalize(
    records_file: Path = typer.Argument(..., help="Raw records (JSON or YAML)"),
    rule_file: Path = typer.Argument(..., help="Mapping rule (YAML or JSON)"),
    connector_id: str = typer.Option(
        ..., "--connector-id", "-c", help="Connector that fetched the records"
    ),
    tenant_id: str = typer.Option("default", "--tenant-id", "-t", help="Owning tenant"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the full result as JSON"
    ),
):
    """
    Normalize raw records into canonical points

    Examples:
        sg-normalize normalize records.json rule.yaml --connector-id prom-01
        sg-normalize normalize records.json rule.yaml -c prom-01 -o result.json
    """
    records = _load_records(records_file)
    service = ConnectorNormalizerService()
    try:
        rule = service.register_rule(_load_document(rule_file))
    except InvalidMappingRuleError as e:
        console.print(f"[red]{e.message}[/red]")
        for error in e.errors:
            console.print(f"  - {error}")
        raise typer.Exit(1)

    context = create_normalization_context(connector_id, tenant_id)
    result = service.normalize(records, rule.id, context)
    stats = result.stats

    summary = Table(title=f"Normalization: {rule.id} v{rule.version}", box=box.ROUNDED)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value", justify="right")
    summary.add_row("Input records", str(stats.input_records))
    summary.add_row("Output points", str(stats.output_points))
    summary.add_row("Skipped", str(stats.skipped_records))
    summary.add_row("Filtered", str(stats.filtered_records))
    summary.add_row("Duplicates", str(stats.duplicate_records))
    summary.add_row("Errors", str(stats.error_count))
    summary.add_row("Warnings", str(stats.warning_count))
    summary.add_row("Output hash", result.output_hash)
    console.print(summary)

    if result.diagnostics:
        diag_table = Table(title="Diagnostics", box=box.SIMPLE)
        diag_table.add_column("Path")
        diag_table.add_column("Code")
        diag_table.add_column("Severity")
        diag_table.add_column("Message")
        for diagnostic in result.diagnostics[:_MAX_DIAGNOSTIC_ROWS]:
            diag_table.add_row(
                diagnostic.field_path,
                diagnostic.code.value,
                diagnostic.severity.value,
                diagnostic.message,
            )
        console.print(diag_table)
        if len(result.diagnostics) > _MAX_DIAGNOSTIC_ROWS:
            console.print(
                f"[yellow]... {len(result.diagnostics) - _MAX_DIAGNOSTIC_ROWS} more[/yellow]"
            )

    if output:
        output.write_text(result.model_dump_json(indent=2), encoding="utf-8")
        console.print(f"[green]✓[/green] Result written to {output}")

    if not result.success:
        console.print("[red]Normalization finished with errors[/red]")
        raise typer.Exit(1)
    console.print("[green]✓[/green] Normalization succeeded")


def main():
    """Main entry point for the sg-normalize command"""
    app()


if __name__ == "__main__":
    main()
