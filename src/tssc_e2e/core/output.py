# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Output formatting for tssc-e2e CLI commands."""

import json
import sys
from typing import Any, Dict, List, Optional, Tuple

import yaml
from rich.console import Console
from rich.table import Table

console = Console()

OUTPUT_FORMATS = ("table", "json", "json-pretty", "yaml")

VERDICT_PASS = "[green]✓ PASS[/green]"
VERDICT_FAIL = "[red]✗ FAIL[/red]"


def format_and_output(
    data: List[Dict[str, Any]],
    output_format: str = "table",
    table_config: Optional[Dict[str, Any]] = None
) -> None:
    """Format and output data.

    Args:
        data: Data to output
        output_format: Format to use (table, json, json-pretty, yaml)
        table_config: Configuration for table output (columns, title)
    """
    if output_format == "json":
        print(json.dumps(data, separators=(',', ':')), file=sys.stdout)
    elif output_format == "json-pretty":
        print(json.dumps(data, indent=2), file=sys.stdout)
    elif output_format == "yaml":
        console.print(yaml.dump(data, default_flow_style=False))
    elif output_format == "table":
        _output_table(data, table_config or {})
    else:
        raise ValueError(f"Unsupported output format: {output_format}")


def print_verdict(name: str, passed: bool, detail: str = "") -> None:
    """Print a single pass/fail line for a verification."""
    verdict = VERDICT_PASS if passed else VERDICT_FAIL
    suffix = f" ({detail})" if detail else ""
    console.print(f"{verdict} {name}{suffix}")


def _column_specs(columns: List[Any]) -> List[Tuple[str, str, str]]:
    """(header, field, style) for plain names or {name, field, style} mappings."""
    specs = []
    for col in columns:
        if isinstance(col, dict):
            header = col.get("name", "")
            specs.append((header, col.get("field", header), col.get("style", "")))
        else:
            specs.append((str(col).replace("_", " ").title(), str(col), ""))
    return specs


def _output_table(data: List[Dict[str, Any]], config: Dict[str, Any]) -> None:
    specs = _column_specs(config.get("columns") or _auto_detect_columns(data))
    if not data and not specs:
        console.print("[yellow]No data to display[/yellow]")
        return

    table = Table(title=config.get("title", ""))
    for header, _, style in specs:
        table.add_column(header, style=style)
    for item in data:
        table.add_row(*(_format_field_value(item.get(field)) for _, field, _ in specs))

    console.print(table)


def _auto_detect_columns(data: List[Dict[str, Any]]) -> List[str]:
    """Columns in first-seen key order across all items."""
    columns: List[str] = []
    for item in data:
        for key in item:
            if key not in columns:
                columns.append(key)
    return columns


def _format_field_value(value: Any) -> str:
    """Format a field value for display."""
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) if value else "None"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)
