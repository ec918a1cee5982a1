"""
Validation reporter

Renders validation and batch results as rich tables and writes JSON summaries.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .diagnostics import ValidationResult, utc_timestamp

logger = logging.getLogger(__name__)

SEVERITY_STYLES = {
    "error": "red",
    "warning": "yellow",
    "info": "cyan",
}


class ValidationReporter:
    """Reporter for oscalint validation results"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.timestamp = utc_timestamp()

    def display_result(self, result: ValidationResult, title: Optional[str] = None) -> None:
        """Print one document's diagnostics"""
        status = "[green]VALID[/green]" if result.valid else "[red]INVALID[/red]"
        model = result.model_type.value if result.model_type else "unknown"
        fmt = result.format.value if result.format else "unknown"
        self.console.print(Panel(
            f"Status: {status}\nModel type: {model}\nFormat: {fmt}\n"
            f"Errors: {len(result.errors)}  Warnings: {len(result.warnings)}",
            title=title or "Validation Result",
        ))

        diagnostics = result.errors + result.warnings
        if not diagnostics:
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("Severity")
        table.add_column("Rule")
        table.add_column("Path")
        table.add_column("Location")
        table.add_column("Message")
        for diagnostic in diagnostics:
            severity = diagnostic.severity.value
            style = SEVERITY_STYLES.get(severity, "white")
            location = ""
            if diagnostic.line is not None:
                location = f"{diagnostic.line}:{diagnostic.column}" if diagnostic.column else str(diagnostic.line)
            table.add_row(
                f"[{style}]{severity.upper()}[/{style}]",
                diagnostic.rule_id or "",
                diagnostic.path or "",
                location,
                diagnostic.message,
            )
        self.console.print(table)

    def display_batch(self, batch) -> None:
        """Print a per-file overview of a batch operation result"""
        table = Table(title=f"Batch {batch.operation_id}", show_header=True, header_style="bold")
        table.add_column("File")
        table.add_column("Status")
        table.add_column("Duration (ms)", justify="right")
        table.add_column("Error")

        for file_result in batch.results:
            status = "[green]OK[/green]" if file_result.success else "[red]FAILED[/red]"
            table.add_row(
                file_result.filename or "<unnamed>",
                status,
                str(file_result.duration_ms),
                file_result.error or "",
            )
        self.console.print(table)

        style = "green" if batch.success else "red"
        self.console.print(Panel(
            f"Files: {batch.total_files}  Succeeded: {batch.success_count}  "
            f"Failed: {batch.failure_count}  Total time: {batch.total_duration_ms} ms",
            title="Batch Summary",
            border_style=style,
        ))

    def summarize(self, results: Dict[str, ValidationResult]) -> Dict[str, Any]:
        """Summary of validation results keyed by file name"""
        summary = {
            "summary": {
                "timestamp": self.timestamp,
                "total_files": len(results),
                "valid_files": 0,
                "invalid_files": 0,
                "files_with_warnings": 0,
                "total_errors": 0,
                "total_warnings": 0,
            },
            "results": [],
            "must_fix": [],
        }

        for name, result in results.items():
            counters = summary["summary"]
            if result.valid:
                counters["valid_files"] += 1
            else:
                counters["invalid_files"] += 1
            if result.warnings:
                counters["files_with_warnings"] += 1
            counters["total_errors"] += len(result.errors)
            counters["total_warnings"] += len(result.warnings)

            entry = result.to_dict()
            entry["file"] = name
            summary["results"].append(entry)
            summary["must_fix"].extend(self._must_fix(name, result))

        return summary

    def _must_fix(self, name: str, result: ValidationResult) -> List[Dict[str, Any]]:
        return [
            {
                "file": name,
                "rule": diagnostic.rule_id,
                "path": diagnostic.path,
                "line": diagnostic.line,
                "description": diagnostic.message,
            }
            for diagnostic in result.errors
        ]

    def write_summary(self, summary: Dict[str, Any], output: Path) -> Path:
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            json.dump(summary, f, indent=2)
        logger.info(f"Validation summary written to: {output}")
        return output
