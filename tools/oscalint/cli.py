#!/usr/bin/env python3
"""
oscalint CLI - rule-based validation and conversion for OSCAL documents

Validates OSCAL JSON, YAML and XML documents against built-in and custom
rules, converts between JSON and YAML, and reports results per file.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .batch import BatchOperationRequest, BatchOperationType, BatchRunner, FileContent
from .errors import InvalidRuleDefinition
from .formats import ModelType, OscalFormat
from .rules import RuleRegistry, load_custom_rules
from .validation import ValidationReporter, ValidationRun

DEFAULT_WORKERS = 4
DEFAULT_SUMMARY_FILE = "oscalint-summary.json"
MODEL_TYPE_CHOICES = [model_type.value for model_type in ModelType]
FORMAT_CHOICES = [fmt.value for fmt in OscalFormat]

# Set up console and logging
console = Console()
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(console=console, show_time=False, show_path=False)]
)
logger = logging.getLogger("oscalint")


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def cli(ctx, verbose: bool, quiet: bool):
    """oscalint - rule-based validator for OSCAL documents"""
    ctx.ensure_object(dict)

    if quiet:
        logging.getLogger().setLevel(logging.WARNING)
    elif verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


def _build_validation_run(rules_file: Optional[Path]) -> ValidationRun:
    validation_run = ValidationRun.default()
    if rules_file:
        for request in load_custom_rules(rules_file):
            validation_run.registry.register_custom(request)
    return validation_run


def _read_files(inputs: List[Path]) -> List[FileContent]:
    files = []
    for input_path in inputs:
        fmt = OscalFormat.from_path(input_path)
        if fmt is None:
            logger.warning(f"Unsupported file type: {input_path}")
            continue
        # Decoded per file inside the batch
        files.append(FileContent(filename=str(input_path), content=input_path.read_bytes(), format=fmt))
    return files


def _run_with_progress(runner: BatchRunner, request: BatchOperationRequest,
                       validation_run: Optional[ValidationRun], quiet: bool):
    if quiet:
        return runner.submit(request, validation_run)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        console=console
    ) as progress:
        task = progress.add_task(f"Running {request.operation_type.value}...", total=len(request.files))
        runner.progress_callback = lambda completed, total: progress.update(task, completed=completed)
        return runner.submit(request, validation_run)


@cli.command()
@click.argument('inputs', nargs=-1, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--model-type', '-m', type=click.Choice(MODEL_TYPE_CHOICES),
              help='OSCAL model type (detected from the document root when omitted)')
@click.option('--rules-file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='JSON or YAML file with custom rule definitions')
@click.option('--workers', '-w', type=int, default=DEFAULT_WORKERS, show_default=True,
              help='Parallel workers (1 processes files sequentially)')
@click.option('--json', 'as_json', is_flag=True, help='Print the batch result as JSON')
@click.option('--output', '-o', type=click.Path(path_type=Path),
              help=f'Write a JSON validation summary (e.g. {DEFAULT_SUMMARY_FILE})')
@click.pass_context
def validate(ctx, inputs: List[Path], model_type: Optional[str], rules_file: Optional[Path],
             workers: int, as_json: bool, output: Optional[Path]):
    """Validate OSCAL documents against built-in and custom rules"""
    if not inputs:
        logger.error("No input files specified")
        sys.exit(1)

    try:
        validation_run = _build_validation_run(rules_file)
    except InvalidRuleDefinition as e:
        logger.error(f"Failed to load custom rules: {e}")
        sys.exit(1)

    files = _read_files(inputs)
    request = BatchOperationRequest(
        operation_type=BatchOperationType.VALIDATE,
        files=files,
        model_type=model_type,
    )
    runner = BatchRunner(max_workers=workers)
    batch = _run_with_progress(runner, request, validation_run, ctx.obj['quiet'] or as_json)

    reporter = ValidationReporter(console)
    if as_json:
        console.print_json(data=batch.to_dict())
    else:
        for file_result in batch.results:
            if file_result.result is not None:
                reporter.display_result(file_result.result, title=file_result.filename)
        if len(batch.results) > 1 or not batch.success:
            reporter.display_batch(batch)

    if output:
        results = {
            file_result.filename: file_result.result
            for file_result in batch.results
            if file_result.result is not None
        }
        reporter.write_summary(reporter.summarize(results), output)

    if not batch.success:
        logger.error(f"{batch.failure_count} of {batch.total_files} files failed validation")
        sys.exit(1)

    logger.info(f"All {batch.total_files} files passed validation")


@cli.command()
@click.argument('inputs', nargs=-1, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--to', 'to_format', type=click.Choice(FORMAT_CHOICES), required=True,
              help='Target format')
@click.option('--output-dir', '-o', type=click.Path(path_type=Path),
              default=Path('dist/converted'), show_default=True,
              help='Directory for converted documents')
@click.option('--workers', '-w', type=int, default=DEFAULT_WORKERS, show_default=True,
              help='Parallel workers (1 processes files sequentially)')
@click.pass_context
def convert(ctx, inputs: List[Path], to_format: str, output_dir: Path, workers: int):
    """Convert OSCAL documents between JSON and YAML"""
    if not inputs:
        logger.error("No input files specified")
        sys.exit(1)

    request = BatchOperationRequest(
        operation_type=BatchOperationType.CONVERT,
        files=_read_files(inputs),
        to_format=to_format,
    )
    runner = BatchRunner(max_workers=workers)
    batch = _run_with_progress(runner, request, None, ctx.obj['quiet'])

    output_dir.mkdir(parents=True, exist_ok=True)
    for file_result in batch.results:
        if not file_result.success:
            continue
        target = output_dir / (Path(file_result.filename).stem + request.to_format.extension)
        with open(target, 'w', encoding='utf-8') as f:
            f.write(file_result.result.content)
        logger.info(f"Wrote {target}")

    ValidationReporter(console).display_batch(batch)

    if not batch.success:
        sys.exit(1)


@cli.command()
@click.option('--model-type', '-m', type=click.Choice(MODEL_TYPE_CHOICES),
              help='Only list rules applicable to this model type')
@click.option('--category', '-c', help='Only list rules in this category')
@click.option('--rules-file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='JSON or YAML file with custom rule definitions')
@click.option('--json', 'as_json', is_flag=True, help='Print rules and statistics as JSON')
def rules(model_type: Optional[str], category: Optional[str], rules_file: Optional[Path], as_json: bool):
    """List validation rules and statistics"""
    registry = RuleRegistry.with_builtin_rules()
    if rules_file:
        try:
            for request in load_custom_rules(rules_file):
                registry.register_custom(request)
        except InvalidRuleDefinition as e:
            logger.error(f"Failed to load custom rules: {e}")
            sys.exit(1)

    response = registry.response_for(model_type) if model_type else registry.response()
    if category:
        response.rules = [rule for rule in response.rules if rule.category == category]
        response.categories = [c for c in response.categories if c.id == category]
        response.calculate_stats()

    if as_json:
        console.print_json(data=response.to_dict())
        return

    table = Table(title="Validation Rules", show_header=True, header_style="bold")
    table.add_column("ID")
    table.add_column("Type")
    table.add_column("Severity")
    table.add_column("Category")
    table.add_column("Models")
    table.add_column("Enabled")
    for rule in response.rules:
        models = ", ".join(m.value for m in rule.applicable_model_types) or "all"
        table.add_row(
            rule.id,
            rule.rule_type.value,
            rule.severity.value,
            rule.category or "",
            models,
            "yes" if registry.is_enabled(rule.id) else "no",
        )
    console.print(table)
    console.print(
        f"Total: {response.total_rules}  Built-in: {response.built_in_rules}  "
        f"Custom: {response.custom_rules}"
    )


@cli.command()
def doctor():
    """Diagnostic tool for oscalint installation"""
    _check_python_deps()


def _check_python_deps():
    """Check Python dependencies"""
    required = ['click', 'rich', 'jsonschema', 'yaml', 'jsonpath_ng', 'lxml']
    missing = []

    for pkg in required:
        try:
            __import__(pkg)
        except ImportError:
            missing.append(pkg)

    if missing:
        logger.error(f"Missing Python dependencies: {', '.join(missing)}")
        logger.info("Run: pip install oscalint")
        sys.exit(1)
    else:
        logger.info("All Python dependencies satisfied")


if __name__ == '__main__':
    cli()
