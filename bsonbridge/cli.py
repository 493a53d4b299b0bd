"""
Command-line interface for bsonbridge.

    bsonbridge convert data.bson other.json -o out/
    bsonbridge validate data.json

Each file is processed on its own; a failure is reported and the remaining
files still run. The exit code is 1 if any file failed.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .security.exceptions import ConversionError
from .utils.config import ConversionConfig, DuplicateKeyPolicy, JsonMode
from .utils.files import convert_file, validate_file

app = typer.Typer(help="Convert between BSON and Extended JSON files.")
logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _report_failure(path: Path, exc: ConversionError) -> None:
    typer.secho(f"{path}: {exc}", fg=typer.colors.RED, err=True)


@app.command("convert")
def convert(
    files: List[Path] = typer.Argument(..., help=".json or .bson files to convert."),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory for converted files (default: next to each input).",
    ),
    canonical: bool = typer.Option(
        False, "--canonical", help="Emit canonical Extended JSON."
    ),
    indent: int = typer.Option(2, "--indent", min=0, help="JSON indentation width."),
    strict: bool = typer.Option(
        False, "--strict", help="Reject duplicate keys instead of keeping the last."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Convert BSON files to JSON and JSON files to BSON."""
    _configure_logging(verbose)
    config = ConversionConfig(
        json_mode=JsonMode.CANONICAL if canonical else JsonMode.RELAXED,
        indent=indent,
        duplicate_keys=DuplicateKeyPolicy.ERROR if strict else DuplicateKeyPolicy.LAST,
    )

    failures = 0
    for path in files:
        try:
            target = convert_file(path, output_dir, config)
        except ConversionError as exc:
            failures += 1
            _report_failure(path, exc)
            continue
        typer.echo(f"{path} -> {target}")

    if failures:
        logger.debug("%d of %d files failed", failures, len(files))
        raise typer.Exit(code=1)


@app.command("validate")
def validate(
    files: List[Path] = typer.Argument(..., help=".json or .bson files to check."),
    strict: bool = typer.Option(
        False, "--strict", help="Reject duplicate keys instead of keeping the last."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Check files without writing any output."""
    _configure_logging(verbose)
    config = ConversionConfig.strict() if strict else ConversionConfig()

    failures = 0
    for path in files:
        try:
            file_type = validate_file(path, config)
        except ConversionError as exc:
            failures += 1
            _report_failure(path, exc)
            continue
        typer.echo(f"{path}: valid {file_type.name}")

    if failures:
        raise typer.Exit(code=1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
