"""Command line entry point: ``textnorm detect|fix|check``."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from .errors import NormalizationError
from .files import iter_text_files, normalize_file, normalize_tree
from .logging_setup import setup_logging
from .models import FileResult
from .normalize import detect_encoding, is_utf8
from .settings import get_settings

app = typer.Typer(help="Detect text encodings and rewrite files as UTF-8.")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")):
    setup_logging("DEBUG" if verbose else None)


def _require(paths: List[Path]) -> None:
    for path in paths:
        if not path.exists():
            typer.echo(f"Path not found: {path}", err=True)
            raise typer.Exit(code=2)


def _expand(paths: List[Path]) -> List[Path]:
    settings = get_settings()
    files: List[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(iter_text_files(path, settings.extensions, settings.excluded_dirs))
        else:
            files.append(path)
    return files


def _failed(path, error) -> None:
    typer.echo(f"FAILED  {path}: {error}", err=True)


@app.command("detect")
def detect(paths: List[Path] = typer.Argument(..., help="Files or directories to inspect.")):
    """Print the detected encoding of each file."""
    _require(paths)
    failed = 0
    for path in _expand(paths):
        try:
            detection = detect_encoding(path.read_bytes())
        except (NormalizationError, OSError) as exc:
            failed += 1
            _failed(path, exc)
            continue
        chaos = "-" if detection.chaos is None else f"{detection.chaos:.3f}"
        typer.echo(f"{path}: {detection.encoding} (method={detection.method}, chaos={chaos})")
    if failed:
        raise typer.Exit(code=1)


@app.command("fix")
def fix(
    paths: List[Path] = typer.Argument(..., help="Files or directories to rewrite as UTF-8."),
    source_encoding: Optional[str] = typer.Option(None, "--from", help="Source encoding; skips detection."),
    backup: bool = typer.Option(False, "--backup", help="Keep a copy of each original next to it."),
    newline: Optional[str] = typer.Option(None, "--newline", help="Newline policy: keep, lf or crlf."),
    bom: bool = typer.Option(False, "--bom", help="Write a UTF-8 BOM."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report changes without writing."),
):
    """
    Rewrite files as UTF-8.

    Example:
        textnorm fix notes/ legacy.txt --backup
    """
    _require(paths)
    options = dict(
        source_encoding=source_encoding,
        backup=True if backup else None,
        newline=newline,
        bom=True if bom else None,
        dry_run=dry_run,
    )

    results: List[FileResult] = []
    for path in paths:
        if path.is_dir():
            results.extend(normalize_tree(path, **options))
            continue
        try:
            results.append(normalize_file(path, **options))
        except (NormalizationError, OSError) as exc:
            results.append(FileResult(path=str(path), error=str(exc)))

    failed = 0
    for result in results:
        if result.error:
            failed += 1
            _failed(result.path, result.error)
        elif result.changed:
            enc = result.report.encoding
            verb = "WOULD FIX" if dry_run else "FIXED"
            extra = f", {enc.replacements} replaced" if enc.replacements else ""
            typer.echo(f"{verb}  {result.path} ({enc.decode_used}{extra})")
        else:
            typer.echo(f"OK  {result.path}")

    changed = sum(1 for r in results if r.changed and not r.error)
    typer.echo(f"Done. {changed} changed, {len(results) - changed - failed} unchanged, {failed} failed.")
    if failed:
        raise typer.Exit(code=1)


@app.command("check")
def check(paths: List[Path] = typer.Argument(..., help="Files or directories to verify.")):
    """List files that are not valid UTF-8. Exits 1 when any are found or cannot be read."""
    _require(paths)
    bad: List[Path] = []
    failed = 0
    for path in _expand(paths):
        try:
            raw = path.read_bytes()
        except OSError as exc:
            failed += 1
            _failed(path, exc)
            continue
        if not is_utf8(raw):
            bad.append(path)
            typer.echo(f"NOT UTF-8  {path}")

    if bad:
        typer.echo(f"{len(bad)} file(s) need conversion.")
    if bad or failed:
        raise typer.Exit(code=1)
    typer.echo("All files are valid UTF-8.")


if __name__ == "__main__":
    app()
