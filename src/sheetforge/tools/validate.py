from __future__ import annotations
from pathlib import Path
import json
import logging
from typing import List, Optional

import typer
import yaml

from sheetforge.engine.loader import load_raw
from sheetforge.engine.settings import load_settings
from sheetforge.engine.validation import validate_system

logger = logging.getLogger(__name__)

app = typer.Typer(add_completion=False)

def _iter(paths: List[Path], exts=(".json", ".yaml", ".yml")):
    for p in paths:
        if p.is_dir():
            for fp in sorted(p.rglob("*")):
                if fp.is_file() and fp.suffix.lower() in exts:
                    yield fp
        elif p.suffix.lower() in exts:
            yield p

@app.command("export-schemas")
def export_schemas_cmd(
    out: Path = typer.Option(Path("docs/schemas"), "--out"),
    only: Optional[List[str]] = typer.Option(None, "--only", help="Export just these types (repeatable)"),
):
    from sheetforge.tools.export_schemas import export_schemas
    try:
        written = export_schemas(out, only)
    except ValueError as e:
        typer.echo(f"[ERROR] {e}", err=True)
        raise typer.Exit(code=1)
    for path in written:
        typer.echo(f"  {path.name}")
    typer.echo(f"Exported {len(written)} schema(s) to {out}")

@app.command("validate-system")
def validate_system_cmd(
    paths: List[Path] = typer.Argument(..., help="Schema documents (or folders of them)"),
    strict: Optional[bool] = typer.Option(None, "--strict/--no-strict",
                                help="Also check dices, replacements, section links and formula syntax"),
):
    if strict is None:
        strict = load_settings().strict_validation
    ok = True
    checked = 0
    for fp in _iter(paths):
        checked += 1
        try:
            data = load_raw(fp)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            ok = False
            typer.echo(f"[ERROR] {fp}: {e}", err=True)
            continue
        issues = validate_system(data, strict=strict)
        logger.info("%s: %d issue(s)", fp, len(issues))
        for issue in issues:
            ok = False
            typer.echo(f"[ERROR] {fp}: {issue}", err=True)

    if not ok:
        raise typer.Exit(code=1)
    typer.echo(f"{checked} schema file(s) validated successfully.")

if __name__ == "__main__":
    app()
