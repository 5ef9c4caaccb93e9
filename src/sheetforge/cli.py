import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from sheetforge.engine.dependencies import CycleChecker, build_dependency_graph
from sheetforge.engine.editing import default_system
from sheetforge.engine.expr import expr_cache_info
from sheetforge.engine.loader import export_filename, load_system, save_system
from sheetforge.engine.preview import TemplateResolver
from sheetforge.engine.schema_models import CalculatedStat
from sheetforge.engine.settings import Settings, load_settings, save_settings
from sheetforge.tools.legacy_import import run_import

logger = logging.getLogger(__name__)

app = typer.Typer()

@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging to stderr")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

@app.command()
def new(out: Optional[Path] = typer.Argument(None, help="Target file (defaults to rpg-system-<name>.json)")):
    settings = load_settings()
    system = default_system()
    target = out or Path(export_filename(system))
    save_system(system, target, indent=settings.json_indent)
    typer.echo(f"Created starter system: {target}")

@app.command()
def preview(
    path: Path,
    text: str,
    locale: Optional[str] = typer.Option(None, "--locale", help="Locale used for names"),
    language: Optional[str] = typer.Option(None, "--language", help="Diagnostics language (en, pt-BR)"),
    stat: Optional[int] = typer.Option(None, "--stat", help="Also preview the dice roll of this stat"),
    attributes: bool = typer.Option(False, "--attributes", help="Also preview the attribute roll from integrations"),
):
    settings = load_settings()
    try:
        system = load_system(path)
    except ValidationError as e:
        typer.echo(f"[ERROR] {path}: {e}", err=True)
        raise typer.Exit(code=1)
    resolver = TemplateResolver(system, locale=locale or settings.default_locale,
                                language=language or settings.diagnostics_language)
    typer.echo(resolver.render(text))
    if stat is not None:
        target = system.stat_by_id(stat)
        if target is None:
            typer.echo(f"[ERROR] stat {stat} does not exist", err=True)
            raise typer.Exit(code=1)
        for dice in getattr(target, "dices", None) or []:
            cond = resolver.preview_condition(dice)
            if cond is not None:
                verdict = "error" if cond.result is None else str(cond.result).lower()
                typer.echo(f"  if {cond.left} {cond.operator} {cond.right} -> {verdict}: {dice.expression}")
        rolled = resolver.preview_stat_roll(target)
        typer.echo(rolled if rolled is not None else "(no applicable dice)")
    if attributes:
        rolled = resolver.preview_attributes_roll()
        typer.echo(rolled if rolled is not None else "(no attribute roll)")
    logger.debug(expr_cache_info())

@app.command()
def deps(path: Path):
    try:
        system = load_system(path)
    except ValidationError as e:
        typer.echo(f"[ERROR] {path}: {e}", err=True)
        raise typer.Exit(code=1)
    graph = build_dependency_graph(system.stats)
    calculated = {}
    for s in system.stats:
        if isinstance(s, CalculatedStat):
            calculated.setdefault(s.id, s)
    checker = CycleChecker(system.stats)
    broken = False
    for stat_id, dep_ids in graph.items():
        stat = calculated[stat_id]
        typer.echo(f"{stat_id} ({stat.name.default}) <- {', '.join(str(d) for d in dep_ids) or '-'}")
        cycle = checker.find(stat_id, stat.formula)
        if cycle is not None:
            broken = True
            typer.echo(f"  cycle: {' -> '.join(str(c) for c in cycle)}", err=True)
    if broken:
        raise typer.Exit(code=1)

@app.command("import-legacy")
def import_legacy(src: Path, dst: Path):
    settings = load_settings()
    try:
        system = run_import(src, dst, indent=settings.json_indent)
    except Exception as e:
        typer.echo(f"[ERROR] conversion of {src} failed: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Converted {len(system.stats)} stat(s) and {len(system.sections)} section(s) to {dst}")

@app.command()
def config(
    default_locale: Optional[str] = typer.Option(None, "--default-locale"),
    diagnostics_language: Optional[str] = typer.Option(None, "--diagnostics-language"),
    strict_validation: Optional[bool] = typer.Option(None, "--strict-validation/--no-strict-validation"),
    json_indent: Optional[int] = typer.Option(None, "--json-indent"),
):
    settings = load_settings()
    updates = {k: v for k, v in {
        "default_locale": default_locale,
        "diagnostics_language": diagnostics_language,
        "strict_validation": strict_validation,
        "json_indent": json_indent,
    }.items() if v is not None}
    if updates:
        try:
            settings = Settings.model_validate({**settings.model_dump(), **updates})
        except ValidationError as e:
            typer.echo(f"[ERROR] {e}", err=True)
            raise typer.Exit(code=1)
        save_settings(settings)
    for key, value in settings.model_dump().items():
        typer.echo(f"{key} = {value}")


if __name__ == "__main__":
    app()
