"""
tokensmith command line interface.

    tokensmith resolve NAME            Resolve an external name or a {reference}
    tokensmith export-css              Write CSS custom properties
    tokensmith contrast FG BG          Contrast ratio and AA result
    tokensmith audit                   Contrast compliance report
    tokensmith override set|clear|list|reset
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from tokensmith import __version__
from tokensmith.core.compliance import audit_compliance
from tokensmith.core.config import TokensmithConfig, load_config, load_config_or_default
from tokensmith.core.contrast import check_contrast, pick_text_color
from tokensmith.core.css_export import generate_css
from tokensmith.core.engine import ThemeEngine, engine_from_config
from tokensmith.core.errors import CoercionError, TokensmithError
from tokensmith.core.ir import ColorMode, LiteralScalar, ValueSource
from tokensmith.core.reference_parser import is_reference_string, parse_reference

app = typer.Typer(
    help="Resolve, export and audit design tokens",
    no_args_is_help=True,
)
override_app = typer.Typer(
    help="Manage persisted value overrides",
    no_args_is_help=True,
)
app.add_typer(override_app, name="override")

console = Console()

_INT = re.compile(r"^-?\d+$")
_FLOAT = re.compile(r"^-?(\d+\.\d*|\.\d+)$")


@dataclass
class CliState:
    """Options shared by every command, set by the app callback."""

    config_path: Path | None = None
    tokens: Path | None = None
    theme: Path | None = None
    components: Path | None = None
    overrides: Path | None = None
    mode: ColorMode | None = None


_state = CliState()


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tokensmith {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to tokensmith.toml")
    ] = None,
    tokens: Annotated[Path | None, typer.Option("--tokens", help="Tokens document")] = None,
    theme: Annotated[Path | None, typer.Option("--theme", help="Theme document")] = None,
    components: Annotated[
        Path | None, typer.Option("--components", help="Component styles document")
    ] = None,
    overrides: Annotated[
        Path | None, typer.Option("--overrides", help="Override file (default from config)")
    ] = None,
    mode: Annotated[ColorMode | None, typer.Option("--mode", "-m", help="Color mode")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging")] = False,
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version"),
    ] = None,
) -> None:
    """Resolve, export and audit design tokens."""
    global _state
    _state = CliState(
        config_path=config,
        tokens=tokens,
        theme=theme,
        components=components,
        overrides=overrides,
        mode=mode,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Helpers
# =============================================================================


def _load_config() -> TokensmithConfig:
    if _state.config_path is not None:
        config = load_config(_state.config_path)
    else:
        config = load_config_or_default()
    if _state.overrides is not None:
        config.overrides.path = _state.overrides
    return config


def _load_engine() -> ThemeEngine:
    """Build an engine from CLI options and config, exiting with code 1 on errors."""
    try:
        config = _load_config()
        return engine_from_config(
            config,
            tokens=_state.tokens,
            theme=_state.theme,
            components=_state.components,
            mode=_state.mode,
        )
    except TokensmithError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e


def _coerce_cli_value(text: str) -> LiteralScalar:
    """Read ``12`` as int, ``0.5`` as float, anything else as a string."""
    stripped = text.strip()
    if _INT.match(stripped):
        return int(stripped)
    if _FLOAT.match(stripped):
        return float(stripped)
    return text


def _external_name(text: str) -> str:
    """Accept names with or without the leading ``--`` (which the shell would read as an option)."""
    return text if text.startswith("--") else f"--{text}"


def _format_value(value: LiteralScalar) -> str:
    return json.dumps(value) if isinstance(value, str) else str(value)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def resolve(
    name: Annotated[str, typer.Argument(help="External name (ts-... or --ts-...) or {reference}")],
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Resolve one external name or reference to its value."""
    engine = _load_engine()

    if is_reference_string(name):
        try:
            value = engine.resolve(parse_reference(name))
        except TokensmithError as e:
            console.print(f"[red]Cannot resolve {name}:[/red] {e.message}")
            raise typer.Exit(code=1) from e
        if output_json:
            typer.echo(json.dumps({"reference": name, "value": value}))
        else:
            typer.echo(f"{name}: {_format_value(value)}")
        return

    name = _external_name(name)
    resolved = engine.resolve_external(name)
    if output_json:
        typer.echo(json.dumps(resolved.model_dump(mode="json")))
    else:
        typer.echo(f"{name}: {_format_value(resolved.value)} ({resolved.source.value})")
        if not resolved.verified:
            console.print(f"[yellow]Unverified:[/yellow] {resolved.error}")
    if resolved.source == ValueSource.FALLBACK:
        if not output_json:
            console.print(f"[yellow]Fallback:[/yellow] {resolved.error}")
        raise typer.Exit(code=1)


@app.command(name="export-css")
def export_css(
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write to this file instead of stdout")
    ] = None,
    indirection: Annotated[
        bool, typer.Option("--indirection", help="Emit var(--target, value) for aliases")
    ] = False,
    export_names: Annotated[
        bool, typer.Option("--export-names", help="Write underscore export names")
    ] = False,
    modes: Annotated[
        list[ColorMode] | None, typer.Option("--only-mode", help="Limit to these modes")
    ] = None,
) -> None:
    """Export resolved values as CSS custom properties."""
    engine = _load_engine()
    css = generate_css(
        engine, modes=modes or None, indirection=indirection, export_names=export_names
    )

    if output is None:
        typer.echo(css)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(css, encoding="utf-8")
    console.print(f"[green]Wrote {output}[/green]")
    for message in engine.diagnostics:
        console.print(f"[yellow]Warning:[/yellow] {message}")


@app.command()
def contrast(
    foreground: Annotated[str, typer.Argument(help="Foreground hex color")],
    background: Annotated[str, typer.Argument(help="Background hex color")],
    threshold: Annotated[float, typer.Option("--threshold", "-t", help="Minimum ratio")] = 4.5,
) -> None:
    """Contrast ratio between two colors; exit code 1 below the threshold."""
    try:
        check = check_contrast(foreground, background, threshold)
        suggestion = pick_text_color(background, threshold)
    except CoercionError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1) from e

    status = "PASS" if check.passes else "FAIL"
    typer.echo(f"{check.ratio:.2f}:1 {status} (threshold {threshold:g}:1)")
    if not check.passes:
        typer.echo(f"Suggested text color on {background}: {suggestion}")
        raise typer.Exit(code=1)


@app.command()
def audit(
    threshold: Annotated[
        float | None, typer.Option("--threshold", "-t", help="Minimum ratio (default from config)")
    ] = None,
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Check background/text pairs in every mode; exit code 1 on issues."""
    engine = _load_engine()
    modes = [_state.mode] if _state.mode else None
    report = audit_compliance(engine, threshold=threshold, modes=modes)

    if output_json:
        typer.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    elif report.passed:
        console.print(f"[green]All {report.checked} pair(s) meet the threshold.[/green]")
    else:
        table = Table(title="Contrast issues")
        table.add_column("Mode")
        table.add_column("Background")
        table.add_column("Foreground")
        table.add_column("Ratio", justify="right")
        table.add_column("Suggest")
        for issue in report.issues:
            table.add_row(
                issue.mode.value,
                f"{issue.background_name}\n{issue.background}",
                f"{issue.foreground_name}\n{issue.foreground}",
                f"{issue.ratio:.2f}",
                issue.suggested_step or issue.suggested_text_color,
            )
        console.print(table)
        console.print(f"\n[red]{len(report.issues)} issue(s)[/red] in {report.checked} pair(s)")

    if not report.passed:
        raise typer.Exit(code=1)


# =============================================================================
# Override Commands
# =============================================================================


@override_app.command(name="set")
def override_set(
    name: Annotated[str, typer.Argument(help="External name to override")],
    value: Annotated[str, typer.Argument(help="Literal value (numbers are read as numbers)")],
) -> None:
    """Set and persist an override."""
    engine = _load_engine()
    name = _external_name(name)
    if engine.path_for(name) is None:
        console.print(f"[yellow]Warning:[/yellow] {name} is not defined by the current spec")
    engine.set_override(name, _coerce_cli_value(value))
    resolved = engine.resolve_external(name)
    typer.echo(f"{name}: {_format_value(resolved.value)} ({resolved.source.value})")
    dependents = engine.dependents_of(name)
    if dependents:
        typer.echo(f"Affects {len(dependents)} dependent name(s)")


@override_app.command(name="clear")
def override_clear(
    name: Annotated[str, typer.Argument(help="External name")],
) -> None:
    """Remove one override."""
    engine = _load_engine()
    name = _external_name(name)
    if not engine.clear_override(name):
        console.print(f"[yellow]No override set for {name}[/yellow]")
        raise typer.Exit(code=1)
    typer.echo(f"Cleared {name}")


@override_app.command(name="list")
def override_list(
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List persisted overrides."""
    engine = _load_engine()
    overrides = engine.overrides.snapshot()
    orphans = set(engine.orphaned_overrides())

    if output_json:
        typer.echo(
            json.dumps({"overrides": overrides, "orphaned": sorted(orphans)}, indent=2)
        )
        return

    if not overrides:
        console.print("[dim]No overrides set.[/dim]")
        return

    for name, value in sorted(overrides.items()):
        marker = "  (orphaned)" if name in orphans else ""
        typer.echo(f"{name} = {_format_value(value)}{marker}")


@override_app.command(name="reset")
def override_reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation")] = False,
) -> None:
    """Remove every override."""
    engine = _load_engine()
    count = len(engine.overrides)
    if not yes and count and not typer.confirm(f"Remove {count} override(s)?"):
        raise typer.Exit(code=1)
    engine.clear_all()
    typer.echo(f"Removed {count} override(s)")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
