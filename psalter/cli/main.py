"""Psalter command line.

Inspection tools for a Psalm workspace, run without an editor:

  psalter probe ROOT     runtime check and capability table
  psalter argv ROOT      the language server command line, as JSON
  psalter actions FILE   code actions for one line, as JSON, or the
                         file with the suppression applied (--apply)
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click
from lsprotocol import converters
from lsprotocol.types import Diagnostic, Position, Range

from psalter import __version__
from psalter.config import Settings, load_settings
from psalter.lsp.actions import SourceMatcher, synthesize
from psalter.lsp.document import TextDocument, apply_text_edits
from psalter.lsp.invocation import build_invocation
from psalter.lsp.runtime import check_runtime
from psalter.services.extension import discover_capabilities, require_script
from psalter.types import PsalterError
from psalter.utils.logger import configure_logging, logger

_converter = converters.get_converter()

settings_option = click.option(
    "--settings",
    "settings_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON settings file with a 'psalm' section.",
)


def _load(settings_file: Path | None) -> Settings:
    try:
        return load_settings(settings_file)
    except PsalterError as e:
        raise click.ClickException(e.user_message) from e


@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="Psalter", message="%(prog)s v%(version)s")
@click.option("--debug", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """Psalter - Psalm language server integration."""
    configure_logging(debug=debug, level="WARNING")
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@settings_option
def probe(root: Path, settings_file: Path | None) -> None:
    """Check the PHP runtime and list the analyzer's optional flags."""
    settings = _load(settings_file)

    async def run() -> None:
        script = require_script(settings, root)
        version = await check_runtime(settings.php_executable_path)
        click.echo(f"PHP {version} ({settings.php_executable_path})")
        click.echo(f"Script: {script}")
        capabilities = await discover_capabilities(settings, script)
        for flag, supported in capabilities.flags.items():
            click.echo(f"  {flag}: {'supported' if supported else 'unsupported'}")

    try:
        asyncio.run(run())
    except PsalterError as e:
        raise click.ClickException(e.user_message) from e


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@settings_option
def argv(root: Path, settings_file: Path | None) -> None:
    """Print the language server command line as a JSON array."""
    settings = _load(settings_file)
    root = root.resolve()

    async def run() -> list[str]:
        script = require_script(settings, root)
        await check_runtime(settings.php_executable_path)
        config_file = settings.find_config_file(root)
        if config_file is None:
            raise click.ClickException(
                f"No Psalm config file found in {root} "
                f"(looked for: {', '.join(settings.config_paths)})"
            )
        capabilities = await discover_capabilities(settings, script)
        invocation = build_invocation(
            settings, capabilities, root=root, script_path=script, config_file=config_file
        )
        return invocation.argv()

    try:
        command = asyncio.run(run())
    except PsalterError as e:
        raise click.ClickException(e.user_message) from e
    click.echo(json.dumps(command))


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--line", "line", type=click.IntRange(min=0), required=True, help="Zero-based line number."
)
@click.option(
    "--diagnostics",
    "diagnostics_json",
    required=True,
    help="JSON array of LSP diagnostics reported for the file.",
)
@click.option(
    "--apply",
    "apply_fix",
    is_flag=True,
    help="Print FILE with the suppression comment inserted instead of the actions.",
)
@settings_option
def actions(
    file: Path,
    line: int,
    diagnostics_json: str,
    apply_fix: bool,
    settings_file: Path | None,
) -> None:
    """Print the code actions offered for LINE of FILE as JSON."""
    settings = _load(settings_file)
    try:
        raw = json.loads(diagnostics_json)
        diagnostics = _converter.structure(raw, list[Diagnostic])
    except Exception as e:
        raise click.BadParameter(
            f"not a JSON array of diagnostics: {e}", param_hint="--diagnostics"
        ) from e

    document = TextDocument.from_path(file)
    whole_line = Range(
        start=Position(line=line, character=0),
        end=Position(line=line + 1, character=0),
    )
    result = synthesize(
        document,
        whole_line,
        diagnostics,
        source_matcher=SourceMatcher.from_settings(settings),
    )
    logger.debug(f"{len(result)} code action(s) for {file}:{line}")

    if apply_fix:
        fixes = [action for action in result if action.edit is not None]
        if not fixes:
            raise click.ClickException(f"No suppression offered for line {line} of {file}")
        edits = (fixes[0].edit.changes or {}).get(document.uri, [])
        click.echo(apply_text_edits(document.text, edits), nl=False)
        return

    click.echo(json.dumps(_converter.unstructure(result), indent=2))


def main() -> None:
    """Entry point for the psalter command."""
    cli()


if __name__ == "__main__":
    main()
