"""
fafcore CLI

Command-line interface for scoring and verifying project context files.

Usage::

    faf score                        # Score ./project.faf
    faf score app.faf --type cli     # Score against an explicit type
    faf verify project.faf 3f2a...   # Check a stored checksum
    faf slots nextjs                 # Show the slots a type counts
    faf types                        # List every project type
    faf mcp                          # Start the MCP server
"""

import dataclasses
import logging

import click

from fafcore.client import Faf
from fafcore.core.config import FafConfig
from fafcore.core.report import ResultFormatter
from fafcore.core.taxonomy import DEFAULT_TAXONOMY
from fafcore.exceptions import DocumentLoadError
from fafcore.loader import load_document


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool, config: FafConfig | None = None) -> None:
    """Set up logging for the CLI session."""
    cfg = config or FafConfig()
    level = logging.DEBUG if verbose else getattr(logging, cfg.log_level, logging.INFO)
    logging.basicConfig(level=level, format=cfg.log_format)


def _client(ctx: click.Context) -> Faf:
    return ctx.obj["client"]


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="fafcore")
@click.option(
    "--strict",
    is_flag=True,
    help="Trust no embedded ai_score; always recompute.",
)
@click.pass_context
def cli(ctx: click.Context, strict: bool):
    """faf — deterministic scoring for .faf project context files."""
    ctx.ensure_object(dict)
    existing = ctx.obj.get("client")
    try:
        config = existing.config if existing else FafConfig.from_env()
        if strict:
            config = dataclasses.replace(config, trusted_scoring_versions=frozenset())
        config.validate()
    except ValueError as exc:  # ConfigError, or a non-numeric env value
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)
    taxonomy = existing.taxonomy if existing else DEFAULT_TAXONOMY
    ctx.obj["client"] = Faf(config=config, taxonomy=taxonomy)


# ---------------------------------------------------------------------------
# faf score
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("file", required=False, type=click.Path(dir_okay=False))
@click.option("-t", "--type", "project_type", default=None,
              help="Project type or alias (default: inferred from the document).")
@click.option("--trace", is_flag=True, help="Record and show per-pass timings.")
@click.option("-f", "--format", "fmt",
              type=click.Choice(["console", "json", "compact"]),
              default="console", help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def score(ctx: click.Context, file: str | None, project_type: str | None,
          trace: bool, fmt: str, verbose: bool):
    """Score the context FILE (default: ./project.faf)."""
    client = _client(ctx)
    _configure_logging(verbose, client.config)

    try:
        result = client.compile_file(file, project_type, trace=trace)
    except DocumentLoadError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    formatter = ResultFormatter()
    if fmt == "json":
        click.echo(formatter.format_json(result))
    elif fmt == "compact":
        click.echo(formatter.format_compact(result))
    else:
        click.echo(formatter.format_console(result))


# ---------------------------------------------------------------------------
# faf verify
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.argument("checksum")
@click.option("-t", "--type", "project_type", default=None,
              help="Project type the checksum was computed for.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def verify(ctx: click.Context, file: str, checksum: str,
           project_type: str | None, verbose: bool):
    """Check that FILE still compiles to CHECKSUM (exit 1 on mismatch)."""
    client = _client(ctx)
    _configure_logging(verbose, client.config)

    try:
        document = load_document(file)
    except DocumentLoadError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    if client.verify(document, project_type, checksum):
        click.echo(f"✓ {file}: checksum {checksum} verified")
        return

    actual = client.compile(document, project_type).checksum
    click.echo(f"✗ {file}: checksum mismatch (expected {checksum}, got {actual})", err=True)
    raise SystemExit(1)


# ---------------------------------------------------------------------------
# faf slots / faf types
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("project_type")
@click.pass_context
def slots(ctx: click.Context, project_type: str):
    """List the slots counted for PROJECT_TYPE."""
    taxonomy = _client(ctx).taxonomy
    canonical = taxonomy.resolve_type(project_type)
    type_slots = taxonomy.slots_for(canonical)

    click.echo("─" * 50)
    click.echo(f"  {canonical} — {len(type_slots)} slots")
    if canonical != project_type.strip().lower():
        click.echo(f"  (resolved from '{project_type}')")
    click.echo("─" * 50)
    category = None
    for slot in type_slots:
        if slot.category != category:
            category = slot.category
            click.echo(f"  [{category}]")
        click.echo(f"    {slot.path}")
    click.echo("─" * 50)


@cli.command()
@click.pass_context
def types(ctx: click.Context):
    """List canonical project types with slot counts and aliases."""
    taxonomy = _client(ctx).taxonomy
    click.echo(f"  Taxonomy {taxonomy.version} — {len(taxonomy.types())} types")
    click.echo()
    for name in taxonomy.types():
        aliases = taxonomy.aliases_for(name)
        alias_str = f"  ({', '.join(aliases)})" if aliases else ""
        click.echo(f"  {name:<22} {taxonomy.slot_count(name):>3}{alias_str}")


# ---------------------------------------------------------------------------
# faf mcp
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--transport", type=click.Choice(["stdio", "sse", "streamable-http"]),
              default="stdio", help="MCP transport (default: stdio).")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def mcp(ctx: click.Context, transport: str, verbose: bool):
    """Start the faf MCP server for agent integration."""
    client = _client(ctx)
    _configure_logging(verbose, client.config)
    try:
        from fafcore.mcp.server import create_server  # noqa: E402
    except ImportError:
        click.echo(
            "Error: MCP dependencies not installed.\n"
            "Install with:  pip install 'fafcore[mcp]'",
            err=True,
        )
        raise SystemExit(1)

    server = create_server(client.config)
    server.run(transport=transport)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
