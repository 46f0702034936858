"""CLI entry point — click group for rendering and inspecting pipeline documents."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from pipeline_builder.core.config import BuilderSettings, ConfigManager
from pipeline_builder.core.exceptions import PipelineBuilderError

# Vertical distance between chained steps created by ``new``.
_NEW_STEP_SPACING = 150


def _settings(ctx: click.Context) -> BuilderSettings:
    """Return the settings resolved by the group callback."""
    return ctx.obj["settings"]


@click.group()
@click.version_option(package_name="pipeline-builder")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Enable debug logging.")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, resolve_path=True),
    default=None,
    help="Directory holding config.toml (default: ~/.config/pipeline-builder).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_dir: str | None) -> None:
    """Pipeline Builder — author CI workflows as graphs of steps."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = ConfigManager(Path(config_dir) if config_dir else None)
    config.load()
    ctx.obj = {"settings": config.settings()}


@cli.command(name="render")
@click.argument("document", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, resolve_path=True),
    default=None,
    help="Write the workflow to this file instead of stdout.",
)
@click.option("--name", default=None, help="Workflow name (overrides config).")
@click.option("--runs-on", default=None, help="Runner label (overrides config).")
@click.pass_context
def render_cmd(ctx: click.Context, document: str, output: str | None, name: str | None, runs_on: str | None) -> None:
    """Render a pipeline DOCUMENT as workflow YAML."""
    from dataclasses import replace

    from pipeline_builder.core.document import load_document
    from pipeline_builder.core.export import write_workflow
    from pipeline_builder.core.serializer import WorkflowOptions, render_workflow

    try:
        doc = load_document(Path(document))
    except PipelineBuilderError as exc:
        raise click.ClickException(str(exc)) from exc

    options = WorkflowOptions.from_settings(_settings(ctx))
    if name is not None:
        options = replace(options, name=name)
    if runs_on is not None:
        options = replace(options, runs_on=runs_on)

    text = render_workflow(doc.nodes, doc.connections, doc.triggers, options)
    if output is None:
        click.echo(text, nl=False)
        return
    try:
        path = write_workflow(text, Path(output))
    except OSError as exc:
        raise click.ClickException(f"Cannot write {output}: {exc}") from exc
    click.echo(f"Wrote {len(doc.nodes)} steps to {path}")


@cli.command(name="order")
@click.argument("document", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
def order_cmd(document: str) -> None:
    """Print the step names of DOCUMENT in execution order."""
    from pipeline_builder.core.document import load_document
    from pipeline_builder.core.ordering import topological_sort

    try:
        doc = load_document(Path(document))
    except PipelineBuilderError as exc:
        raise click.ClickException(str(exc)) from exc

    for index, node in enumerate(topological_sort(doc.nodes, doc.connections), start=1):
        click.echo(f"{index:3d}. {node.name} ({node.type})")


@cli.command(name="new")
@click.argument("document", type=click.Path(dir_okay=False, resolve_path=True))
@click.option(
    "-t",
    "--type",
    "node_types",
    multiple=True,
    required=True,
    help="Catalog node type; repeat to chain several steps in order.",
)
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing document.")
def new_cmd(document: str, node_types: tuple[str, ...], force: bool) -> None:
    """Create a pipeline DOCUMENT chaining catalog templates top to bottom."""
    from pipeline_builder.catalog import load_catalog
    from pipeline_builder.core.datatypes import Position
    from pipeline_builder.core.document import save_document
    from pipeline_builder.core.store import GraphStore

    path = Path(document)
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")

    try:
        catalog = load_catalog()
    except PipelineBuilderError as exc:
        raise click.ClickException(str(exc)) from exc

    missing = [node_type for node_type in node_types if catalog.find(node_type) is None]
    if missing:
        raise click.ClickException(f"Unknown node type(s): {', '.join(missing)}")

    store = GraphStore(timer_factory=_no_timer)
    previous = None
    for index, node_type in enumerate(node_types):
        template = catalog.find(node_type)
        node = store.add_node_from_template(template, Position(100, 100 + index * _NEW_STEP_SPACING))
        if previous is not None:
            store.add_connection(previous.id, node.id)
        previous = node

    try:
        save_document(store.to_document(), path)
    except PipelineBuilderError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created {path} with {len(node_types)} steps")


@cli.command(name="catalog")
@click.option("-c", "--category", default=None, help="Only list templates of this category.")
def catalog_cmd(category: str | None) -> None:
    """List the node templates available in the palette."""
    from pipeline_builder.catalog import load_catalog

    try:
        catalog = load_catalog()
    except PipelineBuilderError as exc:
        raise click.ClickException(str(exc)) from exc

    categories = [c for c in catalog.categories if category is None or c.title.lower() == category.lower()]
    if not categories:
        raise click.ClickException(f"No category named '{category}'")
    for entry in categories:
        click.echo(entry.title)
        for template in entry.templates:
            uses = template.config.get("repository")
            suffix = f"  [{uses}]" if isinstance(uses, str) and uses else ""
            click.echo(f"  {template.type:<20} {template.name}{suffix}")


@cli.command(name="check")
@click.argument("workflow", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
@click.pass_context
def check_cmd(ctx: click.Context, workflow: str) -> None:
    """Run the structural self-check over a WORKFLOW file."""
    from pipeline_builder.core.serializer import check_workflow_text

    try:
        text = Path(workflow).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise click.ClickException(f"Cannot read {workflow}: {exc}") from exc
    problems = check_workflow_text(text)
    if not problems:
        click.echo("OK")
        return
    for problem in problems:
        click.echo(problem, err=True)
    ctx.exit(1)


@cli.command(name="gui")
def gui_cmd() -> None:
    """Launch the desktop pipeline editor."""
    from pipeline_builder.gui.app import main

    main()


class _NoTimer:
    """Timer that never fires; the CLI never needs undo checkpoints."""

    def start(self) -> None:
        """Do nothing."""

    def cancel(self) -> None:
        """Do nothing."""


def _no_timer(_delay: float, _callback: object) -> _NoTimer:
    return _NoTimer()
