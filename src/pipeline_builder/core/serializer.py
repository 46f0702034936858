"""Workflow serializer — renders the ordered graph and triggers as workflow YAML.

The text is assembled line by line rather than through a YAML emitter so
the layout matches what users see in the preview: two-space indentation,
flow-style branch lists, ``|`` block scalars for multi-line commands.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pipeline_builder.core.ordering import topological_sort
from pipeline_builder.core.triggers import DEFAULT_CRON, Triggers, ensure_enabled

if TYPE_CHECKING:
    from pipeline_builder.core.config import BuilderSettings
    from pipeline_builder.core.datatypes import Connection, PipelineNode

logger = logging.getLogger(__name__)

# Characters that force a string into double quotes.
RESERVED_CHARACTERS = frozenset(":\"'\n\t\\[]{}#&*!|>?-,`@%")

# Config keys rendered outside the ``with`` block.
RESERVED_KEYS = frozenset({"repository", "run", "env"})

UNNAMED_STEP = "Unnamed Step"

_STEP_INDENT = "    "
_FIELD_INDENT = "      "
_NESTED_INDENT = "        "

_REQUIRED_KEYS = ("name:", "on:", "jobs:", "runs-on:", "steps:")
_LEADING_SPACES = re.compile(r"^ *")
# Header values such as "ubuntu-latest" or "CI/CD Pipeline" are safe unquoted.
_PLAIN_HEADER = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_./ -]*(?<! )$")


@dataclass(frozen=True)
class WorkflowOptions:
    """Document-level settings of a rendered workflow."""

    name: str = "CI/CD Pipeline"
    job_id: str = "build"
    runs_on: str = "ubuntu-latest"
    self_check: bool = False

    @classmethod
    def from_settings(cls, settings: BuilderSettings) -> WorkflowOptions:
        """Build options from resolved builder settings."""
        return cls(
            name=settings.workflow_name,
            job_id=settings.job_id,
            runs_on=settings.runs_on,
            self_check=settings.debug,
        )


# ── scalars ───────────────────────────────────────────────────


def escape_scalar(value: Any) -> str:
    """Render a string scalar, quoting it when YAML would misread it.

    Strings holding any reserved character, or with leading or trailing
    whitespace, are wrapped in double quotes with backslashes, double
    quotes, newlines and tabs escaped.  Empty or whitespace-only strings
    become ``""``.  Anything else is emitted bare.
    """
    if not isinstance(value, str) or not value.strip():
        return '""'
    if value != value.strip() or any(char in RESERVED_CHARACTERS for char in value):
        escaped = (
            value.replace("\\", "\\\\")
            .replace('"', '\\"')
            .replace("\n", "\\n")
            .replace("\t", "\\t")
        )
        return f'"{escaped}"'
    return value


def format_value(value: Any) -> str:
    """Render any config value as a YAML scalar or JSON flow collection."""
    if value is None:
        return '""'
    if isinstance(value, str):
        return escape_scalar(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (dict, list, tuple)):
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError):
            return '""'
    return '""'


def format_run(command: str) -> str:
    """Render a ``run`` command, switching to a ``|`` block for multi-line text."""
    text = command.replace("\r\n", "\n")
    if "\n" not in text:
        return escape_scalar(text)
    lines = text.rstrip("\n").split("\n")
    # YAML takes the block indentation from the first non-blank line; an
    # indicator keeps its leading spaces intact.
    first = next((line for line in lines if line.strip()), "")
    header = "|2" if first.startswith(" ") else "|"
    body = "\n".join(f"{_NESTED_INDENT}{line}" if line else "" for line in lines)
    return f"{header}\n{body}"


def _flow_list(values: Sequence[str]) -> str:
    return "[ " + ", ".join(escape_scalar(value) for value in values) + " ]"


def _single_quoted(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _header_value(value: str) -> str:
    if isinstance(value, str) and _PLAIN_HEADER.match(value):
        return value
    return escape_scalar(value)


# ── steps ─────────────────────────────────────────────────────


def render_step(node: PipelineNode) -> str:
    """Render one node as a ``steps`` list entry (without trailing newline)."""
    config = node.config
    lines = [f"{_STEP_INDENT}- name: {escape_scalar(node.name or UNNAMED_STEP)}"]

    repository = config.get("repository")
    if isinstance(repository, str) and repository.strip():
        lines.append(f"{_FIELD_INDENT}uses: {escape_scalar(repository)}")

    with_entries = [
        (key, value)
        for key, value in config.items()
        if key not in RESERVED_KEYS and value is not None and value != "" and isinstance(key, str) and key.strip()
    ]
    if with_entries:
        lines.append(f"{_FIELD_INDENT}with:")
        lines.extend(f"{_NESTED_INDENT}{escape_scalar(key)}: {format_value(value)}" for key, value in with_entries)

    env = config.get("env")
    if isinstance(env, dict):
        env_entries = [
            (key, value)
            for key, value in env.items()
            if isinstance(key, str) and key.strip() and value is not None
        ]
        if env_entries:
            lines.append(f"{_FIELD_INDENT}env:")
            lines.extend(f"{_NESTED_INDENT}{escape_scalar(key)}: {format_value(value)}" for key, value in env_entries)

    run = config.get("run")
    if isinstance(run, str) and run.strip():
        lines.append(f"{_FIELD_INDENT}run: {format_run(run)}")

    return "\n".join(lines)


# ── triggers ──────────────────────────────────────────────────


def render_triggers(triggers: Triggers | None) -> str:
    """Render the body of the ``on:`` block.

    A configuration with no enabled kind renders the default trigger set.
    """
    triggers = ensure_enabled(triggers)
    lines: list[str] = []

    if triggers.push is not None:
        lines.append("  push:")
        if triggers.push.branches:
            lines.append(f"    branches: {_flow_list(triggers.push.branches)}")
        if triggers.push.paths:
            lines.append(f"    paths: {_flow_list(triggers.push.paths)}")
        if triggers.push.paths_ignore:
            lines.append(f"    paths-ignore: {_flow_list(triggers.push.paths_ignore)}")

    if triggers.pull_request is not None:
        lines.append("  pull_request:")
        if triggers.pull_request.branches:
            lines.append(f"    branches: {_flow_list(triggers.pull_request.branches)}")
        if triggers.pull_request.types:
            lines.append(f"    types: {_flow_list(triggers.pull_request.types)}")

    if triggers.schedule is not None:
        cron = triggers.schedule.cron.strip() or DEFAULT_CRON
        lines.append("  schedule:")
        lines.append(f"    - cron: {_single_quoted(cron)}")

    if triggers.workflow_dispatch is not None:
        lines.append("  workflow_dispatch:")
        if triggers.workflow_dispatch.inputs:
            lines.append("    inputs:")
            for name, spec in triggers.workflow_dispatch.inputs:
                lines.append(f"      {escape_scalar(name)}:")
                lines.append(f"        description: {escape_scalar(spec.description)}")
                lines.append(f"        required: {format_value(spec.required)}")
                lines.append(f"        type: {escape_scalar(spec.type)}")

    return "\n".join(lines)


# ── document ──────────────────────────────────────────────────


def render_workflow(
    nodes: Sequence[PipelineNode],
    connections: Sequence[Connection],
    triggers: Triggers | None,
    options: WorkflowOptions | None = None,
) -> str:
    """Render the complete workflow document.

    Nodes are emitted in topological order.  An empty graph yields a
    commented placeholder that still carries every mandatory key.

    Args:
        nodes: The graph's nodes.
        connections: The graph's connections.
        triggers: Trigger configuration; ``None`` or empty uses the default.
        options: Document-level settings.

    Returns:
        The workflow text, ending with a newline.
    """
    options = options or WorkflowOptions()
    header = [
        f"name: {_header_value(options.name)}",
        "on:",
        render_triggers(triggers),
        "",
        "jobs:",
        f"  {_header_value(options.job_id)}:",
        f"    runs-on: {_header_value(options.runs_on)}",
    ]

    if not nodes:
        text = "\n".join(
            [
                "# No pipeline steps defined yet",
                "# Drag actions from the toolbox to get started",
                "",
                *header,
                "    steps:",
                "      # Add your pipeline steps here",
            ]
        )
    else:
        steps = "\n\n".join(render_step(node) for node in topological_sort(nodes, connections))
        text = "\n".join([*header, "", "    steps:", steps])
    text += "\n"

    if options.self_check:
        for problem in check_workflow_text(text):
            logger.warning("Generated workflow failed self-check: %s", problem)
    return text


def check_workflow_text(text: str) -> list[str]:
    """Run the structural self-check over workflow text.

    Checks that the mandatory keys are present and that every non-blank
    line is indented by an even number of spaces.

    Returns:
        Human-readable problems; empty when the text passes.
    """
    problems = [f"Missing '{key[:-1]}'" for key in _REQUIRED_KEYS if key not in text]
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        indent = len(_LEADING_SPACES.match(line).group(0))
        if indent % 2:
            problems.append(f"Odd indentation ({indent} spaces) at line {number}: {line.strip()}")
    return problems
