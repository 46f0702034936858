"""Workflow trigger configuration and the at-least-one-trigger rule.

``DEFAULT_TRIGGERS`` and ``ensure_enabled`` are the only place the fallback
trigger set is defined; the graph store and the serializer both go through
them.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

PUSH = "push"
PULL_REQUEST = "pull_request"
SCHEDULE = "schedule"
MANUAL = "workflow_dispatch"

TRIGGER_KINDS: tuple[str, ...] = (PUSH, PULL_REQUEST, SCHEDULE, MANUAL)

TRIGGER_LABELS: dict[str, str] = {
    PUSH: "Push",
    PULL_REQUEST: "Pull Request",
    SCHEDULE: "Schedule",
    MANUAL: "Manual",
}

DEFAULT_BRANCH = "main"
DEFAULT_CRON = "0 0 * * *"


@dataclass(frozen=True)
class PushTrigger:
    """Options for the ``push`` trigger."""

    branches: tuple[str, ...] = (DEFAULT_BRANCH,)
    paths: tuple[str, ...] = ()
    paths_ignore: tuple[str, ...] = ()


@dataclass(frozen=True)
class PullRequestTrigger:
    """Options for the ``pull_request`` trigger."""

    branches: tuple[str, ...] = (DEFAULT_BRANCH,)
    types: tuple[str, ...] = ("opened", "synchronize", "reopened")


@dataclass(frozen=True)
class ScheduleTrigger:
    """Options for the ``schedule`` trigger; a blank cron renders the default."""

    cron: str = ""


@dataclass(frozen=True)
class DispatchInput:
    """A named input of a manual (``workflow_dispatch``) run."""

    description: str = "Input parameter"
    required: bool = False
    type: str = "string"


@dataclass(frozen=True)
class ManualTrigger:
    """Options for the ``workflow_dispatch`` trigger."""

    inputs: tuple[tuple[str, DispatchInput], ...] = ()


TriggerRecord = PushTrigger | PullRequestTrigger | ScheduleTrigger | ManualTrigger

_RECORD_TYPES: dict[str, type] = {
    PUSH: PushTrigger,
    PULL_REQUEST: PullRequestTrigger,
    SCHEDULE: ScheduleTrigger,
    MANUAL: ManualTrigger,
}


def default_trigger_config(kind: str) -> TriggerRecord:
    """Return the record a newly enabled trigger kind starts with.

    Raises:
        KeyError: If *kind* is not a known trigger kind.
    """
    return _RECORD_TYPES[kind]()


@dataclass(frozen=True)
class Triggers:
    """Trigger configuration; a kind is enabled when its record is set."""

    push: PushTrigger | None = None
    pull_request: PullRequestTrigger | None = None
    schedule: ScheduleTrigger | None = None
    workflow_dispatch: ManualTrigger | None = None

    def get(self, kind: str) -> TriggerRecord | None:
        """Return the record for *kind*, or ``None`` when disabled."""
        if kind not in _RECORD_TYPES:
            raise KeyError(kind)
        return getattr(self, kind)

    def is_enabled(self, kind: str) -> bool:
        """Return ``True`` if *kind* has a record."""
        return self.get(kind) is not None

    def enabled_kinds(self) -> list[str]:
        """Return the enabled kinds in canonical order."""
        return [kind for kind in TRIGGER_KINDS if getattr(self, kind) is not None]

    def has_enabled(self) -> bool:
        """Return ``True`` if at least one kind is enabled."""
        return bool(self.enabled_kinds())

    def enable(self, kind: str) -> Triggers:
        """Return a copy with *kind* enabled, keeping its record if already set."""
        return self.with_record(kind, self.get(kind) or default_trigger_config(kind))

    def disable(self, kind: str) -> Triggers:
        """Return a copy with *kind* disabled."""
        self.get(kind)
        return replace(self, **{kind: None})

    def with_record(self, kind: str, record: TriggerRecord) -> Triggers:
        """Return a copy with *kind* set to *record*."""
        if not isinstance(record, _RECORD_TYPES[kind]):
            msg = f"Trigger '{kind}' expects {_RECORD_TYPES[kind].__name__}, got {type(record).__name__}"
            raise TypeError(msg)
        return replace(self, **{kind: record})

    # ── (de)serialization ─────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-ready mapping of the enabled kinds."""
        data: dict[str, Any] = {}
        if self.push is not None:
            data[PUSH] = {
                "branches": list(self.push.branches),
                "paths": list(self.push.paths),
                "paths_ignore": list(self.push.paths_ignore),
            }
        if self.pull_request is not None:
            data[PULL_REQUEST] = {
                "branches": list(self.pull_request.branches),
                "types": list(self.pull_request.types),
            }
        if self.schedule is not None:
            data[SCHEDULE] = {"cron": self.schedule.cron}
        if self.workflow_dispatch is not None:
            data[MANUAL] = {
                "inputs": {
                    name: {"description": spec.description, "required": spec.required, "type": spec.type}
                    for name, spec in self.workflow_dispatch.inputs
                }
            }
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Triggers:
        """Build triggers from a mapping such as the one ``to_dict`` returns.

        Unknown kinds are ignored; list options accept either lists or
        comma-separated strings.
        """
        triggers = cls()
        for kind in TRIGGER_KINDS:
            if kind not in data or data[kind] is None:
                continue
            triggers = triggers.with_record(kind, record_from_dict(kind, data[kind] or {}))
        return triggers


def split_list(value: Any) -> tuple[str, ...]:
    """Normalise a list option: lists pass through, strings split on commas."""
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(",") if part.strip())
    return tuple(str(item).strip() for item in value if str(item).strip())


def _dispatch_input(spec: dict[str, Any]) -> DispatchInput:
    return DispatchInput(
        description=str(spec.get("description") or "Input parameter"),
        required=bool(spec.get("required", False)),
        type=str(spec.get("type") or "string"),
    )


def record_from_dict(kind: str, data: dict[str, Any]) -> TriggerRecord:
    """Build the record for *kind* from a loose mapping of options."""
    base = default_trigger_config(kind)
    if kind == MANUAL:
        raw_inputs = data.get("inputs") or {}
        if not isinstance(raw_inputs, dict):
            raw_inputs = {}
        inputs = tuple(
            (str(name), _dispatch_input(spec if isinstance(spec, dict) else {}))
            for name, spec in raw_inputs.items()
        )
        return ManualTrigger(inputs=inputs)

    changes: dict[str, Any] = {}
    for record_field in fields(base):
        # Accept the workflow spelling (paths-ignore) as well as the field name.
        key = record_field.name
        value = data.get(key, data.get(key.replace("_", "-")))
        if value is None:
            continue
        if isinstance(getattr(base, key), tuple):
            changes[key] = split_list(value)
        else:
            changes[key] = str(value)
    return replace(base, **changes)


DEFAULT_TRIGGERS = Triggers(push=PushTrigger())


def ensure_enabled(triggers: Triggers | None) -> Triggers:
    """Return *triggers*, or ``DEFAULT_TRIGGERS`` when no kind is enabled."""
    if triggers is None or not triggers.has_enabled():
        return DEFAULT_TRIGGERS
    return triggers
