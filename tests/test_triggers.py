"""Tests for trigger configuration records."""

from __future__ import annotations

import pytest

from pipeline_builder.core.triggers import (
    DEFAULT_TRIGGERS,
    MANUAL,
    PULL_REQUEST,
    PUSH,
    SCHEDULE,
    DispatchInput,
    ManualTrigger,
    PullRequestTrigger,
    PushTrigger,
    ScheduleTrigger,
    Triggers,
    ensure_enabled,
    record_from_dict,
    split_list,
)


class TestTriggers:
    """Tests for enabling and disabling kinds."""

    def test_default_is_push_only(self) -> None:
        """The default set enables push on ``main``."""
        assert DEFAULT_TRIGGERS.enabled_kinds() == [PUSH]
        assert DEFAULT_TRIGGERS.push == PushTrigger(branches=("main",))

    def test_enable_uses_default_record(self) -> None:
        """Enabling a kind starts from its default options."""
        triggers = Triggers().enable(PULL_REQUEST)

        assert triggers.pull_request == PullRequestTrigger()
        assert triggers.pull_request.types == ("opened", "synchronize", "reopened")

    def test_enable_keeps_existing_record(self) -> None:
        """Re-enabling an enabled kind keeps its options."""
        triggers = Triggers(push=PushTrigger(branches=("dev",))).enable(PUSH)

        assert triggers.push.branches == ("dev",)

    def test_disable(self) -> None:
        """Disabling clears the record and leaves the original untouched."""
        triggers = DEFAULT_TRIGGERS.enable(SCHEDULE).disable(PUSH)

        assert triggers.enabled_kinds() == [SCHEDULE]
        assert DEFAULT_TRIGGERS.is_enabled(PUSH)

    def test_unknown_kind_raises(self) -> None:
        """Unknown kinds raise ``KeyError``."""
        with pytest.raises(KeyError):
            Triggers().get("release")

    def test_with_record_checks_type(self) -> None:
        """A record of the wrong kind is refused."""
        with pytest.raises(TypeError, match="expects PushTrigger"):
            Triggers().with_record(PUSH, ScheduleTrigger())


class TestEnsureEnabled:
    """Tests for the single fallback trigger set."""

    def test_empty_becomes_default(self) -> None:
        """No enabled kind means the default set."""
        assert ensure_enabled(Triggers()) is DEFAULT_TRIGGERS
        assert ensure_enabled(None) is DEFAULT_TRIGGERS

    def test_enabled_passes_through(self) -> None:
        """A configuration with an enabled kind is returned unchanged."""
        triggers = Triggers(schedule=ScheduleTrigger())
        assert ensure_enabled(triggers) is triggers


class TestTriggerDicts:
    """Tests for the mapping form used by documents and editors."""

    def test_round_trip(self) -> None:
        """``from_dict(to_dict())`` restores every kind."""
        triggers = Triggers(
            push=PushTrigger(branches=("main",), paths_ignore=("docs/**",)),
            pull_request=PullRequestTrigger(types=("opened",)),
            schedule=ScheduleTrigger(cron="0 4 * * *"),
            workflow_dispatch=ManualTrigger(inputs=(("env", DispatchInput(required=True)),)),
        )

        assert Triggers.from_dict(triggers.to_dict()) == triggers

    def test_disabled_kinds_omitted(self) -> None:
        """Only enabled kinds appear in the mapping."""
        assert list(DEFAULT_TRIGGERS.to_dict()) == [PUSH]

    def test_comma_strings_and_dash_keys(self) -> None:
        """List options accept commas and the ``paths-ignore`` spelling."""
        record = record_from_dict(PUSH, {"branches": "main, dev", "paths-ignore": ["*.md"]})

        assert record == PushTrigger(branches=("main", "dev"), paths_ignore=("*.md",))

    def test_manual_inputs_tolerate_junk(self) -> None:
        """Non-mapping input specs fall back to the default description."""
        record = record_from_dict(MANUAL, {"inputs": {"target": "prod", "level": {"type": "choice"}}})

        assert record.inputs == (
            ("target", DispatchInput()),
            ("level", DispatchInput(type="choice")),
        )

    def test_unknown_kinds_ignored(self) -> None:
        """Unknown keys in the mapping are skipped."""
        assert Triggers.from_dict({"release": {}, SCHEDULE: {}}) == Triggers(schedule=ScheduleTrigger())


class TestSplitList:
    """Tests for list option normalisation."""

    def test_string(self) -> None:
        """Commas split and blanks are dropped."""
        assert split_list(" a, ,b ") == ("a", "b")

    def test_list(self) -> None:
        """Lists are stripped item by item."""
        assert split_list([" a ", ""]) == ("a",)

    def test_none(self) -> None:
        """``None`` is an empty tuple."""
        assert split_list(None) == ()
