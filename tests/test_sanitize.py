"""Tests for input sanitization."""

from __future__ import annotations

import pytest

from pipeline_builder.core.sanitize import (
    check_input,
    fix_interpolation,
    sanitize_config_value,
    sanitize_node_name,
    strip_markup,
)


class TestCheckInputMarkup:
    """Tests for embedded markup and script URIs."""

    @pytest.mark.parametrize(
        "value",
        [
            "<script>alert(1)</script>",
            "javascript:alert(1)",
            'x" onclick="steal()',
            "data:text/html,<b>",
            "vbscript:msgbox",
            "<iframe src=x></iframe>",
            "<object data=x></object>",
            "<embed src=x></embed>",
        ],
    )
    def test_markup_rejected(self, value: str) -> None:
        """Each markup pattern is rejected with a reason."""
        result = check_input("ref", value)

        assert result.accepted is False
        assert result.reason == "markup"

    def test_script_tag_removed_from_value(self) -> None:
        """The fallback value has the script tag cut out."""
        result = check_input("ref", "main<script>alert(1)</script>")

        assert result.value == "main"

    def test_markup_rejected_in_command_fields_too(self) -> None:
        """``run`` is exempt from shell checks but not from markup checks."""
        assert check_input("run", "echo <script>x</script>").accepted is False


class TestCheckInputShellAndSql:
    """Tests for shell metacharacters and SQL keyword patterns."""

    @pytest.mark.parametrize("value", ["`whoami`", "$(id)", "make && deploy", "a || b"])
    def test_shell_tokens_rejected(self, value: str) -> None:
        """Shell tokens outside command fields are rejected."""
        result = check_input("ref", value)

        assert result.accepted is False
        assert result.reason == "shell"

    def test_shell_fallback_drops_metacharacters(self) -> None:
        """The fallback value keeps the text without the metacharacters."""
        assert check_input("ref", "$(id)").value == "id"

    @pytest.mark.parametrize("key", ["run", "command"])
    def test_command_fields_allow_shell(self, key: str) -> None:
        """Command fields keep their shell syntax."""
        result = check_input(key, "npm ci && npm test || exit 1")

        assert result.accepted is True
        assert result.value == "npm ci && npm test || exit 1"

    @pytest.mark.parametrize("value", ["1 OR 1=1", "drop table users", "select name"])
    def test_sql_patterns_rejected(self, value: str) -> None:
        """Crude SQL keyword patterns are rejected."""
        result = check_input("ref", value)

        assert result.accepted is False
        assert result.reason == "sql"

    def test_plain_value_accepted(self) -> None:
        """An ordinary value passes through untouched."""
        result = check_input("node-version", "20.x")

        assert result.accepted is True
        assert result.value == "20.x"
        assert result.reason is None

    @pytest.mark.parametrize("value", ["", "   "])
    def test_blank_value_accepted(self, value: str) -> None:
        """Blank values are accepted unchanged."""
        assert check_input("ref", value).value == value


class TestInterpolation:
    """Tests for the ``${`` rewrite."""

    def test_single_brace_rewritten(self) -> None:
        """``${ expr }`` becomes ``${{ expr }}`` and is still accepted."""
        result = check_input("ref", "${ github.ref }")

        assert result.accepted is True
        assert result.value == "${{ github.ref }}"
        assert result.reason == "interpolation"

    def test_correct_syntax_untouched(self) -> None:
        """Values already using ``${{`` are left alone."""
        assert check_input("ref", "${{ github.sha }}").value == "${{ github.sha }}"

    def test_unclosed_opening_rewritten(self) -> None:
        """A dangling ``${`` still gets the double brace."""
        assert fix_interpolation("${ oops") == "${{  oops"


class TestSanitizers:
    """Tests for names and stored config values."""

    def test_name_loses_hostile_characters(self) -> None:
        """Quotes, slashes and shell characters are removed from names."""
        assert sanitize_node_name('Build "app" / $(x)') == "Build app  x"

    def test_name_markup_stripped(self) -> None:
        """Script tags disappear from names."""
        assert sanitize_node_name("Deploy<script>alert(1)</script>") == "Deploy"

    @pytest.mark.parametrize("name", ["", "   ", "<>"])
    def test_blank_name_falls_back(self, name: str) -> None:
        """Names that end up empty become ``Unnamed Step``."""
        assert sanitize_node_name(name) == "Unnamed Step"

    def test_bare_repository_expanded(self) -> None:
        """A bare action name becomes ``actions/<name>@v4``."""
        assert sanitize_config_value("repository", "checkout") == "actions/checkout@v4"

    def test_full_repository_kept(self) -> None:
        """Owner/name@version references are not rewritten."""
        assert sanitize_config_value("repository", "docker/build-push-action@v5") == "docker/build-push-action@v5"

    def test_run_keeps_shell_but_fixes_interpolation(self) -> None:
        """``run`` keeps its whitespace and shell syntax."""
        assert sanitize_config_value("run", "echo ${ env.A } && make\n") == "echo ${{ env.A }} && make\n"

    def test_plain_value_trimmed(self) -> None:
        """Other values are trimmed."""
        assert sanitize_config_value("ref", "  main  ") == "main"

    def test_strip_markup(self) -> None:
        """Event handler attributes are removed."""
        assert strip_markup('a onload="x"') == 'a "x"'
