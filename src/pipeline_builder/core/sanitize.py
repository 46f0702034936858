"""Input sanitization for values that end up in a privileged workflow file.

``check_input`` never raises and never blocks the edit: it reports whether
the raw value was acceptable and always hands back a value the caller can
store.  Rejections are logged at debug level only.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Free-text fields that legitimately hold shell commands.
COMMAND_FIELDS = frozenset({"run", "command"})

UNNAMED_STEP = "Unnamed Step"

_MARKUP_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"data:text/html", re.IGNORECASE),
    re.compile(r"vbscript:", re.IGNORECASE),
    re.compile(r"<iframe\b[^<]*(?:(?!</iframe>)<[^<]*)*</iframe>", re.IGNORECASE),
    re.compile(r"<object\b[^<]*(?:(?!</object>)<[^<]*)*</object>", re.IGNORECASE),
    re.compile(r"<embed\b[^<]*(?:(?!</embed>)<[^<]*)*</embed>", re.IGNORECASE),
)

# Markup stripped from names and plain config values.
_STRIP_PATTERNS = _MARKUP_PATTERNS[:3]

_SHELL_TOKENS = ("`", "$(", "&&", "||")
_SHELL_CHARACTERS = re.compile(r"[`$()&|]")

_SQL_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(union|select|insert|update|delete|drop|create|alter)\b.*\b(or|and)\b", re.IGNORECASE),
    re.compile(r"\b(union|select|insert|update|delete|drop|create|alter)\b", re.IGNORECASE),
    re.compile(r"\b(or|and)\b\s+\d+\s*=\s*\d+", re.IGNORECASE),
)

_NAME_HOSTILE = re.compile(r"[`$()&|<>:\"/\\?*]")

_CLOSED_INTERPOLATION = re.compile(r"\$\{(?!\{)\s*([^{}]*?)\s*\}")
_OPEN_INTERPOLATION = re.compile(r"\$\{(?!\{)")


@dataclass(frozen=True)
class InputCheck:
    """Outcome of ``check_input``.

    Attributes:
        accepted: ``False`` when the raw value contained something blocked.
        value: The value to store, sanitized when not accepted.
        reason: Why the value was rejected or rewritten, if it was.
    """

    accepted: bool
    value: str
    reason: str | None = None


def fix_interpolation(value: str) -> str:
    """Rewrite ``${ expr }`` into the workflow expression syntax ``${{ expr }}``."""
    value = _CLOSED_INTERPOLATION.sub(lambda match: "${{ " + match.group(1) + " }}", value)
    return _OPEN_INTERPOLATION.sub("${{ ", value)


def strip_markup(value: str) -> str:
    """Remove script tags, ``javascript:`` URIs and inline event handlers."""
    for pattern in _STRIP_PATTERNS:
        value = pattern.sub("", value)
    return value


def check_input(key: str, value: str) -> InputCheck:
    """Screen a raw field value before it enters a node's configuration.

    Checks run in order: embedded markup, malformed ``${`` interpolation
    (rewritten, not rejected), shell metacharacters and SQL keyword
    patterns.  The last two do not apply to command fields, which hold
    shell text by nature.

    Args:
        key: The config key being edited.
        value: The raw text typed by the user.

    Returns:
        An ``InputCheck``; callers store ``value`` whatever ``accepted`` says.
    """
    if not value or not value.strip():
        return InputCheck(accepted=True, value=value)

    for pattern in _MARKUP_PATTERNS:
        if pattern.search(value):
            logger.debug("Rejected markup in field %r", key)
            return InputCheck(accepted=False, value=pattern.sub("", value), reason="markup")

    reason: str | None = None
    if "${" in value and "${{" not in value:
        value = fix_interpolation(value)
        reason = "interpolation"

    if key not in COMMAND_FIELDS:
        if any(token in value for token in _SHELL_TOKENS):
            logger.debug("Rejected shell metacharacters in field %r", key)
            return InputCheck(accepted=False, value=_SHELL_CHARACTERS.sub("", value), reason="shell")

        for pattern in _SQL_PATTERNS:
            if pattern.search(value):
                logger.debug("Rejected SQL pattern in field %r", key)
                return InputCheck(accepted=False, value=pattern.sub("", value), reason="sql")

    return InputCheck(accepted=True, value=value, reason=reason)


def sanitize_node_name(name: str) -> str:
    """Clean a step name; blank results fall back to ``"Unnamed Step"``."""
    if not name or not isinstance(name, str):
        return UNNAMED_STEP
    cleaned = _NAME_HOSTILE.sub("", strip_markup(name)).strip()
    return cleaned or UNNAMED_STEP


def sanitize_config_value(key: str, value: str) -> str:
    """Normalise a string config value before it is stored.

    ``repository`` values without an owner or version become
    ``actions/<name>@v4``.  ``run`` keeps its shell syntax but gets its
    interpolation fixed.  Every value loses script markup.
    """
    if not value or not isinstance(value, str):
        return ""

    if key == "repository" and "/" not in value and "@" not in value:
        return f"actions/{value.strip()}@v4"

    if key == "run":
        if "${" in value and "${{" not in value:
            value = fix_interpolation(value)
        return strip_markup(value)

    return strip_markup(value.strip())
