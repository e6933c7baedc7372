"""Pieces of the structured and sectioned help output."""

from __future__ import annotations

from collections.abc import Iterable

# Meanings of the process exit codes, indexed by code.
_EXIT_MEANINGS = (
    "Success",
    "General error",
    "Validation error",
    "Not found",
    "Authentication failure",
    "Permission denied",
    "Connectivity/DNS/TLS failure",
    "Timeout",
    "Feature unsupported",
)


def default_exit_codes() -> dict[str, str]:
    """Return the documented process exit codes and their meaning."""
    return {str(code): meaning for code, meaning in enumerate(_EXIT_MEANINGS)}


def collect_examples(example: str) -> list[str]:
    """Split an example text into blocks separated by blank lines."""
    blocks = (block.strip() for block in example.strip().split("\n\n"))
    return [block for block in blocks if block]


def command_label_width(names: Iterable[str]) -> int:
    """Return the column width for ``name:`` labels, including padding."""
    longest = max((len(name) + 1 for name in names), default=0)
    return longest + 2


def format_command_section(title: str, commands: Iterable[tuple[str, str]]) -> str:
    """Render a titled section of ``(name, short description)`` pairs."""
    rows = list(commands)
    if not rows:
        return ""
    width = command_label_width(name for name, _ in rows)
    body = "".join(
        "  {label:<{width}} {text}\n".format(label=name + ":", width=width, text=short.strip())
        for name, short in rows
    )
    return f"{title}\n{body}\n"