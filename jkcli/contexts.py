"""Listing and switching configured Jenkins contexts."""

from __future__ import annotations

from jkcli.config import Config


def format_contexts(cfg: Config) -> str:
    """Render contexts sorted by name, marking the active one with ``*``."""
    if not cfg.contexts:
        return "No contexts configured\n"
    lines = []
    for name in sorted(cfg.contexts):
        prefix = "*" if name == cfg.active else " "
        lines.append(f"{prefix} {name}\t{cfg.contexts[name].url}\n")
    return "".join(lines)


def use_context(cfg: Config, name: str) -> str:
    """Make ``name`` the active context, persist it and return a summary."""
    cfg.set_active(name)
    cfg.save()
    return f"Switched to context {name}"