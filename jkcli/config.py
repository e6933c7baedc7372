"""Persisted CLI configuration: Jenkins contexts and user preferences."""

from __future__ import annotations

import contextlib
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import platformdirs
import yaml

CURRENT_VERSION = 1
CONFIG_NAMES = ("config.yaml", "config.yml")


class ContextNotFoundError(LookupError):
    """Raised when a named context does not exist."""

    def __init__(self, name: str = "") -> None:
        message = "context not found" if not name else f"context not found: {name}"
        super().__init__(message)
        self.name = name


@dataclass
class Context:
    """A Jenkins connection configuration."""

    url: str
    username: str = ""
    insecure: bool = False
    proxy: str = ""
    ca_file: str = ""
    allow_insecure_store: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> Context:
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"decode config: context entry must be a mapping, got {data!r}")
        return cls(
            url=str(data.get("url") or ""),
            username=str(data.get("username") or ""),
            insecure=bool(data.get("insecure", False)),
            proxy=str(data.get("proxy") or ""),
            ca_file=str(data.get("ca_file") or ""),
            allow_insecure_store=bool(data.get("allow_insecure_store", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"url": self.url}
        if self.username:
            out["username"] = self.username
        if self.insecure:
            out["insecure"] = True
        if self.proxy:
            out["proxy"] = self.proxy
        if self.ca_file:
            out["ca_file"] = self.ca_file
        if self.allow_insecure_store:
            out["allow_insecure_store"] = True
        return out


@dataclass
class Preferences:
    """User-level CLI options."""

    color: str = ""
    output_format: str = ""
    max_concurrency: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> Preferences:
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"decode config: preferences must be a mapping, got {data!r}")
        return cls(
            color=str(data.get("color") or ""),
            output_format=str(data.get("output_format") or ""),
            max_concurrency=int(data.get("max_concurrency") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.color:
            out["color"] = self.color
        if self.output_format:
            out["output_format"] = self.output_format
        if self.max_concurrency:
            out["max_concurrency"] = self.max_concurrency
        return out


def _config_dir() -> Path:
    return Path(platformdirs.user_config_dir(appname="jk", appauthor=False, roaming=True))


def default_path() -> Path:
    """Return the default on-disk location of the config file."""
    return _config_dir() / CONFIG_NAMES[0]


@dataclass
class Config:
    """The persisted CLI configuration."""

    version: int = CURRENT_VERSION
    active: str = ""
    contexts: dict[str, Context] = field(default_factory=dict)
    preferences: Preferences = field(default_factory=Preferences)
    path: Path | None = field(default=None, compare=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def _apply(self, data: Any) -> None:
        if data is None:
            return
        if not isinstance(data, dict):
            raise ValueError("decode config: top level must be a mapping")
        if "version" in data and data["version"] is not None:
            self.version = int(data["version"])
        if data.get("active"):
            self.active = str(data["active"])
        contexts = data.get("contexts") or {}
        if not isinstance(contexts, dict):
            raise ValueError("decode config: contexts must be a mapping")
        for name, entry in contexts.items():
            self.contexts[str(name)] = Context.from_dict(entry)
        if "preferences" in data:
            self.preferences = Preferences.from_dict(data["preferences"])

    def to_dict(self) -> dict[str, Any]:
        """Return the serialisable form, omitting empty fields."""
        out: dict[str, Any] = {"version": self.version}
        if self.active:
            out["active"] = self.active
        if self.contexts:
            out["contexts"] = {name: ctx.to_dict() for name, ctx in self.contexts.items()}
        prefs = self.preferences.to_dict()
        if prefs:
            out["preferences"] = prefs
        return out

    def save(self) -> None:
        """Write the configuration atomically, creating its directory if needed."""
        with self._lock:
            if self.path is None:
                self.path = default_path()
            directory = self.path.parent
            directory.mkdir(mode=0o700, parents=True, exist_ok=True)

            if self.version == 0:
                self.version = CURRENT_VERSION

            text = yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False)
            fd, tmp_name = tempfile.mkstemp(prefix=".config-", suffix=".yml", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.chmod(tmp_name, 0o600)
                os.replace(tmp_name, self.path)
            finally:
                with contextlib.suppress(FileNotFoundError):
                    os.remove(tmp_name)

    def set_context(self, name: str, ctx: Context) -> None:
        """Add or replace a context by name."""
        with self._lock:
            self.contexts[name] = ctx

    def remove_context(self, name: str) -> None:
        """Delete a named context, clearing it as active if it was."""
        with self._lock:
            self.contexts.pop(name, None)
            if self.active == name:
                self.active = ""

    def get_context(self, name: str) -> Context:
        """Return the named context or raise ContextNotFoundError."""
        with self._lock:
            try:
                return self.contexts[name]
            except KeyError:
                raise ContextNotFoundError(name) from None

    def set_active(self, name: str) -> None:
        """Select the active context; an empty name clears it."""
        with self._lock:
            if not name:
                self.active = ""
                return
            if name not in self.contexts:
                raise ContextNotFoundError(name)
            self.active = name

    def active_context(self) -> tuple[Context | None, str]:
        """Return the active context and its name, or (None, "") when unset."""
        with self._lock:
            if not self.active:
                return None, ""
            ctx = self.contexts.get(self.active)
            if ctx is None:
                raise ContextNotFoundError(self.active)
            return ctx, self.active


def load(base_dir: str | os.PathLike[str] | None = None) -> Config:
    """Load the configuration, returning defaults when no file exists.

    Both ``config.yaml`` and ``config.yml`` are accepted, in that order.
    """
    base = Path(base_dir) if base_dir is not None else _config_dir()
    cfg = Config()

    for name in CONFIG_NAMES:
        path = base / name
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            continue
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as err:
            raise ValueError(f"decode config: {err}") from err
        cfg._apply(data)
        cfg.path = path
        return cfg

    cfg.path = base / CONFIG_NAMES[0]
    return cfg