"""Inspecting and managing Jenkins plugins."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from jkcli.client import JenkinsClient, JenkinsError, status_text

_PATH_SEGMENT_SAFE = "$&+=:@"
_ATTR_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&#34;",
    "'": "&#39;",
    "\t": "&#x9;",
    "\n": "&#xA;",
    "\r": "&#xD;",
}


@dataclass(frozen=True)
class PluginRow:
    """An installed plugin."""

    name: str
    version: str = ""
    enabled: bool = False
    pinned: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "enabled": self.enabled,
            "pinned": self.pinned,
        }


def _escape_attr(value: str) -> str:
    return "".join(_ATTR_ESCAPES.get(ch, ch) for ch in value)


def build_install_xml(plugins: Iterable[str]) -> bytes:
    """Build the update-center install document; bare names get ``@latest``."""
    plugins = list(plugins)
    if not plugins:
        raise ValueError("at least one plugin required")

    entries = []
    for plugin in plugins:
        trimmed = plugin.strip()
        if not trimmed:
            continue
        if "@" not in trimmed:
            trimmed += "@latest"
        entries.append(trimmed)
    if not entries:
        raise ValueError("no valid plugin identifiers provided")

    lines = ["<jenkins>"]
    lines.extend(f'  <install plugin="{_escape_attr(entry)}"></install>' for entry in entries)
    lines.append("</jenkins>")
    return "\n".join(lines).encode("utf-8")


def list_plugins(client: JenkinsClient) -> list[PluginRow]:
    """Return the installed plugins."""
    resp = client.request("GET", "/pluginManager/api/json", params={"depth": "1"})
    if not 200 <= resp.status_code < 300:
        return []
    try:
        payload = resp.json()
    except ValueError as err:
        raise JenkinsError(f"decode plugin list: {err}") from err
    if not isinstance(payload, dict):
        return []
    return [
        PluginRow(
            name=str(entry.get("shortName") or ""),
            version=str(entry.get("version") or ""),
            enabled=bool(entry.get("enabled", False)),
            pinned=bool(entry.get("pinned", False)),
        )
        for entry in payload.get("plugins") or ()
        if isinstance(entry, dict)
    ]


def install_plugins(client: JenkinsClient, plugins: Iterable[str]) -> str:
    """Ask the update center to install plugins and return a summary."""
    payload = build_install_xml(plugins)
    resp = client.request(
        "POST",
        "/pluginManager/installNecessaryPlugins",
        data=payload,
        headers={"Content-Type": "text/xml"},
    )
    if resp.status_code >= 300:
        raise JenkinsError(f"install failed: {status_text(resp)}")
    return "Plugin installation triggered. Monitor Jenkins for progress."


def set_plugin_enabled(client: JenkinsClient, name: str, enable: bool) -> str:
    """Enable or disable a plugin and return a summary."""
    name = name.strip()
    if not name:
        raise ValueError("plugin name required")

    verb = "enable" if enable else "disable"
    path = f"/pluginManager/plugin/{quote(name, safe=_PATH_SEGMENT_SAFE)}/{verb}"
    resp = client.request("POST", path)
    if resp.status_code >= 300:
        raise JenkinsError(f"{verb} failed: {status_text(resp)}")
    return f"Plugin {name} {verb}d"


def format_plugins(rows: Iterable[PluginRow]) -> str:
    """Render plugins as tab-separated lines."""
    lines = []
    for row in rows:
        status = "enabled" if row.enabled else "disabled"
        if row.pinned:
            status += " (pinned)"
        lines.append(f"{row.name}\t{row.version}\t{status}")
    if not lines:
        return "No plugins installed\n"
    return "".join(f"{line}\n" for line in lines)