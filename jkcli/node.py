"""Inspecting and managing Jenkins build nodes."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

from jkcli.client import JenkinsClient, JenkinsError, status_text

_NODE_TREE = "computer[displayName,offline,temporarilyOffline,offlineCauseReason]"
_PATH_SEGMENT_SAFE = "$&+=:@"
_BUILT_IN_NAMES = frozenset({"master", "(master)", "built-in", "(built-in)"})
BUILT_IN_PATH_NAME = "(master)"


@dataclass(frozen=True)
class NodeInfo:
    """A Jenkins node and its availability."""

    name: str
    offline: bool = False
    temporarily_offline: bool = False
    offline_cause: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "offline": self.offline,
            "temporarilyOffline": self.temporarily_offline,
        }
        if self.offline_cause:
            out["offlineCause"] = self.offline_cause
        return out

    @property
    def state(self) -> str:
        """Human description such as ``offline (cordoned)``."""
        state = "offline" if self.offline else "online"
        if self.temporarily_offline:
            state += " (cordoned)"
        return state


def encode_node_name(name: str) -> str:
    """Return the URL path segment for a node, mapping built-in aliases to ``(master)``."""
    trimmed = name.strip()
    if trimmed in _BUILT_IN_NAMES:
        return BUILT_IN_PATH_NAME
    return quote(trimmed, safe=_PATH_SEGMENT_SAFE)


def is_built_in_node(name: str) -> bool:
    """Report whether ``name`` refers to the controller's built-in node."""
    return name.strip().lower() in _BUILT_IN_NAMES


def _payload(resp: Any) -> dict[str, Any]:
    if not 200 <= resp.status_code < 300:
        return {}
    try:
        data = resp.json()
    except ValueError as err:
        raise JenkinsError(f"decode node list: {err}") from err
    return data if isinstance(data, dict) else {}


def list_nodes(client: JenkinsClient) -> list[NodeInfo]:
    """Return every node known to the controller."""
    resp = client.request("GET", "/computer/api/json", params={"tree": _NODE_TREE})
    computers = _payload(resp).get("computer") or ()
    return [
        NodeInfo(
            name=str(entry.get("displayName") or ""),
            offline=bool(entry.get("offline", False)),
            temporarily_offline=bool(entry.get("temporarilyOffline", False)),
            offline_cause=str(entry.get("offlineCauseReason") or "").strip(),
        )
        for entry in computers
        if isinstance(entry, dict)
    ]


def toggle_node(client: JenkinsClient, name: str, offline: bool, message: str = "") -> str:
    """Mark a node temporarily offline (cordon) or back online, returning a summary."""
    if not name.strip():
        raise ValueError("node name required")

    params = {"offline": "true" if offline else "false"}
    if message:
        params["offlineMessage"] = message
    query = urlencode(sorted(params.items()))
    endpoint = f"/computer/{encode_node_name(name)}/toggleOffline?{query}"

    resp = client.request("POST", endpoint)
    if resp.status_code >= 300:
        raise JenkinsError(f"toggle failed: {status_text(resp)}")

    state = "cordoned" if offline else "online"
    return f"Node {name} marked {state}"


def delete_node(client: JenkinsClient, name: str) -> str:
    """Delete a node, refusing the built-in one, and return a summary."""
    name = name.strip()
    if not name:
        raise ValueError("node name required")
    if is_built_in_node(name):
        raise ValueError("cannot delete the built-in node")

    resp = client.request("POST", f"/computer/{encode_node_name(name)}/doDelete")
    if resp.status_code >= 300:
        raise JenkinsError(f"delete failed: {status_text(resp)}")
    return f"Deleted node {name}"


def format_nodes(nodes: Iterable[NodeInfo]) -> str:
    """Render nodes as tab-separated lines."""
    lines = []
    for node in nodes:
        fields = [node.name, node.state]
        if node.offline_cause:
            fields.append(node.offline_cause)
        lines.append("\t".join(fields))
    if not lines:
        return "No nodes found\n"
    return "".join(f"{line}\n" for line in lines)