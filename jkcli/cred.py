"""Listing, creating and deleting Jenkins credentials."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from jkcli.client import JenkinsClient, JenkinsError, status_text
from jkcli.jobpath import encode_job_path

_PATH_SEGMENT_SAFE = "$&+=:@"
_CORE_TREE = "credentials[id,typeName,displayName,description]"
_STRING_CREDENTIALS_CLASS = "org.jenkinsci.plugins.plaincredentials.impl.StringCredentialsImpl"
_SCOPES = ("system", "folder")


class _JKAPINotFound(Exception):
    """The jk credentials endpoint is not installed."""


@dataclass(frozen=True)
class CredentialItem:
    """A credential as listed by Jenkins."""

    id: str
    type: str = ""
    scope: str = ""
    path: str = ""
    description: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CredentialItem:
        return cls(
            id=str(data.get("id") or ""),
            type=str(data.get("type") or ""),
            scope=str(data.get("scope") or ""),
            path=str(data.get("path") or ""),
            description=str(data.get("description") or ""),
            updated_at=str(data.get("updatedAt") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "type": self.type, "scope": self.scope}
        if self.path:
            out["path"] = self.path
        if self.description:
            out["description"] = self.description
        if self.updated_at:
            out["updatedAt"] = self.updated_at
        return out


@dataclass
class CredentialsList:
    """A page of credentials."""

    items: list[CredentialItem] = field(default_factory=list)
    next_cursor: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"items": [item.to_dict() for item in self.items]}
        if self.next_cursor:
            out["nextCursor"] = self.next_cursor
        return out


def normalize_scope(scope: str) -> str:
    """Return ``system`` or ``folder``; an empty scope means ``system``."""
    value = (scope or "").strip().lower() or "system"
    if value not in _SCOPES:
        raise ValueError(f'unsupported scope "{scope}"')
    return value


def first_non_empty(*args: str) -> str:
    """Return the first value that is not blank, or an empty string."""
    return next((value for value in args if value and value.strip()), "")


def _json_dict(resp: Any, what: str) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError as err:
        raise JenkinsError(f"decode {what}: {err}") from err
    return data if isinstance(data, dict) else {}


def _fetch_from_jk_api(client: JenkinsClient, scope: str, folder: str) -> CredentialsList:
    params = {"scope": scope}
    if scope == "folder":
        params["folderPath"] = folder
    resp = client.request("GET", "/jk/api/credentials", params=params)
    if resp.status_code == 200:
        payload = _json_dict(resp, "credentials")
        return CredentialsList(
            items=[
                CredentialItem.from_dict(entry)
                for entry in payload.get("items") or ()
                if isinstance(entry, dict)
            ],
            next_cursor=str(payload.get("nextCursor") or ""),
        )
    if resp.status_code == 404:
        raise _JKAPINotFound
    raise JenkinsError(f"jk credentials endpoint: {status_text(resp)}")


def _fetch_from_core_api(client: JenkinsClient, scope: str, folder: str) -> CredentialsList:
    target = "/credentials/store/system/domain/_/api/json"
    display_path = "system"
    if scope == "folder":
        encoded = encode_job_path(folder)
        if not encoded:
            raise ValueError("invalid folder path")
        target = f"/{encoded}/credentials/store/folder/domain/_/api/json"
        display_path = folder

    resp = client.request("GET", target, params={"tree": _CORE_TREE})
    if resp.status_code >= 300:
        raise JenkinsError(f"credentials endpoint: {status_text(resp)}")
    payload = _json_dict(resp, "credentials")
    return CredentialsList(
        items=[
            CredentialItem(
                id=str(entry.get("id") or ""),
                type=str(entry.get("typeName") or ""),
                scope=scope,
                path=display_path,
                description=first_non_empty(
                    str(entry.get("description") or ""), str(entry.get("displayName") or "")
                ),
            )
            for entry in payload.get("credentials") or ()
            if isinstance(entry, dict)
        ]
    )


def fetch_credentials(client: JenkinsClient, scope: str = "system", folder: str = "") -> CredentialsList:
    """List credentials, preferring the jk endpoint and falling back to the core API."""
    scope = normalize_scope(scope)
    if scope == "folder" and not folder.strip():
        raise ValueError("folder path required when scope=folder")
    try:
        return _fetch_from_jk_api(client, scope, folder)
    except _JKAPINotFound:
        return _fetch_from_core_api(client, scope, folder)


def _store_base(scope: str, folder: str, system_path: str, folder_suffix: str) -> str:
    if scope != "folder":
        return system_path
    encoded = encode_job_path(folder)
    if not encoded:
        raise ValueError("folder path required when scope=folder")
    return f"/{encoded}{folder_suffix}"


def create_secret(
    client: JenkinsClient,
    scope: str,
    folder: str,
    cred_id: str,
    description: str,
    secret: str,
) -> str:
    """Create a secret-text credential and return a summary."""
    scope = normalize_scope(scope)
    if not cred_id.strip():
        raise ValueError("--id is required")
    if not secret:
        raise ValueError("secret value cannot be empty")

    path = _store_base(
        scope,
        folder,
        "/credentials/store/system/domain/_/createCredentials",
        "/credentials/store/folder/domain/_/createCredentials",
    )
    body = {
        "": "0",
        "credentials": {
            "scope": "GLOBAL",
            "id": cred_id,
            "description": description,
            "$class": _STRING_CREDENTIALS_CLASS,
            "secret": secret,
        },
    }
    resp = client.request("POST", path, json=body)
    if resp.status_code >= 300:
        raise JenkinsError(f"create credential failed: {status_text(resp)}")
    return f"Created credential {cred_id} in {scope} scope"


def delete_credential(client: JenkinsClient, scope: str, folder: str, cred_id: str) -> str:
    """Delete a credential and return a summary."""
    scope = normalize_scope(scope)
    if not cred_id.strip():
        raise ValueError("credential id required")

    base = _store_base(
        scope,
        folder,
        "/credentials/store/system/domain/_/credential",
        "/credentials/store/folder/domain/_/credential",
    )
    path = f"{base}/{quote(cred_id, safe=_PATH_SEGMENT_SAFE)}/doDelete"
    resp = client.request("POST", path)
    if resp.status_code >= 300:
        raise JenkinsError(f"delete failed: {status_text(resp)}")
    return f"Deleted credential {cred_id}"


def format_credentials(data: CredentialsList | Iterable[CredentialItem]) -> str:
    """Render credentials as tab-separated lines."""
    items = data.items if isinstance(data, CredentialsList) else list(data)
    if not items:
        return "No credentials found\n"
    lines = []
    for item in items:
        fields = [item.id, item.type]
        if item.path:
            fields.append(item.path)
        lines.append("\t".join(fields) + "\n")
    return "".join(lines)