"""Listing and downloading build artifacts."""

from __future__ import annotations

import contextlib
import os
import posixpath
import re
import shutil
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from typing import IO, Any, BinaryIO
from urllib.parse import quote

from jkcli.client import JenkinsClient, JenkinsError
from jkcli.jobpath import encode_job_path

DEFAULT_PATTERN = "**/*"
_ARTIFACT_TREE = "artifacts[fileName,relativePath,size]"
_PATH_SEGMENT_SAFE = "$&+=:@"
_BAD_PATTERN = "syntax error in pattern"


@dataclass(frozen=True)
class ArtifactItem:
    """An archived file of a build."""

    file_name: str
    relative_path: str
    size: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArtifactItem:
        return cls(
            file_name=str(data.get("fileName") or ""),
            relative_path=str(data.get("relativePath") or ""),
            size=int(data.get("size") or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"fileName": self.file_name, "relativePath": self.relative_path, "size": self.size}


class UnsafeArtifactPathError(ValueError):
    """Raised when an artifact path would land outside the output directory."""


class NoArtifactsMatchedError(LookupError):
    """Raised when no artifact matches the requested pattern."""

    exit_code = 3


def sanitize_artifact_path(
    output_dir_abs: str, output_dir: str, relative_path: str
) -> tuple[str, str, str]:
    """Return the destination, display path and cleaned relative path of an artifact."""
    clean_rel = posixpath.normpath(relative_path.replace("\\", "/"))
    if (
        clean_rel == "."
        or clean_rel == ".."
        or clean_rel.startswith("../")
        or "/../" in clean_rel
    ):
        raise UnsafeArtifactPathError(f'unsafe artifact path "{relative_path}"')
    if clean_rel.startswith("/"):
        raise UnsafeArtifactPathError(f'artifact path escapes output dir: "{relative_path}"')

    parts = clean_rel.split("/")
    dest_path = os.path.normpath(os.path.join(output_dir_abs, *parts))
    try:
        rel = os.path.relpath(dest_path, output_dir_abs)
    except ValueError:
        rel = ".."
    if rel.startswith(".."):
        raise UnsafeArtifactPathError(f'artifact path escapes output dir: "{relative_path}"')

    display_path = os.path.normpath(os.path.join(output_dir, *parts))
    return dest_path, display_path, clean_rel


def ensure_artifact_response(rel: str, resp: Any) -> BinaryIO:
    """Return the raw body of a successful download; drain and close it otherwise."""
    body = getattr(resp, "raw", None)
    if not 200 <= resp.status_code < 300:
        if body is not None:
            with contextlib.suppress(Exception):
                body.read()
            with contextlib.suppress(Exception):
                body.close()
        status = f"{resp.status_code} {getattr(resp, 'reason', '') or ''}".strip()
        raise JenkinsError(f'download "{rel}" failed: {status}')
    if body is None:
        raise JenkinsError("artifact response empty")
    return body


def save_artifact(dest_path: str, body: BinaryIO) -> None:
    """Copy ``body`` into ``dest_path``, closing the body and removing the file on failure."""
    try:
        with open(dest_path, "wb") as handle:
            shutil.copyfileobj(body, handle)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.remove(dest_path)
        raise
    finally:
        body.close()


_GLOB_PIECES = re.compile(r"\\.?|\[[!^]?\]?[^\]]*\]|[*?{},\[]|[^\\*?\[{},]+", re.S)


def _translate_class(body: str) -> str:
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]
    if not body:
        raise ValueError(_BAD_PATTERN)
    escaped = "".join("-" if ch == "-" else re.escape(ch) for ch in body)
    return f"[^/{escaped}]" if negate else f"[{escaped}]"


def _translate_segment(segment: str) -> str:
    parts: list[str] = []
    depth = 0
    for match in _GLOB_PIECES.finditer(segment):
        piece = match.group()
        if piece.startswith("\\"):
            if len(piece) == 1:
                raise ValueError(_BAD_PATTERN)
            parts.append(re.escape(piece[1]))
        elif piece == "*":
            parts.append("[^/]*")
        elif piece == "?":
            parts.append("[^/]")
        elif piece == "[":
            raise ValueError(_BAD_PATTERN)
        elif piece.startswith("["):
            parts.append(_translate_class(piece[1:-1]))
        elif piece == "{":
            depth += 1
            parts.append("(?:")
        elif piece == "," and depth:
            parts.append("|")
        elif piece == "}" and depth:
            depth -= 1
            parts.append(")")
        else:
            parts.append(re.escape(piece))
    if depth:
        raise ValueError(_BAD_PATTERN)
    return "".join(parts)


def _glob_to_regex(pattern: str) -> str:
    segments = pattern.split("/")
    last = len(segments) - 1
    out: list[str] = []
    sep = ""
    for index, segment in enumerate(segments):
        if segment == "**":
            if index == last:
                out.append("(?:/.*)?" if sep else ".*")
            else:
                out.append(sep + "(?:.*/)?")
                sep = ""
            continue
        out.append(sep + _translate_segment(segment))
        sep = "/"
    return "".join(out)


def match_pattern(pattern: str, path: str) -> bool:
    """Match ``path`` against a glob where ``**`` spans directories and ``*`` does not."""
    try:
        compiled = re.compile(_glob_to_regex(pattern), re.S)
    except re.error as err:
        raise ValueError(_BAD_PATTERN) from err
    return compiled.fullmatch(path) is not None


def _build_number(value: Any) -> int:
    return int(str(value).strip())


def fetch_artifacts(client: JenkinsClient, job_path: str, build_number: Any) -> list[ArtifactItem]:
    """Return the artifacts archived by a build."""
    number = _build_number(build_number)
    encoded = encode_job_path(job_path)
    if not encoded:
        raise ValueError("job path is required")

    resp = client.request("GET", f"/{encoded}/{number}/api/json", params={"tree": _ARTIFACT_TREE})
    if not 200 <= resp.status_code < 300:
        return []
    try:
        payload = resp.json()
    except ValueError as err:
        raise JenkinsError(f"decode artifact list: {err}") from err
    if not isinstance(payload, dict):
        return []
    return [ArtifactItem.from_dict(entry) for entry in payload.get("artifacts") or ()]


def _matching(pattern: str, items: Iterable[ArtifactItem]) -> list[ArtifactItem]:
    return [item for item in items if match_pattern(pattern, item.relative_path)]


def download_artifacts(
    client: JenkinsClient,
    job_path: str,
    build_number: Any,
    pattern: str = DEFAULT_PATTERN,
    output_dir: str = ".",
    allow_empty: bool = False,
    out: IO[str] | None = None,
) -> list[str]:
    """Download the artifacts matching ``pattern`` and return their display paths."""
    out = out if out is not None else sys.stdout
    items = fetch_artifacts(client, job_path, build_number)

    matched = _matching(pattern or DEFAULT_PATTERN, items)
    if not matched:
        if allow_empty:
            print("No artifacts matched pattern", file=out)
            return []
        raise NoArtifactsMatchedError("no artifacts matched pattern")

    number = _build_number(build_number)
    base = f"/{encode_job_path(job_path)}/{number}/artifact"
    output_dir_abs = os.path.abspath(output_dir)

    downloaded: list[str] = []
    for artifact in matched:
        dest_path, display_path, clean_rel = sanitize_artifact_path(
            output_dir_abs, output_dir, artifact.relative_path
        )
        os.makedirs(os.path.dirname(dest_path), mode=0o755, exist_ok=True)

        escaped = "/".join(quote(seg, safe=_PATH_SEGMENT_SAFE) for seg in clean_rel.split("/"))
        resp = client.request("GET", f"{base}/{escaped}", stream=True)
        body = ensure_artifact_response(artifact.relative_path, resp)
        if hasattr(body, "decode_content"):
            body.decode_content = True
        save_artifact(dest_path, body)
        print(f"Downloaded {display_path}", file=out)
        downloaded.append(display_path)
    return downloaded