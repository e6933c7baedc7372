"""Conversion of human job paths into Jenkins URL paths."""

from __future__ import annotations

from urllib.parse import quote

_JOB_SEGMENT = "job"
_PATH_SEGMENT_SAFE = "$&+=:@"


def encode_job_path(human: str) -> str:
    """Turn ``team/app/main`` into ``job/team/job/app/job/main``, escaping each segment."""
    trimmed = human.strip("/")
    if not trimmed:
        return ""
    return "/".join(
        f"{_JOB_SEGMENT}/{quote(segment, safe=_PATH_SEGMENT_SAFE)}"
        for segment in trimmed.split("/")
        if segment
    )