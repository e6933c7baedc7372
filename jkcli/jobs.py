"""Listing and inspecting Jenkins jobs."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from jkcli.client import JenkinsClient, JenkinsError
from jkcli.jobpath import encode_job_path

_JOB_TREE = "jobs[name,url,color]"
_SEARCH_HINT = "Hint: use `jk search --job-glob '*<pattern>*'` to discover job paths by name"


@dataclass(frozen=True)
class JobSummary:
    """A job as listed in a folder."""

    name: str
    url: str = ""
    color: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> JobSummary:
        return cls(
            name=str(data.get("name") or ""),
            url=str(data.get("url") or ""),
            color=str(data.get("color") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "url": self.url, "color": self.color}


def _json_dict(resp: Any, what: str) -> dict[str, Any]:
    if not 200 <= resp.status_code < 300:
        return {}
    try:
        data = resp.json()
    except ValueError as err:
        raise JenkinsError(f"decode {what}: {err}") from err
    return data if isinstance(data, dict) else {}


def _api_path(job_path: str) -> str:
    if not job_path:
        return "/api/json"
    return f"/{encode_job_path(job_path)}/api/json"


def list_jobs(client: JenkinsClient, folder: str = "") -> list[JobSummary]:
    """Return the jobs in ``folder`` (the top level when empty), sorted by name."""
    resp = client.request("GET", _api_path(folder), params={"tree": _JOB_TREE})
    payload = _json_dict(resp, "job list")
    jobs = [
        JobSummary.from_dict(entry)
        for entry in payload.get("jobs") or ()
        if isinstance(entry, dict)
    ]
    jobs.sort(key=lambda job: job.name)
    return jobs


def view_job(client: JenkinsClient, job_path: str) -> dict[str, Any]:
    """Return the raw JSON description of a job."""
    resp = client.request("GET", f"/{encode_job_path(job_path)}/api/json")
    return _json_dict(resp, "job")


def format_jobs(jobs: Iterable[JobSummary], folder: str = "") -> str:
    """Render jobs as tab-separated name and URL lines."""
    lines = [f"{job.name}\t{job.url}\n" for job in jobs]
    if lines:
        return "".join(lines)
    heading = f"No jobs found in {folder}\n" if folder else "No jobs found\n"
    return heading + _SEARCH_HINT + "\n"


def format_job(data: Mapping[str, Any]) -> str:
    """Render the name, description and URL of a job."""
    name = data.get("name")
    lines = [f"Name: {'<nil>' if name is None else name}\n"]
    description = data.get("description")
    if isinstance(description, str) and description:
        lines.append(f"Description: {description}\n")
    url = data.get("url")
    if isinstance(url, str):
        lines.append(f"URL: {url}\n")
    return "".join(lines)