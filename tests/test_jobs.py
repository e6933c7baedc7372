from urllib.parse import parse_qs, urlsplit

import pytest
import responses

from jkcli.client import JenkinsClient
from jkcli.jobpath import encode_job_path
from jkcli.jobs import JobSummary, format_job, format_jobs, list_jobs, view_job

BASE = "http://jenkins.example.com"


@pytest.fixture
def rsps():
    with responses.RequestsMock() as mock:
        yield mock


@pytest.fixture
def client():
    return JenkinsClient(BASE, username="user", token="token", probe_capabilities=False)


def test_list_jobs_sorted_by_name(rsps, client):
    rsps.add(
        responses.GET,
        BASE + "/api/json",
        json={"jobs": [{"name": "zeta", "url": "u2"}, {"name": "alpha", "url": "u1", "color": "blue"}]},
    )
    jobs = list_jobs(client)
    assert [job.name for job in jobs] == ["alpha", "zeta"]
    assert jobs[0] == JobSummary(name="alpha", url="u1", color="blue")
    query = parse_qs(urlsplit(rsps.calls[0].request.url).query)
    assert query["tree"] == ["jobs[name,url,color]"]


def test_list_jobs_in_folder_uses_encoded_path(rsps, client):
    url = f"{BASE}/{encode_job_path('team/app')}/api/json"
    rsps.add(responses.GET, url, json={"jobs": [{"name": "main", "url": "x"}]})
    jobs = list_jobs(client, "team/app")
    assert [job.name for job in jobs] == ["main"]
    assert urlsplit(rsps.calls[0].request.url).path == urlsplit(url).path


def test_list_jobs_error_status_yields_empty(rsps, client):
    rsps.add(responses.GET, BASE + "/api/json", status=500)
    assert list_jobs(client) == []


def test_format_jobs_rows():
    jobs = [JobSummary("a", "http://x/a"), JobSummary("b", "http://x/b")]
    assert format_jobs(jobs) == "a\thttp://x/a\nb\thttp://x/b\n"


def test_format_jobs_empty_without_folder():
    text = format_jobs([])
    assert text.startswith("No jobs found\n")
    assert "jk search --job-glob" in text


def test_format_jobs_empty_with_folder():
    text = format_jobs([], "team")
    assert text.splitlines()[0] == "No jobs found in team"
    assert text.endswith("\n")


def test_view_job_and_format(rsps, client):
    url = f"{BASE}/{encode_job_path('team/app')}/api/json"
    rsps.add(responses.GET, url, json={"name": "app", "description": "Builds", "url": "http://x/app"})
    data = view_job(client, "team/app")
    assert data["name"] == "app"
    assert format_job(data) == "Name: app\nDescription: Builds\nURL: http://x/app\n"


def test_format_job_missing_fields():
    assert format_job({}) == "Name: <nil>\n"
    assert format_job({"name": "x", "description": ""}) == "Name: x\n"


def test_job_summary_round_trip():
    job = JobSummary("n", "u", "red")
    assert JobSummary.from_dict(job.to_dict()) == job