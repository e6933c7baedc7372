import io
import os
from types import SimpleNamespace

import pytest
import responses

from jkcli.artifact import (
    ArtifactItem,
    NoArtifactsMatchedError,
    UnsafeArtifactPathError,
    download_artifacts,
    ensure_artifact_response,
    fetch_artifacts,
    match_pattern,
    sanitize_artifact_path,
    save_artifact,
)
from jkcli.client import JenkinsClient, JenkinsError

BASE = "https://jenkins.example.com"
LIST_URL = BASE + "/job/team/job/app/7/api/json"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture
def client():
    return JenkinsClient(BASE, username="user", token="token", probe_capabilities=False)


def test_sanitize_disallows_traversal(tmp_path):
    out = str(tmp_path)
    with pytest.raises(UnsafeArtifactPathError, match="unsafe artifact path"):
        sanitize_artifact_path(out, out, "../escape/outside.txt")


def test_sanitize_allows_nested_path(tmp_path):
    output_dir_abs = str(tmp_path)
    output_dir = "downloads"
    dest, display, clean = sanitize_artifact_path(
        output_dir_abs, output_dir, "nested/file with space.txt"
    )
    assert clean == "nested/file with space.txt"
    assert dest == os.path.join(output_dir_abs, "nested", "file with space.txt")
    assert display == os.path.join(output_dir, "nested", "file with space.txt")


@pytest.mark.parametrize("rel", [".", "", "..", "a/../../b"])
def test_sanitize_rejects_unsafe(tmp_path, rel):
    with pytest.raises(UnsafeArtifactPathError, match="unsafe artifact path"):
        sanitize_artifact_path(str(tmp_path), ".", rel)


def test_sanitize_rejects_absolute(tmp_path):
    with pytest.raises(UnsafeArtifactPathError, match="escapes output dir"):
        sanitize_artifact_path(str(tmp_path), ".", "/etc/hosts")


def test_sanitize_normalises_backslashes(tmp_path):
    _, _, clean = sanitize_artifact_path(str(tmp_path), ".", "dir\\sub\\file.txt")
    assert clean == "dir/sub/file.txt"


def test_ensure_response_errors_on_non_success():
    body = io.BytesIO(b"failure")
    resp = SimpleNamespace(status_code=404, reason="Not Found", raw=body)
    with pytest.raises(JenkinsError, match="404 Not Found"):
        ensure_artifact_response("bad.txt", resp)
    assert body.closed is True


def test_ensure_response_returns_body_on_success():
    body = io.BytesIO(b"data")
    resp = SimpleNamespace(status_code=200, reason="OK", raw=body)
    assert ensure_artifact_response("good.txt", resp) is body
    assert body.closed is False


def test_ensure_response_empty_body():
    resp = SimpleNamespace(status_code=200, reason="OK", raw=None)
    with pytest.raises(JenkinsError, match="artifact response empty"):
        ensure_artifact_response("empty.txt", resp)


def test_save_artifact_writes_and_closes(tmp_path):
    dest = tmp_path / "out.bin"
    body = io.BytesIO(b"payload")
    save_artifact(str(dest), body)
    assert dest.read_bytes() == b"payload"
    assert body.closed is True


class _FailingBody(io.RawIOBase):
    def readable(self):
        return True

    def readinto(self, buffer):
        raise OSError("boom")


def test_save_artifact_removes_file_on_failure(tmp_path):
    dest = tmp_path / "out.bin"
    body = _FailingBody()
    with pytest.raises(OSError, match="boom"):
        save_artifact(str(dest), body)
    assert not dest.exists()
    assert body.closed is True


@pytest.mark.parametrize(
    "pattern,path,expected",
    [
        ("**/*", "a.txt", True),
        ("**/*", "a/b/c.txt", True),
        ("**/*.xml", "report.xml", True),
        ("**/*.xml", "x/y/report.xml", True),
        ("**/*.xml", "a.txt", False),
        ("*.txt", "dir/a.txt", False),
        ("bin/**", "bin", True),
        ("bin/**", "bin/tools/jk", True),
        ("{a,b}.txt", "b.txt", True),
        ("{a,b}.txt", "c.txt", False),
        ("file?.log", "file1.log", True),
        ("[!x]*", "abc", True),
        ("[!x]*", "xyz", False),
    ],
)
def test_match_pattern(pattern, path, expected):
    assert match_pattern(pattern, path) is expected


@pytest.mark.parametrize("pattern", ["[", "{a,b", "a\\"])
def test_match_pattern_bad(pattern):
    with pytest.raises(ValueError, match="syntax error in pattern"):
        match_pattern(pattern, "a")


def test_artifact_item_round_trip():
    data = {"fileName": "jk", "relativePath": "bin/jk", "size": 42}
    assert ArtifactItem.from_dict(data).to_dict() == data


def test_fetch_artifacts(rsps, client):
    rsps.add(
        responses.GET,
        LIST_URL,
        json={"artifacts": [{"fileName": "jk", "relativePath": "bin/jk", "size": 3}]},
    )
    items = fetch_artifacts(client, "team/app", "7")
    assert items == [ArtifactItem("jk", "bin/jk", 3)]
    assert "tree=" in rsps.calls[0].request.url


def test_fetch_artifacts_bad_build_number(client):
    with pytest.raises(ValueError):
        fetch_artifacts(client, "team/app", "abc")


def test_fetch_artifacts_requires_job_path(client):
    with pytest.raises(ValueError, match="job path is required"):
        fetch_artifacts(client, "/", "7")


def test_download_artifacts(rsps, client, tmp_path):
    rsps.add(
        responses.GET,
        LIST_URL,
        json={
            "artifacts": [
                {"fileName": "unit.xml", "relativePath": "reports/unit.xml", "size": 5},
                {"fileName": "jk", "relativePath": "bin/jk", "size": 3},
            ]
        },
    )
    rsps.add(
        responses.GET,
        BASE + "/job/team/job/app/7/artifact/reports/unit.xml",
        body=b"<xml>",
    )
    out = io.StringIO()
    paths = download_artifacts(client, "team/app", "7", "**/*.xml", str(tmp_path), False, out)
    expected = os.path.join(str(tmp_path), "reports", "unit.xml")
    assert paths == [expected]
    assert (tmp_path / "reports" / "unit.xml").read_bytes() == b"<xml>"
    assert out.getvalue() == f"Downloaded {expected}\n"
    assert not (tmp_path / "bin").exists()


def test_download_failure_raises(rsps, client, tmp_path):
    rsps.add(
        responses.GET,
        LIST_URL,
        json={"artifacts": [{"fileName": "jk", "relativePath": "bin/jk", "size": 3}]},
    )
    rsps.add(responses.GET, BASE + "/job/team/job/app/7/artifact/bin/jk", status=404)
    with pytest.raises(JenkinsError, match="failed: 404"):
        download_artifacts(client, "team/app", "7", "**/*", str(tmp_path), False, io.StringIO())


def test_download_no_match_raises(rsps, client, tmp_path):
    rsps.add(responses.GET, LIST_URL, json={"artifacts": []})
    with pytest.raises(NoArtifactsMatchedError) as excinfo:
        download_artifacts(client, "team/app", "7", "**/*", str(tmp_path), False, io.StringIO())
    assert excinfo.value.exit_code == 3


def test_download_no_match_allowed(rsps, client, tmp_path):
    rsps.add(responses.GET, LIST_URL, json={"artifacts": []})
    out = io.StringIO()
    result = download_artifacts(client, "team/app", "7", "", str(tmp_path), True, out)
    assert result == []
    assert out.getvalue() == "No artifacts matched pattern\n"