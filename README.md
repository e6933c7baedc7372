# jkcli

A Python library for working with Jenkins servers. It keeps named connection
contexts in a YAML configuration file, talks to Jenkins over its JSON API with
CSRF crumb handling and feature detection, and offers helpers for jobs, build
artifacts, nodes, plugins, credentials and the build queue. It also contains
a filter language for run metadata and a fuzzy matcher for job names.

## Contexts and configuration

A context (`jkcli.config.Context`) names a Jenkins server and how to reach it:
URL, username, proxy, CA bundle, whether to skip TLS verification. Contexts
live in `config.yaml` (or, failing that, `config.yml`) in a `jk` directory
under the user configuration directory; `load(base_dir)` reads another
directory instead when one is given.

```python
from jkcli.config import load
from jkcli.contexts import format_contexts, use_context

cfg = load(None)               # defaults when no file exists yet
use_context(cfg, "ci")         # raises ContextNotFoundError if unknown; saves the file
print(format_contexts(cfg))    # "* ci\thttps://ci.example.com", sorted by name
```

`Config` offers `set_context`, `remove_context` (which also clears the
active selection if it pointed there), `get_context` (raising
`ContextNotFoundError`), `set_active` (an empty name clears it) and
`active_context()`, which returns `(context, name)` or `(None, "")`.
`Config.save()` writes the file atomically with owner-only permissions and
leaves empty fields out.

## Talking to Jenkins

```python
from jkcli.client import client_for_context
from jkcli.jobs import list_jobs, format_jobs

client = client_for_context(cfg, "ci", "token")
jobs = list_jobs(client, "team/service")
print(format_jobs(jobs, "team/service"))
```

`client_for_context(cfg, context_name, token)` uses the active context when
no name is given. A `JenkinsClient` can also be built directly from a base
URL. On construction it probes the server for optional features; failures
there are only logged.

- `JenkinsClient.request(method, path, params, json, data, headers, stream)`
  returns a `requests.Response`. POST, PUT, PATCH and DELETE first fetch a
  crumb from the crumb issuer (skipped if the server has none) and are retried
  once with a fresh crumb on 401 or 403. Network failures raise
  `JenkinsError`.
- `JenkinsClient.capabilities()` returns a `Capabilities` record, refreshed
  at most once a minute; `refresh_capabilities()` probes at once. The
  detected features are sent back in the `X-JK-Features` header.

Job paths are written the human way, `team/app/main`, and turned into the
Jenkins URL form by `jkcli.jobpath.encode_job_path`:

```python
from jkcli.jobpath import encode_job_path

encode_job_path("folder name/job")   # "job/folder%20name/job/job"
```

`jkcli.jobs` also has `view_job` (the raw JSON of a job) and `format_job`.

## Artifacts

`jkcli.artifact.fetch_artifacts(client, job_path, build_number)` lists the
`ArtifactItem`s of a run. `download_artifacts(client, job_path, build_number,
pattern, output_dir, allow_empty, out)` downloads those matching a glob
(`**/*` by default; `**` spans directories, `*` and `?` do not, `[...]` and
`{a,b}` are supported) into an output directory, prints `Downloaded <path>`
for each and returns the paths. Paths that would escape the directory are
refused with `UnsafeArtifactPathError`; when nothing matches,
`NoArtifactsMatchedError` (with `exit_code` 3) is raised unless
`allow_empty` is set.

## Nodes, plugins, credentials and the queue

- `jkcli.node`: `list_nodes`, `toggle_node` (cordon and uncordon),
  `delete_node` (the built-in node cannot be deleted), `format_nodes`.
- `jkcli.plugin`: `list_plugins`, `install_plugins` (a bare name means
  `name@latest`), `set_plugin_enabled`, `build_install_xml`, `format_plugins`.
- `jkcli.cred`: `fetch_credentials` in `system` or `folder` scope (trying the
  `/jk/api/credentials` endpoint first, then the core credentials API),
  `create_secret`, `delete_credential`, `format_credentials`.
- `jkcli.queue`: `list_queue`, `cancel_queue_item`, `format_queue`.

Actions return a one-line summary such as `Deleted node agent-1`; failures
reported by Jenkins raise `JenkinsError`, bad arguments raise `ValueError`.

## Filtering runs

`jkcli.filter` parses expressions such as `result=SUCCESS`,
`param.CHART_NAME~nova` or `duration<=90m` and evaluates them against a
mapping of run fields:

```python
from datetime import timedelta
from jkcli.filter import parse, evaluate

filters = parse(["result=SUCCESS", "duration<=90m"])
evaluate({"result": "SUCCESS", "duration": timedelta(minutes=75)}, filters, False)  # True
```

Operators are listed by `operators()` and keys by `allowed_keys()`; unknown
keys raise `UnsupportedKeyError`. `~=` is a regular expression only when
`allow_regex` is true, otherwise a substring test. `parse_duration` accepts
`15m`, `2h`, day and week suffixes (`1.5d`, `2w`) and plain millisecond
counts. `is_likely_secret` flags parameter names such as `API_TOKEN`.

## Fuzzy search

```python
from jkcli.fuzzy import search, extract_values

extract_values(search("ada", ["Tools/ada/master", "ada-service"], 5))
```

Results are ordered best first, with shorter names winning ties.

## Help text and logging

`jkcli.helpdoc` holds the documented exit codes (`default_exit_codes()`) and
helpers for sectioned help output (`collect_examples`,
`command_label_width`, `format_command_section`).

`jkcli.logsetup.configure(level, stream)` sets up the package logger once,
writing one JSON object per line; with no level given it reads `JK_LOG`
(`trace`, `debug`, `info`, `warn`, `error`) and falls back to `info`.

## What this package does not do

- It installs no command-line program; everything is used from Python.
- It does not store API tokens: pass the token to `client_for_context` or
  `JenkinsClient` yourself.
- It has no helpers for starting or listing runs, reading console logs, test
  reports or searching build history; use `JenkinsClient.request` for those.