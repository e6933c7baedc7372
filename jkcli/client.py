"""Authenticated HTTP access to a Jenkins controller."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, NamedTuple
from urllib.parse import urlsplit, urlunsplit

import requests
from requests.adapters import HTTPAdapter

from jkcli.config import Config, Context
from jkcli.logsetup import get_logger

CRUMB_ENDPOINT = "/crumbIssuer/api/json"
STATUS_ENDPOINT = "/jk/api/status"
EVENTS_PROBE_PATH = "/sse-gateway/stats"
PROMETHEUS_PROBE = "/prometheus"
DEFAULT_USER_AGENT = "jk"
HEADER_JK_CLIENT = "X-JK-Client"
HEADER_JK_FEATURES = "X-JK-Features"
DEFAULT_FEATURES = "core"
CAPABILITY_CACHE_TTL = 60.0
DEFAULT_TIMEOUT = 30.0
RETRY_COUNT = 2
CLIENT_VERSION = "dev"

_CRUMB_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class JenkinsError(Exception):
    """Raised when Jenkins cannot be reached or answers with an error."""


@dataclass(frozen=True)
class Capabilities:
    """Feature detection results for a Jenkins controller."""

    runs_facade: bool = False
    credential_facade: bool = False
    events: bool = False
    prometheus: bool = False
    sse_gateway: bool = False


class _Crumb(NamedTuple):
    field: str
    value: str


def needs_crumb(method: str) -> bool:
    """Report whether requests with this HTTP method need a CSRF crumb."""
    return method.upper() in _CRUMB_METHODS


def enumerate_features(features: Any) -> list[str]:
    """Normalise advertised feature names, dropping blanks."""
    normalized = (str(feature).strip().lower() for feature in features or ())
    return [feature for feature in normalized if feature]


def compose_features_header(caps: Capabilities) -> str:
    """Build the value of the features header sent with every request."""
    flags = (
        (True, DEFAULT_FEATURES),
        (caps.runs_facade, "runs"),
        (caps.credential_facade, "credentials"),
        (caps.events, "events"),
        (caps.sse_gateway, "sse"),
        (caps.prometheus, "prometheus"),
    )
    return ",".join(name for enabled, name in flags if enabled)


def status_text(resp: requests.Response) -> str:
    """Return the status line of a response, such as ``404 Not Found``."""
    return f"{resp.status_code} {resp.reason or ''}".strip()


class JenkinsClient:
    """A session bound to one Jenkins controller, with crumb and capability handling."""

    def __init__(
        self,
        base_url: str,
        *,
        username: str = "",
        token: str = "",
        context_name: str = "",
        context: Context | None = None,
        insecure: bool = False,
        proxy: str = "",
        ca_file: str = "",
        probe_capabilities: bool = True,
    ) -> None:
        self.base_url = base_url.removesuffix("/")
        self.context_name = context_name
        self.context = context

        session = requests.Session()
        session.mount("http://", HTTPAdapter(max_retries=RETRY_COUNT))
        session.mount("https://", HTTPAdapter(max_retries=RETRY_COUNT))
        session.headers.update(
            {
                HEADER_JK_CLIENT: CLIENT_VERSION,
                HEADER_JK_FEATURES: DEFAULT_FEATURES,
                "User-Agent": f"{DEFAULT_USER_AGENT}/{CLIENT_VERSION}",
                "Accept": "application/json",
            }
        )
        session.auth = (username, token)
        if proxy:
            session.proxies = {"http": proxy, "https": proxy}
        if insecure:
            session.verify = False
        if ca_file:
            session.verify = _checked_ca_file(ca_file)
        self.session = session

        self._crumb: _Crumb | None = None
        self._crumb_unsupported = False
        self._crumb_lock = threading.Lock()
        self._capabilities = Capabilities()
        self._last_probe: float | None = None
        self._cap_lock = threading.Lock()

        if probe_capabilities:
            try:
                self.refresh_capabilities()
            except JenkinsError as err:
                get_logger().warning("capability detection failed: %s", err)

    def _url(self, path: str) -> str:
        if path.startswith("/"):
            return self.base_url + path
        return f"{self.base_url}/{path}"

    def request(
        self,
        method: str,
        path: str,
        params: Any = None,
        json: Any = None,
        data: Any = None,
        headers: dict[str, str] | None = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send a request, attaching a crumb to mutating methods and retrying once on 401/403."""
        return self._execute(method.upper(), path, params, json, data, headers, stream, True)

    def _execute(
        self,
        method: str,
        path: str,
        params: Any,
        json: Any,
        data: Any,
        headers: dict[str, str] | None,
        stream: bool,
        allow_retry: bool,
    ) -> requests.Response:
        request_headers = dict(headers or {})
        mutating = needs_crumb(method)
        if mutating:
            crumb = self._ensure_crumb()
            if crumb is not None:
                request_headers[crumb.field] = crumb.value

        try:
            resp = self.session.request(
                method,
                self._url(path),
                params=params,
                json=json,
                data=data,
                headers=request_headers,
                stream=stream,
                timeout=None if stream else DEFAULT_TIMEOUT,
            )
        except requests.RequestException as err:
            raise JenkinsError(f"{method} {path}: {err}") from err

        if allow_retry and mutating and resp.status_code in (401, 403):
            resp.close()
            self._clear_crumb()
            return self._execute(method, path, params, json, data, headers, stream, False)
        return resp

    def _ensure_crumb(self) -> _Crumb | None:
        with self._crumb_lock:
            if self._crumb is not None:
                return self._crumb
            if self._crumb_unsupported:
                return None

            try:
                resp = self.session.get(self._url(CRUMB_ENDPOINT), timeout=DEFAULT_TIMEOUT)
            except requests.RequestException as err:
                raise JenkinsError(f"fetch crumb: {err}") from err

            if resp.status_code == 200:
                try:
                    payload = resp.json()
                except ValueError as err:
                    raise JenkinsError(f"fetch crumb: {err}") from err
                if not isinstance(payload, dict):
                    payload = {}
                value = str(payload.get("crumb") or "")
                field = str(payload.get("crumbRequestField") or "")
                if not value or not field:
                    raise JenkinsError("crumb issuer returned empty data")
                self._crumb = _Crumb(field, value)
                return self._crumb
            if resp.status_code in (404, 405):
                self._crumb_unsupported = True
                return None
            raise JenkinsError(f"crumb issuer error: {status_text(resp)}")

    def _clear_crumb(self) -> None:
        with self._crumb_lock:
            self._crumb = None

    def capabilities(self) -> Capabilities:
        """Return cached capabilities, refreshing them once they are a minute old."""
        with self._cap_lock:
            fresh = (
                self._last_probe is not None
                and time.monotonic() - self._last_probe < CAPABILITY_CACHE_TTL
            )
            caps = self._capabilities
        if fresh:
            return caps

        try:
            self.refresh_capabilities()
        except JenkinsError as err:
            get_logger().debug("capability refresh failed: %s", err)

        with self._cap_lock:
            return self._capabilities

    def refresh_capabilities(self) -> Capabilities:
        """Probe the controller for optional features and update the features header."""
        with self._cap_lock:
            try:
                resp = self.session.get(self._url(STATUS_ENDPOINT), timeout=DEFAULT_TIMEOUT)
            except requests.RequestException as err:
                raise JenkinsError(f"probe jk/api/status: {err}") from err

            features: list[str] = []
            if resp.status_code == 200:
                try:
                    payload = resp.json()
                except ValueError as err:
                    raise JenkinsError(f"probe jk/api/status: {err}") from err
                if isinstance(payload, dict):
                    features = enumerate_features(payload.get("features"))

            caps = Capabilities(
                runs_facade="runs" in features,
                credential_facade="credentials" in features,
                events="events" in features,
                sse_gateway=self._probe_endpoint(EVENTS_PROBE_PATH),
                prometheus=self._probe_endpoint(PROMETHEUS_PROBE),
            )
            self._capabilities = caps
            self._last_probe = time.monotonic()
            self.session.headers[HEADER_JK_FEATURES] = compose_features_header(caps)
            return caps

    def _probe_endpoint(self, path: str) -> bool:
        try:
            resp = self.session.head(
                self._url(path), timeout=DEFAULT_TIMEOUT, allow_redirects=True
            )
        except requests.RequestException:
            return False
        resp.close()
        return 200 <= resp.status_code < 400


def _checked_ca_file(path: str) -> str:
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            content = handle.read()
    except OSError as err:
        raise JenkinsError(f"read ca file: {err}") from err
    if "-----BEGIN CERTIFICATE-----" not in content:
        raise JenkinsError("failed to append CA certificate")
    return path


def client_for_context(
    cfg: Config | None, context_name: str = "", token: str = ""
) -> JenkinsClient:
    """Build a client for the named context, or the active one when no name is given."""
    if cfg is None:
        raise ValueError("configuration is required")

    if not context_name:
        _, context_name = cfg.active_context()
    if not context_name:
        raise JenkinsError("no active context; use 'jk context use' or provide --context")

    ctx = cfg.get_context(context_name)
    try:
        parsed = urlsplit(ctx.url)
    except ValueError as err:
        raise JenkinsError(f"invalid Jenkins URL for context {context_name}: {err}") from err

    return JenkinsClient(
        urlunsplit(parsed),
        username=ctx.username,
        token=token,
        context_name=context_name,
        context=ctx,
        insecure=ctx.insecure,
        proxy=ctx.proxy,
        ca_file=ctx.ca_file,
    )