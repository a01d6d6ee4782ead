"""BAW repository REST client.

Wraps the studio repository and artifact-management endpoints with:
- HTTP basic auth plus a CSRF session token from /bpm/system/login
- one token refresh + retry when a call comes back 401/403 (expired session)
- typed responses (pydantic models from projectxfer.models.project)
- exports streamed to disk and renamed into place only once complete
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional, Protocol, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from projectxfer.models.project import (
    Branch,
    BranchesResponse,
    CsrfTokenResponse,
    LoginRequest,
    Project,
    ProjectsResponse,
    Version,
    VersionsResponse,
)

log = logging.getLogger(__name__)

DEFAULT_PROJECT_TYPES = (
    "processapp",
    "app",
    "casesolution",
    "general",
    "decision",
    "agent",
    "content",
    "digitalworker",
    "automation_srvc",
)

_AUTH_EXPIRED_STATUSES = (401, 403)
_REPO_HEADERS = {"repositoryId": "platformRepo"}
_DOWNLOAD_CHUNK_SIZE = 8192

M = TypeVar("M", bound=BaseModel)


class RepositoryApiError(RuntimeError):
    """Remote call failed (HTTP error status, transport failure or unparseable body)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RepositoryAuthError(RepositoryApiError):
    """Authorization still rejected after refreshing the session token."""


class RepositoryGateway(Protocol):
    """What the resolver and the migration service need from a BAW instance."""

    def list_projects(self, types: Iterable[str] = DEFAULT_PROJECT_TYPES) -> list[Project]:
        ...

    def get_project(self, project_id: str) -> Project:
        ...

    def list_branches(self, project_id: str) -> list[Branch]:
        ...

    def list_versions(self, project_id: str, branch_name: str) -> list[Version]:
        ...

    def get_version_with_dependencies(self, container_acronym: str, version_acronym: str) -> Version:
        ...

    def export_version(self, project_id: str, branch_name: str, version_name: str, output_dir: Path) -> Path:
        ...

    def import_artifact(self, artifact: Path) -> Project:
        ...

    def find_project_by_name(self, name: str) -> Optional[Project]:
        ...

    def find_project_by_acronym(self, acronym: str) -> Optional[Project]:
        ...


def _segment(value: str) -> str:
    return quote(value, safe="")


def _artifact_filename(project_id: str, version_name: str) -> str:
    stem = f"{project_id}_{version_name}"
    return stem.replace("/", "_").replace("\\", "_") + ".twx"


def _write_stream(r: httpx.Response, dest: Path) -> None:
    """Write the body to a temp file beside ``dest`` and rename it into place once complete."""
    tmp = tempfile.NamedTemporaryFile("wb", dir=dest.parent, prefix=f".{dest.name}.", suffix=".part", delete=False)
    tmp_path = Path(tmp.name)
    try:
        with tmp:
            for chunk in r.iter_bytes(_DOWNLOAD_CHUNK_SIZE):
                tmp.write(chunk)
        os.replace(tmp_path, dest)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class RepositoryClient:
    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: float = 120.0,
        verify: bool = False,
        user_agent: str = "projectxfer/1.0",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(username, password)
        self._timeout = timeout
        self._verify = verify
        self._headers = {
            "Accept": "application/json",
            "User-Agent": user_agent,
        }
        self._csrf_token: Optional[str] = None

    @property
    def base_url(self) -> str:
        return self._base_url

    # --- session handshake ---

    def login(self) -> str:
        """Obtain a fresh CSRF token and use it for subsequent calls."""
        url = f"{self._base_url}/bpm/system/login"
        log.info("Obtaining CSRF token from %s", url)
        r = self._send(
            "POST",
            url,
            headers={"Content-Type": "application/json"},
            json=LoginRequest().model_dump(),
            with_token=False,
        )
        if r.status_code not in (200, 201):
            raise RepositoryAuthError(
                f"Failed to obtain CSRF token. Status: {r.status_code}, Response: {r.text[:200]}",
                r.status_code,
            )
        token = self._parse(CsrfTokenResponse, r, "obtain CSRF token").csrf_token
        if not token:
            raise RepositoryAuthError("CSRF token is empty in response", r.status_code)
        self._csrf_token = token
        return token

    # --- transport ---

    def _client(self, headers: dict[str, str] | None, with_token: bool = True) -> httpx.Client:
        h = dict(self._headers)
        if with_token and self._csrf_token:
            h["BPMCSRFToken"] = self._csrf_token
        if headers:
            h.update(headers)
        return httpx.Client(timeout=self._timeout, headers=h, auth=self._auth, verify=self._verify)

    def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        with_token: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            with self._client(headers, with_token) as client:
                return client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RepositoryApiError(f"{method} {url} failed: {e}") from e

    @contextmanager
    def _stream(self, method: str, url: str, headers: dict[str, str] | None = None) -> Iterator[httpx.Response]:
        try:
            with self._client(headers) as client, client.stream(method, url) as r:
                yield r
        except httpx.HTTPError as e:
            raise RepositoryApiError(f"{method} {url} failed: {e}") from e

    def _url(self, path: str) -> str:
        return path if path.startswith("http") else f"{self._base_url}{path}"

    def _with_session(self, method: str, url: str, attempt: Callable[[], httpx.Response]) -> httpx.Response:
        """Run ``attempt`` with a valid token; refresh the token once and retry once on 401/403."""
        if not self._csrf_token:
            self.login()
        r = attempt()
        if r.status_code in _AUTH_EXPIRED_STATUSES:
            log.warning(
                "Received %d for %s %s, CSRF token may have expired. Obtaining new token and retrying",
                r.status_code,
                method,
                url,
            )
            self.login()
            r = attempt()
        return r

    def _request(self, method: str, path: str, headers: dict[str, str] | None = None, **kwargs: Any) -> httpx.Response:
        url = self._url(path)
        return self._with_session(method, url, lambda: self._send(method, url, headers=headers, **kwargs))

    def _download(self, url: str, headers: dict[str, str], dest: Path) -> httpx.Response:
        """Stream a 200 body into ``dest``; any other response is read and returned unwritten."""
        with self._stream("GET", url, headers) as r:
            if r.status_code != 200:
                r.read()
                return r
            _write_stream(r, dest)
        return r

    def _check(self, r: httpx.Response, action: str, ok: tuple[int, ...] = (200,)) -> httpx.Response:
        if r.status_code in ok:
            return r
        message = f"Failed to {action}. Status: {r.status_code}, Response: {r.text[:200]}"
        if r.status_code in _AUTH_EXPIRED_STATUSES:
            raise RepositoryAuthError(message, r.status_code)
        raise RepositoryApiError(message, r.status_code)

    def _parse(self, model: type[M], r: httpx.Response, action: str) -> M:
        try:
            return model.model_validate(r.json())
        except (ValueError, ValidationError) as e:
            raise RepositoryApiError(
                f"Failed to {action}: unexpected response body (status={r.status_code}): {r.text[:200]}",
                r.status_code,
            ) from e

    # --- studio repository ---

    def list_projects(self, types: Iterable[str] = DEFAULT_PROJECT_TYPES) -> list[Project]:
        path = f"/dba/studio/repo/projects?type={','.join(types)}"
        log.info("Fetching projects from %s%s", self._base_url, path)
        r = self._check(self._request("GET", path), "get projects")
        return self._parse(ProjectsResponse, r, "get projects").projects or []

    def get_project(self, project_id: str) -> Project:
        log.info("Fetching project: %s", project_id)
        r = self._request("GET", f"/dba/studio/repo/projects/{_segment(project_id)}", headers=_REPO_HEADERS)
        return self._parse(Project, self._check(r, "get project"), "get project")

    def list_branches(self, project_id: str) -> list[Branch]:
        log.info("Fetching branches for project: %s", project_id)
        r = self._request(
            "GET",
            f"/dba/studio/repo/projects/{_segment(project_id)}/branches",
            headers=_REPO_HEADERS,
        )
        return self._parse(BranchesResponse, self._check(r, "get branches"), "get branches").branches or []

    def list_versions(self, project_id: str, branch_name: str) -> list[Version]:
        log.info("Fetching snapshots for project: %s, branch: %s", project_id, branch_name)
        r = self._request(
            "GET",
            f"/dba/studio/repo/projects/{_segment(project_id)}/branches/{_segment(branch_name)}/snapshots",
            headers=_REPO_HEADERS,
        )
        return self._parse(VersionsResponse, self._check(r, "get snapshots"), "get snapshots").snapshots or []

    def export_version(self, project_id: str, branch_name: str, version_name: str, output_dir: Path) -> Path:
        """Download one snapshot as a .twx file into ``output_dir``."""
        log.info("Exporting snapshot: %s from project: %s, branch: %s", version_name, project_id, branch_name)
        url = self._url(
            f"/dba/studio/repo/projects/{_segment(project_id)}/branches/{_segment(branch_name)}"
            f"/snapshots/{_segment(version_name)}/export"
        )
        headers = {**_REPO_HEADERS, "Accept": "application/octet-stream"}

        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        out = out_dir / _artifact_filename(project_id, version_name)
        r = self._with_session("GET", url, lambda: self._download(url, headers, out))
        self._check(r, "export snapshot")
        log.info("Exported snapshot to: %s", out.resolve())
        return out

    def import_artifact(self, artifact: Path) -> Project:
        """Upload an exported .twx file; returns the project as reported by the target."""
        artifact = Path(artifact)
        log.info("Importing project from file: %s", artifact.name)
        url = self._url("/dba/studio/repo/projects/import")

        def upload() -> httpx.Response:
            # Reopened per attempt so a retry sends the file from the start.
            with artifact.open("rb") as fh:
                return self._send("POST", url, files={"import_file": (artifact.name, fh, "application/octet-stream")})

        r = self._with_session("POST", url, upload)
        self._check(r, "import project", ok=(200, 201))
        log.info("Successfully imported project from: %s", artifact.name)
        return self._parse(Project, r, "import project")

    def find_project_by_name(self, name: str) -> Optional[Project]:
        for project in self.list_projects():
            if name == project.full_name or name == project.display_name:
                return project
        return None

    def find_project_by_acronym(self, acronym: str) -> Optional[Project]:
        for project in self.list_projects():
            if acronym == project.short_code:
                return project
        return None

    # --- artifact management ---

    def get_version_with_dependencies(self, container_acronym: str, version_acronym: str) -> Version:
        """Snapshot metadata plus its direct dependencies (stubs carrying only the short code)."""
        log.info(
            "Fetching snapshot with dependencies: container=%s, version=%s",
            container_acronym,
            version_acronym,
        )
        r = self._request(
            "GET",
            f"/artmgt/std/bpm/containers/{_segment(container_acronym)}"
            f"/versions/{_segment(version_acronym)}?optional_parts=dependencies",
        )
        self._check(r, "get snapshot with dependencies")
        return self._parse(Version, r, "get snapshot with dependencies")
