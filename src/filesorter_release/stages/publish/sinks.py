from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Protocol
from urllib.parse import quote

import httpx
import structlog
from filesorter_release.core import (
    ConfigurationError,
    PublishFailure,
    atomic_write_bytes,
    sha256_bytes,
)
from pydantic import SecretStr

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SinkHandle:
    """
    Where a published artifact can be found.
    """

    sink: str
    name: str
    location: str
    bytes: int
    sha256: str
    tag: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sink": self.sink,
            "name": self.name,
            "location": self.location,
            "bytes": self.bytes,
            "sha256": self.sha256,
            "tag": self.tag,
        }


class EphemeralSink(Protocol):
    def store(self, name: str, data: bytes, *, filename: str | None = None) -> SinkHandle: ...


class ReleaseSink(Protocol):
    def publish(
        self, *, tag: str, name: str, data: bytes, overwrite: bool = True
    ) -> SinkHandle: ...


@dataclass(frozen=True, slots=True)
class PublishSinks:
    ephemeral: EphemeralSink
    release: Optional[ReleaseSink] = None


def _safe_segment(value: str, *, label: str) -> str:
    v = value.strip()
    if not v or v in (".", "..") or "\\" in v or v.startswith("/"):
        raise PublishFailure(f"Unsafe {label} for storage path: {value!r}")
    if any(part in ("", ".", "..") for part in v.split("/")):
        raise PublishFailure(f"Unsafe {label} for storage path: {value!r}")
    return v


class DirectoryEphemeralSink:
    """
    Run-scoped artifact storage: `{root}/{name}/{filename}`.

    `root` lives inside the run directory, so names only need to be unique
    within one run. A second store under the same name is refused.
    """

    sink_name = "ephemeral"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def store(self, name: str, data: bytes, *, filename: str | None = None) -> SinkHandle:
        entry = self.root / _safe_segment(name, label="artifact name")
        target = entry / _safe_segment(filename or name, label="filename")
        try:
            entry.mkdir(parents=True, exist_ok=False)
        except FileExistsError as e:
            raise PublishFailure(f"Ephemeral artifact already stored in this run: {name}") from e
        except OSError as e:
            raise PublishFailure(f"Cannot create ephemeral entry {entry}: {e}") from e

        try:
            atomic_write_bytes(target, data, mode=0o755)
        except OSError as e:
            raise PublishFailure(f"Cannot write ephemeral artifact {target}: {e}") from e

        return SinkHandle(
            sink=self.sink_name,
            name=name,
            location=str(target),
            bytes=len(data),
            sha256=sha256_bytes(data),
        )


class DirectoryReleaseSink:
    """
    Tag-addressed release storage on a filesystem: `{root}/{tag}/{name}`.

    Publishing an existing (tag, name) atomically replaces the file.
    """

    sink_name = "release-directory"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, tag: str, name: str) -> Path:
        return (
            self.root
            / _safe_segment(tag, label="tag")
            / _safe_segment(name, label="artifact name")
        )

    def publish(
        self, *, tag: str, name: str, data: bytes, overwrite: bool = True
    ) -> SinkHandle:
        target = self.path_for(tag, name)
        if target.exists() and not overwrite:
            raise PublishFailure(f"Release asset exists (overwrite disabled): {tag}/{name}")

        replaced = target.exists()
        try:
            atomic_write_bytes(target, data, mode=0o755)
        except OSError as e:
            raise PublishFailure(f"Cannot write release asset {target}: {e}") from e

        log.info("release.asset.written", tag=tag, name=name, replaced=replaced)
        return SinkHandle(
            sink=self.sink_name,
            name=name,
            location=str(target),
            bytes=len(data),
            sha256=sha256_bytes(data),
            tag=tag,
        )


def make_http_client(
    *,
    timeout: httpx.Timeout | None = None,
    user_agent: str = "filesorter-release/0.1",
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    # Uploads of release binaries can be slow; keep connect short, write long.
    t = timeout or httpx.Timeout(connect=10.0, read=60.0, write=300.0, pool=10.0)
    return httpx.Client(
        timeout=t,
        follow_redirects=True,
        headers={"User-Agent": user_agent},
        transport=transport,
    )


class GitHubReleaseSink:
    """
    Publishes assets to the GitHub release of a tag.

    The release is created on first use. An asset with the same name is
    deleted before upload, so re-runs converge to one asset per name.
    """

    sink_name = "release-github"

    def __init__(
        self,
        *,
        repository: str,
        token: SecretStr | str | None,
        client: httpx.Client | None = None,
        api_url: str = "https://api.github.com",
        uploads_url: str = "https://uploads.github.com",
    ) -> None:
        if not repository or "/" not in repository:
            raise ConfigurationError(
                f"repository must look like 'owner/name', got {repository!r}"
            )
        self.repository = repository
        self.api_url = api_url.rstrip("/")
        self.uploads_url = uploads_url.rstrip("/")
        self._token = token.get_secret_value() if isinstance(token, SecretStr) else token
        self._owns_client = client is None
        self._client = client or make_http_client()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "GitHubReleaseSink":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        h = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            h["Authorization"] = f"Bearer {self._token}"
        return h

    def _request(self, method: str, url: str, **kw: Any) -> httpx.Response:
        headers = {**self._headers(), **kw.pop("headers", {})}
        try:
            return self._client.request(method, url, headers=headers, **kw)
        except httpx.HTTPError as e:
            raise PublishFailure(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _check(resp: httpx.Response, *, expected: tuple[int, ...], what: str) -> None:
        if resp.status_code in expected:
            return
        snippet = resp.text[:300] if resp.text else ""
        raise PublishFailure(f"{what}: HTTP {resp.status_code} {snippet}".rstrip())

    def _repo_url(self, *parts: str) -> str:
        return "/".join([self.api_url, "repos", self.repository, *parts])

    def _get_release(self, tag: str) -> dict[str, Any] | None:
        resp = self._request("GET", self._repo_url("releases", "tags", quote(tag, safe="")))
        if resp.status_code == 404:
            return None
        self._check(resp, expected=(200,), what=f"get release {tag}")
        return resp.json()

    def ensure_release(self, tag: str) -> dict[str, Any]:
        rel = self._get_release(tag)
        if rel is not None:
            return rel

        resp = self._request(
            "POST",
            self._repo_url("releases"),
            json={"tag_name": tag, "name": tag},
        )
        if resp.status_code == 422:
            # Another cell created it first.
            rel = self._get_release(tag)
            if rel is not None:
                return rel
        self._check(resp, expected=(201,), what=f"create release {tag}")
        log.info("release.created", repository=self.repository, tag=tag)
        return resp.json()

    def list_assets(self, release_id: int) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        url: str | None = self._repo_url("releases", str(release_id), "assets")
        params: dict[str, Any] | None = {"per_page": 100}
        while url:
            resp = self._request("GET", url, params=params)
            self._check(resp, expected=(200,), what=f"list assets of release {release_id}")
            out.extend(resp.json())
            url = resp.links.get("next", {}).get("url")
            params = None
        return out

    def publish(
        self, *, tag: str, name: str, data: bytes, overwrite: bool = True
    ) -> SinkHandle:
        rel = self.ensure_release(tag)
        release_id = int(rel["id"])

        for asset in self.list_assets(release_id):
            if asset.get("name") != name:
                continue
            if not overwrite:
                raise PublishFailure(f"Release asset exists (overwrite disabled): {tag}/{name}")
            resp = self._request(
                "DELETE", self._repo_url("releases", "assets", str(asset["id"]))
            )
            # 404: a concurrent re-run already removed it.
            self._check(resp, expected=(204, 404), what=f"delete asset {name}")
            log.info("release.asset.replaced", tag=tag, name=name, asset_id=asset["id"])

        resp = self._request(
            "POST",
            f"{self.uploads_url}/repos/{self.repository}/releases/{release_id}/assets",
            params={"name": name},
            headers={"Content-Type": "application/octet-stream"},
            content=data,
        )
        self._check(resp, expected=(201,), what=f"upload asset {name}")
        body = resp.json()

        return SinkHandle(
            sink=self.sink_name,
            name=name,
            location=str(body.get("browser_download_url") or body.get("url") or ""),
            bytes=len(data),
            sha256=sha256_bytes(data),
            tag=tag,
        )
