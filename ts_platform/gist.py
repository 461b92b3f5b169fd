# ts_platform/gist.py
# GitHub Gist client: the remote document holding the shared snapshot.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import json
import time

from typing import Any, Mapping

import requests
from pydantic import ValidationError

from _logging import log as _root_log

from .models import TrackerData, dump_tracker_data, empty_data, parse_tracker_data
from .sync._types import GistConfig, RemoteValidationError, TransportError

__all__ = [
    "GIST_FILENAME",
    "GistConfig",
    "GistClient",
    "request_with_retries",
    "safe_json",
]

GIST_FILENAME = "tracker-data.json"
API_BASE = "https://api.github.com"

_log = _root_log.child("GIST")


def safe_json(resp: requests.Response) -> Any:
    try:
        if not (resp.text or "").strip():
            return {}
        return resp.json()
    except ValueError:
        return {}


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = 15.0,
    max_retries: int = 3,
    retry_on: tuple[int, ...] = (429, 500, 502, 503, 504),
    backoff_base: float = 0.5,
    **kwargs: Any,
) -> requests.Response:
    last_exc: Exception | None = None
    for i in range(max(1, int(max_retries))):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            last_exc = e
            if i < max_retries - 1:
                time.sleep(backoff_base * (2**i))
                continue
            break
        if resp.status_code in retry_on and i < max_retries - 1:
            wait = backoff_base * (2**i)
            ra = resp.headers.get("Retry-After")
            if resp.status_code == 429 and ra:
                try:
                    wait = max(wait, float(ra))
                except ValueError:
                    pass
            time.sleep(wait)
            continue
        return resp
    raise TransportError(f"request failed after retries: {method} {url}: {last_exc}")


class GistClient:
    def __init__(
        self,
        *,
        api_base: str = API_BASE,
        filename: str = GIST_FILENAME,
        description: str = "Personal Activity & Food Tracker Data",
        timeout: float = 15.0,
        max_retries: int = 3,
        backoff_base: float = 0.5,
        session: requests.Session | None = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.filename = filename
        self.description = description
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> GistClient:
        g = dict(cfg.get("gist") or {})
        return cls(
            api_base=str(g.get("api_base") or API_BASE),
            filename=str(g.get("filename") or GIST_FILENAME),
            description=str(g.get("description") or "Personal Activity & Food Tracker Data"),
            timeout=float(g.get("timeout") or 15.0),
            max_retries=int(g.get("max_retries") or 3),
        )

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _request(self, method: str, endpoint: str, token: str, **kw: Any) -> Any:
        url = f"{self.api_base}{endpoint}"
        resp = request_with_retries(
            self.session,
            method,
            url,
            timeout=self.timeout,
            max_retries=self.max_retries,
            backoff_base=self.backoff_base,
            headers=self._headers(token),
            **kw,
        )
        if not resp.ok:
            raise TransportError(
                f"GitHub API error: {resp.status_code} - {(resp.text or '')[:300]}",
                status_code=resp.status_code,
            )
        return safe_json(resp)

    def _file_content(self, file: Mapping[str, Any], token: str) -> str:
        # large files come back truncated; the raw_url serves the full content
        if file.get("truncated") and file.get("raw_url"):
            resp = request_with_retries(
                self.session,
                "GET",
                str(file["raw_url"]),
                timeout=self.timeout,
                max_retries=self.max_retries,
                backoff_base=self.backoff_base,
                headers={"Authorization": f"Bearer {token}"},
            )
            if not resp.ok:
                raise TransportError(f"GitHub raw file error: {resp.status_code}", status_code=resp.status_code)
            return resp.text
        return str(file.get("content") or "")

    # RemoteAdapter
    def fetch(self, doc_id: str, credential: str) -> TrackerData:
        gist = self._request("GET", f"/gists/{doc_id}", credential)
        files = gist.get("files") if isinstance(gist, Mapping) else None
        file = files.get(self.filename) if isinstance(files, Mapping) else None
        if not isinstance(file, Mapping):
            return empty_data()

        content = self._file_content(file, credential)
        if not content.strip():
            return empty_data()

        try:
            raw = json.loads(content)
        except json.JSONDecodeError as e:
            raise RemoteValidationError(f"Remote Gist data is not valid JSON: {e}") from e
        try:
            return parse_tracker_data(raw)
        except ValidationError as e:
            raise RemoteValidationError(
                "Remote Gist data failed validation; refusing to overwrite. Check data format."
            ) from e

    def replace(self, doc_id: str, credential: str, data: TrackerData) -> None:
        body = {"files": {self.filename: {"content": json.dumps(dump_tracker_data(data), indent=2)}}}
        self._request("PATCH", f"/gists/{doc_id}", credential, json=body)
        _log.debug(f"gist {doc_id} updated")

    # document management
    def create(self, token: str) -> str:
        body = {
            "description": self.description,
            "public": False,
            "files": {self.filename: {"content": json.dumps(dump_tracker_data(empty_data()), indent=2)}},
        }
        gist = self._request("POST", "/gists", token, json=body)
        gist_id = str((gist or {}).get("id") or "")
        if not gist_id:
            raise TransportError("GitHub API returned no gist id")
        _log.info(f"created gist {gist_id}")
        return gist_id

    def list_user_gists(self, token: str) -> list[dict[str, Any]]:
        gists = self._request("GET", "/gists", token)
        out: list[dict[str, Any]] = []
        for g in gists if isinstance(gists, list) else []:
            if not isinstance(g, Mapping):
                continue
            files = g.get("files")
            out.append({
                "id": str(g.get("id") or ""),
                "description": g.get("description") or "No description",
                "files": list(files.keys()) if isinstance(files, Mapping) else [],
            })
        return out

    def validate_token(self, token: str) -> bool:
        try:
            self._request("GET", "/user", token)
            return True
        except TransportError:
            return False
