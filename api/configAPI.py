# /api/configAPI.py
# TrackerSync - configuration and gist management
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from ts_platform import config_base
from ts_platform.gist import GistClient
from ts_platform.sync import TransportError

from ._context import _err, _ok

router = APIRouter(prefix="/api/config", tags=["config"])

# keys whose masked or blank value in a payload means "keep the stored one"
_SECRETS = (("gist", "token"),)


def _nostore(res: JSONResponse) -> JSONResponse:
    res.headers["Cache-Control"] = "no-store"
    return res


def _keep_secrets(current: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    shown = config_base.masked(current)
    for section, leaf in _SECRETS:
        inc = incoming.get(section)
        if not isinstance(inc, dict) or leaf not in inc:
            continue
        val = str(inc.get(leaf) or "").strip()
        if not val or val == (shown.get(section) or {}).get(leaf):
            inc.pop(leaf)
    return incoming


def _token(body: dict[str, Any] | None) -> str:
    tok = str((body or {}).get("token") or "").strip()
    if tok:
        return tok
    return str((config_base.load_config().get("gist") or {}).get("token") or "")


@router.get("")
def api_config() -> JSONResponse:
    cfg = config_base.load_config()
    out = config_base.masked(cfg)
    out["configured"] = config_base.is_configured(cfg)
    return _nostore(JSONResponse(out))


@router.post("")
def api_config_save(payload: dict[str, Any] = Body(...)) -> JSONResponse:
    current = config_base.load_config()
    incoming = _keep_secrets(current, dict(payload or {}))
    cfg = config_base.update_config(incoming)
    return _ok({"configured": config_base.is_configured(cfg)})


@router.post("/gist/create")
def api_gist_create(body: dict[str, Any] | None = Body(None)) -> JSONResponse:
    token = _token(body)
    if not token:
        return _err("Token is required", status_code=400)
    target = str((body or {}).get("target") or "gist_id")
    if target not in ("gist_id", "backup_gist_id"):
        return _err(f"unknown target: {target}", status_code=400)
    client = GistClient.from_config(config_base.load_config())
    try:
        gist_id = client.create(token)
    except TransportError as e:
        return _err(str(e), status_code=502)
    config_base.update_config({"gist": {"token": token, target: gist_id}})
    return _ok({"gist_id": gist_id, "target": target}, status_code=201)


@router.post("/gists")
def api_gist_list(body: dict[str, Any] | None = Body(None)) -> JSONResponse:
    token = _token(body)
    if not token:
        return _err("Token is required", status_code=400)
    client = GistClient.from_config(config_base.load_config())
    try:
        gists = client.list_user_gists(token)
    except TransportError as e:
        return _err(str(e), status_code=502)
    return _ok({"gists": gists})


@router.post("/token/validate")
def api_token_validate(body: dict[str, Any] | None = Body(None)) -> JSONResponse:
    token = _token(body)
    if not token:
        return _ok({"valid": False})
    client = GistClient.from_config(config_base.load_config())
    return _ok({"valid": client.validate_token(token)})
