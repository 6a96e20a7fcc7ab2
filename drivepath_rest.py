#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
drivepath_rest.py – REST-Client für die Drive-v3-API (Store für drivepath_lib).

- Eine Stelle für Session, Auth-Header, JSON-Auswertung und Fehlerübersetzung.
- RestDrive stellt die async Store-Methoden bereit, die drivepath_lib.DriveX aufruft;
  jeder blockierende requests-Aufruf läuft über asyncio.to_thread.
- Keine Retries auf Anwendungsebene. Einzige Ausnahme: HTTP 401 mit konfiguriertem
  Refresh-Token -> Token einmal erneuern und den Request einmal wiederholen.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional

import requests

from drivepath_lib import ExportRequired, TransportFailure


# ===== Session (einmalig pro Prozess) =====
_session: Optional[requests.Session] = None

def _get_session() -> requests.Session:
    """
    Prozessweite Session; to_thread-Aufrufe teilen sich denselben Pool.
    pool_maxsize deckt die parallelen Löschungen des Janitors ab.
    """
    global _session
    if _session is not None:
        return _session
    session = requests.Session()
    session.headers["User-Agent"] = "drivepath"
    # int -> nur Verbindungsfehler werden wiederholt, nie ein gesendeter Request
    adapter = requests.adapters.HTTPAdapter(max_retries=2, pool_maxsize=16)
    for prefix in ("https://", "http://"):
        session.mount(prefix, adapter)
    _session = session
    return session


# --- Fehlerübersetzung ---

def _drive_error(resp: requests.Response) -> TransportFailure:
    """
    Einzige Stelle, die HTTP-Fehler der API in Fehlerarten übersetzt.
    "Nur per Export" erkennt die API am reason fileNotDownloadable; ältere Antworten
    liefern nur den Text "Use Export", daher der Textvergleich als Rückfall.
    """
    message, reason, err = resp.reason or "error", None, None
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        err = body["error"]
        message = err.get("message") or message
        errors = err.get("errors") or []
        if errors and isinstance(errors[0], dict):
            reason = errors[0].get("reason")
    elif isinstance(body, dict) and isinstance(body.get("error"), str):
        # OAuth-Endpunkt: {"error": "invalid_grant", "error_description": "..."}
        reason = body["error"]
        message = body.get("error_description") or reason

    cls = TransportFailure
    if reason == "fileNotDownloadable" or "Use Export" in str(message):
        cls = ExportRequired
    return cls(f"HTTP {resp.status_code}: {message}", status=resp.status_code, reason=reason, context=err)


# --- Token ---

def refresh_access_token(cfg: Dict[str, Any]) -> str:
    """Access-Token per Refresh-Token erneuern; schreibt cfg['token'] um."""
    if not cfg.get("refresh_token"):
        raise TransportFailure("refresh: kein DRIVE_REFRESH_TOKEN konfiguriert", status=401)
    data = {
        "grant_type": "refresh_token",
        "refresh_token": cfg["refresh_token"],
        "client_id": cfg.get("client_id") or "",
        "client_secret": cfg.get("client_secret") or "",
    }
    try:
        r = _get_session().post(cfg["token_url"], data=data, timeout=int(cfg.get("timeout", 30)))
    except requests.RequestException as e:
        raise TransportFailure(f"refresh: {e}") from e
    if r.status_code >= 400:
        raise _drive_error(r)
    token = (r.json() or {}).get("access_token")
    if not token:
        raise TransportFailure("refresh: Antwort ohne access_token", status=r.status_code)
    cfg["token"] = token
    logging.info("access token erneuert")
    return token


# --- Request bauen / senden ---

def _request(cfg: Dict[str, Any], method: str, url: str, *,
             params: Dict[str, Any] | None = None,
             json: Any = None,
             data: Any = None,
             headers: Dict[str, str] | None = None,
             auth: bool = True,
             _retried: bool = False) -> requests.Response:
    hdrs = dict(headers or {})
    if auth:
        hdrs["Authorization"] = f"Bearer {cfg['token']}"
    try:
        r = _get_session().request(method, url, params=params, json=json, data=data,
                                   headers=hdrs, timeout=int(cfg.get("timeout", 30)))
    except requests.RequestException as e:
        raise TransportFailure(f"{method} {url}: {e}", context={"url": url}) from e

    if r.status_code == 401 and auth and not _retried and cfg.get("refresh_token"):
        refresh_access_token(cfg)
        return _request(cfg, method, url, params=params, json=json, data=data,
                        headers=headers, auth=auth, _retried=True)
    if r.status_code >= 400:
        raise _drive_error(r)
    return r

def _json(r: requests.Response, what: str) -> Dict[str, Any]:
    try:
        return r.json()
    except ValueError:
        raise TransportFailure(f"{what}: HTTP {r.status_code}, kein JSON-Body", status=r.status_code)

def _files_url(cfg: Dict[str, Any], file_id: str | None = None) -> str:
    base = cfg["api_base"].rstrip("/") + "/files"
    return base if file_id is None else f"{base}/{file_id}"


# ===== Store-Operationen (blockierend) =====

def list_files(cfg: Dict[str, Any], *, q: str, fields: str, page_size: int,
               order_by: str, spaces: str = "drive") -> list:
    params = {"q": q, "fields": fields, "pageSize": int(page_size), "orderBy": order_by, "spaces": spaces}
    jd = _json(_request(cfg, "GET", _files_url(cfg), params=params), "files.list")
    return jd.get("files", [])

def get_file(cfg: Dict[str, Any], file_id: str, fields: str | None = None) -> Dict[str, Any]:
    params = {"fields": fields} if fields else None
    return _json(_request(cfg, "GET", _files_url(cfg, file_id), params=params), "files.get")

def get_media(cfg: Dict[str, Any], file_id: str) -> bytes:
    return _request(cfg, "GET", _files_url(cfg, file_id), params={"alt": "media"}).content

def export_file(cfg: Dict[str, Any], file_id: str, mime_type: str) -> bytes:
    return _request(cfg, "GET", _files_url(cfg, file_id) + "/export", params={"mimeType": mime_type}).content

def create_file(cfg: Dict[str, Any], metadata: Dict[str, Any], fields: str) -> Dict[str, Any]:
    return _json(_request(cfg, "POST", _files_url(cfg), params={"fields": fields}, json=metadata),
                 "files.create")

def create_resumable(cfg: Dict[str, Any], metadata: Dict[str, Any], fields: str) -> str:
    """
    Resumable-Session anlegen (nur Metadaten); Rückgabe: Session-URL aus dem Location-Header.
    """
    headers = {"X-Upload-Content-Type": metadata.get("mimeType") or "application/octet-stream"}
    r = _request(cfg, "POST", cfg["upload_base"], params={"uploadType": "resumable", "fields": fields},
                 json=metadata, headers=headers)
    url = r.headers.get("Location")
    if not url:
        raise TransportFailure("files.create(resumable): Antwort ohne Location-Header", status=r.status_code)
    return url

def upload_to_session(cfg: Dict[str, Any], url: str, chunks: Iterable[bytes], mime_type: str) -> Dict[str, Any]:
    """
    Inhalt in EINEM Request an die Session-URL streamen (chunked, kein Puffern im RAM).
    Die Session-URL ist selbst autorisiert; kein Bearer-Header.
    """
    r = _request(cfg, "PUT", url, data=chunks, headers={"Content-Type": mime_type}, auth=False)
    return _json(r, "upload")

def update_file(cfg: Dict[str, Any], file_id: str, metadata: Dict[str, Any], fields: str) -> Dict[str, Any]:
    return _json(_request(cfg, "PATCH", _files_url(cfg, file_id), params={"fields": fields}, json=metadata),
                 "files.update")

def delete_file(cfg: Dict[str, Any], file_id: str) -> None:
    _request(cfg, "DELETE", _files_url(cfg, file_id))

def about(cfg: Dict[str, Any], fields: str = "user,storageQuota") -> Dict[str, Any]:
    url = cfg["api_base"].rstrip("/") + "/about"
    return _json(_request(cfg, "GET", url, params={"fields": fields}), "about.get")


# === Preflight ==============================================================
def preflight_or_raise(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validiert Token und Quota mit einem about-Aufruf.
    Wirft TransportFailure bei Auth-/API-Problemen und bei voller Quota.
    """
    info = about(cfg, "user,storageQuota")
    quota = info.get("storageQuota") or {}
    limit = int(quota.get("limit") or 0)
    usage = int(quota.get("usage") or 0)
    if limit and usage >= limit:
        raise TransportFailure("over quota: usage >= limit", reason="storageQuotaExceeded", context=quota)
    return info


class RestDrive:
    """Async Store über der Drive-v3-REST-API; hält nur die cfg."""

    def __init__(self, cfg: Dict[str, Any]):
        self.cfg = cfg

    async def list_files(self, q: str, fields: str, page_size: int, order_by: str,
                         spaces: str = "drive") -> list:
        return await asyncio.to_thread(list_files, self.cfg, q=q, fields=fields, page_size=page_size,
                                       order_by=order_by, spaces=spaces)

    async def get(self, file_id: str, fields: str | None = None) -> Dict[str, Any]:
        return await asyncio.to_thread(get_file, self.cfg, file_id, fields)

    async def get_media(self, file_id: str) -> bytes:
        return await asyncio.to_thread(get_media, self.cfg, file_id)

    async def export(self, file_id: str, mime_type: str) -> bytes:
        return await asyncio.to_thread(export_file, self.cfg, file_id, mime_type)

    async def create(self, metadata: Dict[str, Any], fields: str) -> Dict[str, Any]:
        return await asyncio.to_thread(create_file, self.cfg, metadata, fields)

    async def create_resumable(self, metadata: Dict[str, Any], fields: str) -> str:
        return await asyncio.to_thread(create_resumable, self.cfg, metadata, fields)

    async def upload_to_session(self, url: str, chunks: Iterable[bytes], mime_type: str) -> Dict[str, Any]:
        return await asyncio.to_thread(upload_to_session, self.cfg, url, chunks, mime_type)

    async def update(self, file_id: str, metadata: Dict[str, Any], fields: str) -> Dict[str, Any]:
        return await asyncio.to_thread(update_file, self.cfg, file_id, metadata, fields)

    async def delete(self, file_id: str) -> None:
        await asyncio.to_thread(delete_file, self.cfg, file_id)

    async def about(self, fields: str = "user,storageQuota") -> Dict[str, Any]:
        return await asyncio.to_thread(about, self.cfg, fields)
