#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
drivepath_lib.py – Pfad-basierter Zugriff auf einen entfernten Ordnerbaum (Drive v3).

Ziele:
- Pfade wie "/Backup/2026/report.txt" statt opaker IDs: find_path, create_path.
- Suchen über strukturierte Filter (searcher + check_search) statt handgebauter Query-Strings.
- Idempotenter Upload (upload2): Zielordner auflösen/anlegen, Konflikt oder Clobber,
  Streaming-Upload in eine Resumable-Session mit MD5-Abgleich.

Konfiguration (.env oder ENV):
  DRIVE_TOKEN          Access-Token (Pflicht)
  DRIVE_REFRESH_TOKEN  optional, zusammen mit DRIVE_CLIENT_ID / DRIVE_CLIENT_SECRET
  DRIVE_API_BASE       (Default https://www.googleapis.com/drive/v3)
  DRIVE_UPLOAD_BASE    (Default https://www.googleapis.com/upload/drive/v3/files)
  DRIVE_TIMEOUT        (Sek., Default 30)
  DRIVE_CHUNK_SIZE     (Bytes pro Upload-Chunk, Default 4 MiB)
  DRIVE_SALT           (für hexid)
  LOG_LEVEL / LOG_FILE

Hinweis zum Store:
- Der Transport (HTTP, Auth) steckt in drivepath_rest.RestDrive. Diese Bibliothek ruft
  nur list_files/get/get_media/export/create/create_resumable/upload_to_session/
  update/delete/about auf und baut Query-Strings und Request-Bodies.
- Alle Store-Aufrufe sind async; Pfad-Segmente werden strikt nacheinander aufgelöst.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import os
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, Optional, Tuple

from dotenv import dotenv_values


# --- Konstanten ---
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
DEFAULT_FIELDS = "id,name,mimeType,modifiedTime,size,parents"
DEFAULT_ORDER_BY = "folder,name,modifiedTime desc"
RECENT_ORDER_BY = "modifiedTime desc"
DEFAULT_LIMIT = 1000
MAX_PAGE_SIZE = 1000
FOLDER_FIELDS = "id,mimeType,name,parents"
UPLOAD_FIELDS = "id,name,mimeType,md5Checksum,parents"
DEFAULT_CHUNK_SIZE = 4 * 1024 * 1024

# Suchbegriffe, die als Query-Klausel gerendert werden. "isFolder" ist synthetisch
# (wird zu einer mimeType-Klausel) und landet nie in der Feldliste.
SEARCH_TERMS = ("name", "mimeType", "isFolder", "trashed", "starred", "properties", "appProperties")
PROPERTY_TERMS = ("properties", "appProperties")


# ===== Fehlerarten ==========================================================

class DriveError(RuntimeError):
    """
    Basisklasse aller Fehler dieser Bibliothek.
    context: das Suchergebnis bzw. der Request, der den Fehler ausgelöst hat,
    damit der Aufrufer entscheiden kann (Limit erhöhen, umbenennen, erneut versuchen).
    """

    def __init__(self, message: str, context: Any = None):
        super().__init__(message)
        self.message = message
        self.context = context


class BadRequest(DriveError, ValueError):
    """Ungültige Eingabe (Ordner-Referenz, widersprüchliche Optionen)."""


class NotFound(DriveError):
    """Suche ohne Treffer, obwohl mindestens einer erwartet wurde."""


class AmbiguousResult(DriveError):
    """Mehr als ein Treffer, obwohl unique verlangt war."""


class TooManyResults(DriveError):
    """Trefferzahl == Limit; die echte Anzahl ist unbekannt."""


class Conflict(DriveError):
    """Zielname belegt und clobber nicht gesetzt."""


class IntegrityError(DriveError):
    """Lokaler MD5 passt nicht zur Checksumme, die der Store meldet."""

    def __init__(self, local: str, remote: str, context: Any = None):
        super().__init__(f"md5 mismatch: local={local} remote={remote}", context=context)
        self.local = local
        self.remote = remote


class TransportFailure(DriveError):
    """Fehler des Store-Transports (HTTP, Auth, Rate-Limit, Netzwerk); wird unverändert durchgereicht."""

    def __init__(self, message: str, *, status: int | None = None, reason: str | None = None,
                 context: Any = None):
        super().__init__(message, context=context)
        self.status = status
        self.reason = reason


class ExportRequired(TransportFailure):
    """Direkter Download abgelehnt: Inhalt nur per export() erhältlich."""


# ===== Konfiguration ========================================================

_SENSITIVE_KEY_SUBSTRINGS = ("TOKEN", "SECRET", "SALT", "PASS", "KEY", "AUTH")

def _redact(k: str, v: str) -> str:
    k_up = (k or "").upper()
    if any(s in k_up for s in _SENSITIVE_KEY_SUBSTRINGS):
        return "***"
    return v

# cfg-Schlüssel -> (ENV-Name, Typ)
_ENV_KEYS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "token":         ("DRIVE_TOKEN", str),
    "refresh_token": ("DRIVE_REFRESH_TOKEN", str),
    "client_id":     ("DRIVE_CLIENT_ID", str),
    "client_secret": ("DRIVE_CLIENT_SECRET", str),
    "api_base":      ("DRIVE_API_BASE", str),
    "upload_base":   ("DRIVE_UPLOAD_BASE", str),
    "token_url":     ("DRIVE_TOKEN_URL", str),
    "timeout":       ("DRIVE_TIMEOUT", int),
    "chunk_size":    ("DRIVE_CHUNK_SIZE", int),
    "salt":          ("DRIVE_SALT", str),
    "log_level":     ("LOG_LEVEL", str),
    "log_file":      ("LOG_FILE", str),
}

def load_env_file(path: Optional[str]) -> Dict[str, str]:
    """.env parsen (ohne nach os.environ zu exportieren); fehlende Datei -> {}."""
    if not path or not os.path.isfile(path):
        return {}
    return {k: v for k, v in dotenv_values(path).items() if v is not None}

def _first_file(*paths: Optional[str]) -> Optional[str]:
    return next((p for p in paths if p and os.path.isfile(p)), None)

def _env_sources(env_file: Optional[str], env_dir: Optional[str],
                 profile: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    (Standard-.env, <profile>.env) ermitteln.
    Standard-.env: env_file > env_dir/.env > DRIVE_ENV_FILE > ./.env
    Profil: im Ordner der Standard-.env, dort unter profiles/, dann ./profiles und CWD.
    """
    cwd = os.getcwd()
    if env_file:
        default_env = env_file
    elif env_dir:
        default_env = os.path.join(env_dir, ".env")
    else:
        default_env = os.environ.get("DRIVE_ENV_FILE") or _first_file(os.path.join(cwd, ".env"))

    if not profile:
        return default_env, None
    base = env_dir or (os.path.dirname(os.path.abspath(default_env)) if default_env else cwd)
    name = f"{profile}.env"
    prof = _first_file(os.path.join(base, name), os.path.join(base, "profiles", name),
                       os.path.join(cwd, "profiles", name), os.path.join(cwd, name))
    return default_env, prof

def _apply_env(cfg: Dict[str, Any], env: Dict[str, str], source: str) -> None:
    for key, (name, cast) in _ENV_KEYS.items():
        raw = env.get(name)
        if raw is None or raw == "":
            continue
        try:
            cfg[key] = cast(raw)
        except ValueError as e:
            raise BadRequest(f"{name}: ungültiger Wert {_redact(name, raw)!r} ({source})") from e
        logging.debug("config: %s = %s aus %s", name, _redact(name, str(raw)), source)

def effective_config(env_file: Optional[str] = None,
                     overrides: Optional[Dict[str, Any]] = None,
                     profile: Optional[str] = None,
                     env_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    Baut die effektive Konfiguration:
      Prio: CLI overrides > ENV > PROFILE .env > DEFAULT .env > Defaults
    profile kann auch über ENV DRIVE_PROFILE kommen.
    """
    profile = profile or os.environ.get("DRIVE_PROFILE")

    default_env_path, prof_path = _env_sources(env_file, env_dir, profile)

    cfg: Dict[str, Any] = {
        "token": "",
        "refresh_token": "",
        "client_id": "",
        "client_secret": "",
        "api_base": "https://www.googleapis.com/drive/v3",
        "upload_base": "https://www.googleapis.com/upload/drive/v3/files",
        "token_url": "https://oauth2.googleapis.com/token",
        "timeout": 30,
        "chunk_size": DEFAULT_CHUNK_SIZE,
        "salt": "",
        "log_level": "INFO",
        "log_file": "",
    }

    _apply_env(cfg, load_env_file(default_env_path), default_env_path or "-")
    _apply_env(cfg, load_env_file(prof_path), prof_path or "-")
    _apply_env(cfg, dict(os.environ), "ENV")

    if overrides:
        for k, v in overrides.items():
            if v is None:
                continue
            if k in ("timeout", "chunk_size"):
                v = int(v)
            cfg[k] = v

    if not cfg["token"]:
        where = prof_path or default_env_path or "ENV/CLI"
        raise RuntimeError(f"Kein DRIVE_TOKEN gefunden (Quelle: {where}).")
    return cfg


# ===== Metadaten-Helfer =====================================================

def add_new(meta: Any) -> Any:
    """Markiert frisch angelegte Knoten (isNew=True)."""
    if isinstance(meta, dict):
        meta["isNew"] = True
    return meta

def add_is_folder(meta: Any) -> Any:
    """isFolder aus mimeType ableiten; wird nie an den Store geschickt."""
    if isinstance(meta, dict) and meta.get("mimeType"):
        meta["isFolder"] = node_kind(meta) == "folder"
    return meta

def node_kind(meta: Optional[Dict[str, Any]]) -> str:
    return "folder" if (meta or {}).get("mimeType") == FOLDER_MIME_TYPE else "file"

def add_fields_from_keys(fields: str, obj: Dict[str, Any]) -> str:
    """Hängt jeden Schlüssel von obj (außer isFolder) an die Feldliste an, falls noch nicht enthalten."""
    out = [f.strip() for f in fields.split(",") if f.strip()]
    for term in obj:
        if term != "isFolder" and term not in out:
            out.append(term)
    return ",".join(out)

def get_folder_id(folder: Any) -> str:
    """
    Ordner-Referenz -> ID.
    Erlaubt: ID-String oder Ordner-Metadaten (dict mit id und Ordner-mimeType).
    Alles andere (auch Datei-Metadaten) -> BadRequest.
    """
    if isinstance(folder, dict):
        if folder.get("id") and folder.get("mimeType") == FOLDER_MIME_TYPE:
            return folder["id"]
    elif isinstance(folder, str) and folder:
        return folder
    raise BadRequest("folder must be a folder id or folder metadata", context={"folder": folder})


# ===== Pfad-Helfer ==========================================================

def split_path(path: str) -> list[str]:
    """'/a//b/' und 'a/b' -> ['a', 'b']."""
    return [s for s in (path or "").split("/") if s]

def folder_from(path: str) -> str:
    """Ordneranteil eines Dateipfads; führender '/' bleibt erhalten."""
    parts = split_path(path)
    pre = "/" if (path or "").startswith("/") else ""
    return pre + "/".join(parts[:-1])

def name_from(path: str) -> str | None:
    """Letztes Segment eines Pfads (None bei leerem Pfad)."""
    parts = split_path(path)
    return parts[-1] if parts else None

async def _reduce(parts: Iterable[str], step: Callable[[Any, str], Awaitable[Any]], start: Any) -> Any:
    # Segment N+1 erst nach Ergebnis von Segment N: der Parent ist das Vorergebnis.
    acc = start
    for part in parts:
        acc = await step(acc, part)
    return acc


# ===== Query-Aufbau =========================================================

def _quote(value: Any) -> str:
    s = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{s}'"

def extract_terms(options: Dict[str, Any]) -> Dict[str, Any]:
    """Nur bekannte Suchbegriffe aus den Optionen übernehmen."""
    return {k: options[k] for k in SEARCH_TERMS if options.get(k) is not None}

def search_string(terms: Dict[str, Any], allow_match_all_files: bool = False) -> str:
    """
    Suchbegriffe -> Query-String (Klauseln mit ' and ' verknüpft).
      parent      -> '<id>' in parents
      name        -> name='<v>'
      mimeType    -> mimeType='<v>'
      isFolder    -> mimeType = '<folder>'  bzw.  mimeType != '<folder>'
      properties  -> properties has { key='<k>' and value='<v>' }   (pro Schlüssel)
      starred     -> starred=true|false
      trashed     -> trashed=true|false
    Eine Suche, die nur aus trashed besteht, würde alle Dateien liefern und
    wird ohne allow_match_all_files abgelehnt.
    """
    clauses: list[str] = []
    if terms.get("parent"):
        clauses.append(f"{_quote(terms['parent'])} in parents")
    for key in ("name", "mimeType"):
        if terms.get(key) is not None:
            clauses.append(f"{key}={_quote(terms[key])}")
    if terms.get("isFolder") is not None:
        op = "=" if terms["isFolder"] else "!="
        clauses.append(f"mimeType {op} {_quote(FOLDER_MIME_TYPE)}")
    for key in PROPERTY_TERMS:
        for k, v in (terms.get(key) or {}).items():
            clauses.append(f"{key} has {{ key={_quote(k)} and value={_quote(v)} }}")
    if terms.get("starred") is not None:
        clauses.append(f"starred={'true' if terms['starred'] else 'false'}")

    if not clauses and not allow_match_all_files:
        raise BadRequest("search would match all files, set allow_match_all_files", context=dict(terms))

    if terms.get("trashed") is not None:
        clauses.append(f"trashed={'true' if terms['trashed'] else 'false'}")
    return " and ".join(clauses)

def check_search(result: Dict[str, Any]) -> Dict[str, Any]:
    """
    Prüft ein Suchergebnis:
      keine Liste -> BadRequest, leer -> NotFound, unique mit >1 -> AmbiguousResult,
      Trefferzahl == Limit (ohne unique/recent) -> TooManyResults.
    Sonst ok=True und das Ergebnis unverändert zurück.
    """
    files = result.get("files")
    if not isinstance(files, list):
        raise BadRequest("search result without file list", context=result)
    if not files:
        raise NotFound("file not found", context=result)
    if result.get("unique") and len(files) > 1:
        raise AmbiguousResult("expected unique file", context=result)
    # unique/recent holen absichtlich nur 2 bzw. 1 Treffer
    bounded = result.get("unique") or result.get("recent")
    if not bounded and len(files) == result.get("limit"):
        raise TooManyResults("increase limit or too many files found", context=result)
    result["ok"] = True
    return result


# ===== Upload-Helfer ========================================================

def hex_id_from_email(email: str, secret: str) -> str:
    """HMAC-SHA256 (hex) über die normalisierte E-Mail-Adresse."""
    if not secret:
        raise BadRequest("missing secret")
    standardized = email.lower().strip()
    return hmac.new(secret.encode("utf-8"), standardized.encode("utf-8"), hashlib.sha256).hexdigest()

def _iter_chunks(stream: Any, chunk_size: int) -> Iterator[bytes | str]:
    if hasattr(stream, "read"):
        while True:
            buf = stream.read(chunk_size)
            if not buf:
                break
            yield buf
    elif isinstance(stream, (bytes, bytearray, str)):
        for i in range(0, len(stream), chunk_size):
            yield stream[i:i + chunk_size]
    else:
        yield from stream

def _hashing_chunks(stream: Any, hasher: Any, chunk_size: int) -> Iterator[bytes]:
    """Jeder Chunk läuft genau einmal und in Reihenfolge durch den Hasher."""
    for buf in _iter_chunks(stream, chunk_size):
        if isinstance(buf, str):
            buf = buf.encode("utf-8")
        buf = bytes(buf)
        hasher.update(buf)
        yield buf

def _require_string(v: Any, min_len: int, key: str) -> None:
    if not isinstance(v, str) or len(v) < min_len:
        raise BadRequest(f"upload2: invalid parameter {key}, requires string of length at least {min_len} chars",
                         context={key: v})


@dataclass
class UploadRequest:
    name: str
    mime_type: str
    stream: Any
    folder_path: Optional[str] = None
    folder_id: Optional[str] = None
    create_path: bool = False
    clobber: bool = False


# ===== Kern: DriveX =========================================================

class DriveX:
    """
    Pfad-/Such-/Upload-Erweiterungen über einem Store (siehe drivepath_rest.RestDrive).
    root_folder_id und spaces bestimmen die Sicht: ("root", "drive") oder
    ("appDataFolder", "appDataFolder").
    """

    def __init__(self, store: Any, root_folder_id: str = "root", spaces: str = "drive",
                 salt: str | None = None, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.store = store
        self.root_folder_id = root_folder_id
        self.spaces = spaces
        self.salt = salt
        self.chunk_size = int(chunk_size)

    # --- Konto ---

    async def about_me(self, fields: str | None = None) -> Dict[str, Any]:
        return await self.store.about(fields or "user,storageQuota")

    async def hexid(self) -> str:
        if not self.salt:
            raise BadRequest("missing salt")
        info = await self.about_me()
        email = info["user"]["emailAddress"]
        return hex_id_from_email(email, self.salt)

    # --- Suche ---

    def searcher(self, **options: Any) -> Callable[..., Awaitable[Dict[str, Any]]]:
        """
        Liefert async search(parent, name) -> Suchergebnis (dict mit "files").
        Optionen: Suchbegriffe (SEARCH_TERMS) sowie limit, fields, order_by,
        unique (Seitengröße 2), recent (Seitengröße 1, neueste zuerst),
        allow_match_all_files.
        """
        limit = min(int(options.get("limit") or DEFAULT_LIMIT), MAX_PAGE_SIZE)
        fields = options.get("fields") or DEFAULT_FIELDS
        order_by = options.get("order_by") or DEFAULT_ORDER_BY
        unique = bool(options.get("unique"))
        if unique:
            limit = 2
        recent = bool(options.get("recent"))
        if recent:
            limit = 1
            order_by = RECENT_ORDER_BY
        allow_match_all_files = bool(options.get("allow_match_all_files"))
        terms = extract_terms(options)

        # jeder explizite Suchbegriff wird mit angefordert, außer isFolder
        if not options.get("fields"):
            fields = add_fields_from_keys(fields, terms)

        if not terms.get("trashed"):
            terms["trashed"] = False

        store, spaces = self.store, self.spaces

        async def search(parent: str | None = None, name: str | None = None) -> Dict[str, Any]:
            # name pro Aufruf ersetzt einen name-Filter aus den Optionen, None hebt ihn nicht auf
            if name is None:
                name = terms.get("name")
            q = search_string(dict(terms, parent=parent, name=name), allow_match_all_files)
            logging.debug("search: q=%s limit=%d order=%s", q, limit, order_by)
            files = await store.list_files(q=q, fields=f"files({fields})", page_size=limit,
                                           order_by=order_by, spaces=spaces)
            if isinstance(files, list):
                for f in files:
                    add_is_folder(f)
            return {
                "parent": parent,
                "name": name,
                "terms": terms,
                "limit": limit,
                "unique": unique,
                "recent": recent,
                "is_search_result": True,
                "files": files,
            }

        return search

    async def search(self, parent: str | None = None, name: str | None = None, *,
                     check: bool = False, **options: Any) -> Dict[str, Any]:
        result = await self.searcher(**options)(parent, name)
        return check_search(result) if check else result

    # --- Pfade ---

    def step_right(self, unique: bool = False) -> Callable[[Any, str], Awaitable[Dict[str, Any]]]:
        """
        Ein Pfad-Segment: (Ordner, Name) -> Kind-Knoten.
        Standard: neuester Treffer gewinnt (recent). unique=True: Duplikate -> AmbiguousResult.
        """
        search = self.searcher(unique=True) if unique else self.searcher(recent=True)

        async def step(folder: Any, name: str) -> Dict[str, Any]:
            parent_id = get_folder_id(folder)
            result = check_search(await search(parent_id, name))
            node = result["files"][0]
            logging.debug("step: %s/%s -> %s %s", parent_id, name, node_kind(node), node.get("id"))
            return node

        return step

    def folder_creator(self) -> Callable[[Any, str], Awaitable[Dict[str, Any]]]:
        store = self.store

        async def create(folder: Any, name: str) -> Dict[str, Any]:
            parent_id = get_folder_id(folder)
            metadata = {"mimeType": FOLDER_MIME_TYPE, "name": name, "parents": [parent_id]}
            logging.info("createfolder: %s in %s", name, parent_id)
            meta = await store.create(metadata, fields=FOLDER_FIELDS)
            return add_is_folder(add_new(meta))

        return create

    def folder_factory(self) -> Callable[[Any, str], Awaitable[Dict[str, Any]]]:
        """
        get-or-create für ein Segment. Nur NotFound führt zum Anlegen.
        Kein Schutz gegen parallele Aufrufer: beide sehen NotFound und legen je einen Ordner an.
        """
        stepper = self.step_right()
        creator = self.folder_creator()

        async def factory(folder: Any, name: str) -> Dict[str, Any]:
            try:
                return await stepper(folder, name)
            except NotFound:
                return await creator(folder, name)

        return factory

    async def find_path(self, path: str, root: Any = None) -> Any:
        """Pfad -> Knoten. Leerer Pfad -> Root-Referenz unverändert."""
        parts = split_path(path)
        logging.debug("find_path: %s (%d Segmente)", path, len(parts))
        return await _reduce(parts, self.step_right(), self.root_folder_id if root is None else root)

    resolve_path = find_path

    async def create_path(self, path: str, root: Any = None) -> Any:
        """Wie find_path, legt fehlende Ordner aber an (mkdir -p). Nicht transaktional."""
        parts = split_path(path)
        logging.debug("create_path: %s (%d Segmente)", path, len(parts))
        return await _reduce(parts, self.folder_factory(), self.root_folder_id if root is None else root)

    # --- Inhalte / Metadaten ---

    async def contents(self, file_id: str, mime_type: str | None = None) -> bytes:
        """Binärinhalt; mit mime_type Fallback auf export(), wenn der Store ExportRequired meldet."""
        try:
            return await self.store.get_media(file_id)
        except ExportRequired:
            if not mime_type:
                raise
            logging.info("contents: %s nur per Export, hole als %s", file_id, mime_type)
            return await self.store.export(file_id, mime_type)

    async def download(self, path: str, mime_type: str | None = None) -> bytes:
        node = await self.find_path(path)
        return await self.contents(node["id"], mime_type)

    async def update_metadata(self, file_id: str, metadata: Dict[str, Any]) -> Dict[str, Any]:
        fields = add_fields_from_keys(DEFAULT_FIELDS, metadata)
        return await self.store.update(file_id, metadata, fields=fields)

    # --- Upload ---

    def upload_director(self, parent: Any) -> Callable[[Dict[str, Any]], Awaitable[str]]:
        """async director(metadata) -> Resumable-Session-URL unter parent."""
        store = self.store

        async def director(metadata: Dict[str, Any]) -> str:
            parent_id = get_folder_id(parent)
            meta = dict(metadata, parents=[parent_id])
            url = await store.create_resumable(meta, fields=UPLOAD_FIELDS)
            logging.debug("upload session für %s in %s", meta.get("name"), parent_id)
            return url

        return director

    def stream_to_url(self, stream: Any, mime_type: str) -> Callable[[str], Awaitable[Dict[str, Any]]]:
        """
        async upload(url) -> Datei-Metadaten.
        MD5 wird beim Durchreichen der Chunks berechnet. Bei Nicht-Text-Inhalten und
        gemeldeter md5Checksum: Abweichung -> IntegrityError. Text ist ausgenommen
        (Zeilenenden können unterwegs normalisiert werden).
        """
        store, chunk_size = self.store, self.chunk_size

        async def upload(url: str) -> Dict[str, Any]:
            md5 = hashlib.md5()
            result = await store.upload_to_session(url, _hashing_chunks(stream, md5, chunk_size), mime_type)
            add_new(result)
            add_is_folder(result)
            remote = result.get("md5Checksum") if isinstance(result, dict) else None
            if remote and not mime_type.startswith("text"):
                local = md5.hexdigest()
                if local.lower() != remote.lower():
                    raise IntegrityError(local, remote, context=result)
                logging.debug("md5 ok: %s (%s)", result.get("name"), local)
            return result

        return upload

    # --- Löschen ---

    def janitor(self, file_list_property: str | None = None,
                success_property: str | None = None) -> Callable[[Any], Awaitable[Any]]:
        """
        async clean(info): löscht einen Knoten, eine Liste oder info[file_list_property].
        Löschungen laufen parallel; der erste Fehler bricht ab (bereits Gelöschtes bleibt gelöscht).
        success_property wird vorher auf False und danach auf True gesetzt.
        """
        store = self.store

        async def delete_file(f: Dict[str, Any]) -> None:
            logging.info("delete %s: %s (%s)", node_kind(f), f.get("id"), f.get("name"))
            await store.delete(f["id"])

        async def clean(info: Any) -> Any:
            is_dict = isinstance(info, dict)
            flag = bool(success_property) and is_dict
            if flag:
                info[success_property] = False
            if file_list_property:
                # Property-Lookup nur auf Envelopes; eine nackte Liste bleibt unberührt
                files = info.get(file_list_property) if is_dict else None
            else:
                files = info
            if isinstance(files, dict) and files.get("id"):
                files = [files]
            if isinstance(files, list) and files:
                await asyncio.gather(*(delete_file(f) for f in files))
            if flag:
                info[success_property] = True
            return info

        return clean

    async def remove(self, node_or_list: Any) -> Any:
        return await self.janitor()(node_or_list)

    async def upload2(self, *, folder_path: str | None = None, folder_id: str | None = None,
                      name: str | None = None, stream: Any = None, mime_type: str | None = None,
                      create_path: bool = False, clobber: bool = False) -> Dict[str, Any]:
        """
        Upload nach folder_path (optional mit create_path) ODER folder_id.
        Existiert name schon im Ziel: clobber=False -> Conflict, clobber=True -> alle
        Treffer löschen und neu hochladen. Kein Rollback, wenn nach dem Löschen der Upload scheitert.
        """
        request = {"folder_path": folder_path, "folder_id": folder_id, "name": name,
                   "mime_type": mime_type, "create_path": create_path, "clobber": clobber}
        _require_string(name, 1, "name")
        _require_string(mime_type, 1, "mime_type")
        if folder_path is not None and folder_id is not None:
            raise BadRequest("bad request, specify folder_path or folder_id, not both", context=request)
        if folder_path is None and folder_id is None:
            raise BadRequest("bad request, specify folder_path or folder_id", context=request)
        if create_path and folder_path is None:
            raise BadRequest("bad request, create_path requires folder_path", context=request)

        if create_path:
            folder = await self.create_path(folder_path)
        elif folder_id is not None:
            folder = folder_id
        else:
            folder = await self.find_path(folder_path)
        parent = get_folder_id(folder)

        existing = await self.searcher()(parent, name)
        files = existing.get("files") or []
        if files:
            if not clobber:
                raise Conflict("file exists", context=existing)
            logging.info("clobber: lösche %d vorhandene Datei(en) %r in %s", len(files), name, parent)
            await self.janitor("files")(existing)

        url = await self.upload_director(parent)({"name": name, "mimeType": mime_type})
        result = await self.stream_to_url(stream, mime_type)(url)
        logging.info("upload ok: %s -> %s", name, result.get("id"))
        return result

    async def upload(self, request: UploadRequest) -> Dict[str, Any]:
        return await self.upload2(folder_path=request.folder_path, folder_id=request.folder_id,
                                  name=request.name, stream=request.stream, mime_type=request.mime_type,
                                  create_path=request.create_path, clobber=request.clobber)


class DriveClient:
    """
    Store + zwei Sichten: x (Root "root", spaces "drive") und
    app_data_folder (Root/spaces "appDataFolder").
    """

    def __init__(self, store: Any, salt: str | None = None, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.store = store
        self.x = DriveX(store, "root", "drive", salt=salt, chunk_size=chunk_size)
        self.app_data_folder = DriveX(store, "appDataFolder", "appDataFolder", salt=salt, chunk_size=chunk_size)

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "DriveClient":
        from drivepath_rest import RestDrive
        return cls(RestDrive(cfg), salt=cfg.get("salt") or None,
                   chunk_size=int(cfg.get("chunk_size") or DEFAULT_CHUNK_SIZE))
