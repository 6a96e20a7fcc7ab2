#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
drivepath_cli.py – Kommandozeile für drivepath_lib.

Beispiele:
  drivepath find /Backup/2026/report.txt
  drivepath mkdir /Backup/2026/q3
  drivepath upload ./report.pdf /Backup/2026 --create-path --clobber
  drivepath cat /Backup/2026/notes --export-mime text/plain
  drivepath rm /Backup/2026/old.txt

Konfiguration wie drivepath_lib.effective_config (.env, Profil, ENV, Optionen).
"""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
import os
import sys
from typing import Any, Dict, List

import click

import drivepath_lib as dp
from drivepath_rest import preflight_or_raise


# -----------------------
# Logging
# -----------------------

def setup_logging(cfg: Dict[str, Any]) -> logging.Logger:
    """Root-Logger einmalig konfigurieren (Level aus LOG_LEVEL, optional LOG_FILE)."""
    lvl = getattr(logging, str(cfg.get("log_level") or "INFO").upper(), logging.INFO)
    logger = logging.getLogger()
    logger.setLevel(lvl)

    for h in list(logger.handlers):
        logger.removeHandler(h)

    class _LabelFilter(logging.Filter):
        def __init__(self, label: str):
            super().__init__()
            self._label = label or "-"

        def filter(self, record):
            if not hasattr(record, "source_label"):
                record.source_label = self._label
            return True

    handlers: List[logging.Handler] = []
    if cfg.get("log_file"):
        log_dir = os.path.dirname(cfg["log_file"])
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(cfg["log_file"], encoding="utf-8"))
    else:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(source_label)s] %(message)s")
    label_filter = _LabelFilter("drivepath")
    for h in handlers:
        h.setFormatter(formatter)
        h.addFilter(label_filter)
        logger.addHandler(h)
    return logger


def _guess_mime(path: str) -> str:
    mime, _ = mimetypes.guess_type(path)
    return mime or "application/octet-stream"


def _run(coro):
    """Koroutine ausführen; Fachfehler -> Meldung auf stderr und Exit-Code."""
    try:
        return asyncio.run(coro)
    except dp.BadRequest as e:
        click.echo(f"Fehler: {e}", err=True)
        sys.exit(2)
    except dp.DriveError as e:
        click.echo(f"Fehler: {e}", err=True)
        sys.exit(1)


def _drive(ctx: click.Context) -> dp.DriveX:
    obj = ctx.obj
    if "client" not in obj:
        try:
            cfg = dp.effective_config(
                env_file=obj.get("env_file"),
                overrides={"token": obj.get("token"), "timeout": obj.get("timeout")},
                profile=obj.get("profile"),
                env_dir=obj.get("env_dir"),
            )
        except RuntimeError as e:
            click.echo(f"Fehler: {e}", err=True)
            sys.exit(2)
        setup_logging(cfg)
        obj["cfg"] = cfg
        obj["client"] = dp.DriveClient.from_config(cfg)
    client = obj["client"]
    return client.app_data_folder if obj.get("app_data") else client.x


def _echo_node(node: Any) -> None:
    if isinstance(node, dict):
        click.echo(json.dumps(node, ensure_ascii=False, indent=2))
    else:
        click.echo(str(node))


# -----------------------
# CLI
# -----------------------

@click.group(context_settings=dict(help_option_names=["-h", "--help"], max_content_width=100))
@click.option("--env-file", help="Pfad zur .env-Datei.")
@click.option("--profile", help="Profilname (<profile>.env).")
@click.option("--env-dir", help="Verzeichnis mit .env und Profilen.")
@click.option("--token", help="Access-Token (überschreibt DRIVE_TOKEN).")
@click.option("--timeout", type=int, help="HTTP-Timeout in Sekunden.")
@click.option("--app-data", is_flag=True, help="appDataFolder statt Drive-Root verwenden.")
@click.pass_context
def cli(ctx, env_file, profile, env_dir, token, timeout, app_data):
    """drivepath – Dateien per Pfad statt ID ansprechen und hochladen."""
    ctx.ensure_object(dict)
    ctx.obj.update(env_file=env_file, profile=profile, env_dir=env_dir,
                   token=token, timeout=timeout, app_data=app_data)


@cli.command("about")
@click.pass_context
def about_cmd(ctx):
    """Konto und Quota anzeigen (Preflight)."""
    _drive(ctx)
    try:
        info = preflight_or_raise(ctx.obj["cfg"])
    except dp.DriveError as e:
        click.echo(f"[preflight][FAIL] {e}", err=True)
        sys.exit(12)
    _echo_node(info)


@cli.command("find")
@click.argument("path")
@click.pass_context
def find_cmd(ctx, path):
    """Metadaten zu PATH ausgeben."""
    _echo_node(_run(_drive(ctx).find_path(path)))


@cli.command("mkdir")
@click.argument("path")
@click.pass_context
def mkdir_cmd(ctx, path):
    """Ordnerpfad anlegen (fehlende Ordner werden erzeugt)."""
    _echo_node(_run(_drive(ctx).create_path(path)))


@cli.command("upload")
@click.argument("local", type=click.Path(exists=True, dir_okay=False))
@click.argument("remote_folder")
@click.option("--name", help="Zieldateiname (Default: lokaler Dateiname).")
@click.option("--mime-type", help="MIME-Typ (Default: aus Dateiendung).")
@click.option("--create-path", is_flag=True, help="Fehlende Zielordner anlegen.")
@click.option("--clobber", is_flag=True, help="Vorhandene Datei gleichen Namens ersetzen.")
@click.pass_context
def upload_cmd(ctx, local, remote_folder, name, mime_type, create_path, clobber):
    """LOCAL nach REMOTE_FOLDER hochladen."""
    drive = _drive(ctx)
    with open(local, "rb") as fh:
        node = _run(drive.upload2(
            folder_path=remote_folder,
            name=name or os.path.basename(local),
            stream=fh,
            mime_type=mime_type or _guess_mime(local),
            create_path=create_path,
            clobber=clobber,
        ))
    _echo_node(node)


@cli.command("cat")
@click.argument("path")
@click.option("--export-mime", help="Export-Format, falls der Inhalt nicht direkt ladbar ist.")
@click.pass_context
def cat_cmd(ctx, path, export_mime):
    """Inhalt von PATH nach stdout schreiben."""
    data = _run(_drive(ctx).download(path, export_mime))
    out = click.get_binary_stream("stdout")
    out.write(data)
    out.flush()


@cli.command("rm")
@click.argument("path")
@click.pass_context
def rm_cmd(ctx, path):
    """PATH löschen (Datei oder Ordner samt Inhalt)."""
    drive = _drive(ctx)

    async def go():
        node = await drive.find_path(path)
        if not isinstance(node, dict):
            raise dp.BadRequest("refusing to delete the root folder", context={"path": path})
        await drive.remove(node)
        return node

    node = _run(go())
    click.echo(f"gelöscht: {node.get('id')} {path}")


@cli.command("hexid")
@click.pass_context
def hexid_cmd(ctx):
    """HMAC-ID des Kontos (benötigt DRIVE_SALT)."""
    click.echo(_run(_drive(ctx).hexid()))


if __name__ == "__main__":
    cli()
