"""Persistencia del jar de cookies entre ejecuciones de la CLI.

Por qué JSON plano:
- Solo guarda lo que el navegador guardaría (nombre/valor/dominio/path).
- Es una caché: la sesión siempre se revalida con `GET /me` al arrancar.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)


def load_cookies(path: Path) -> httpx.Cookies:
    """Carga cookies guardadas; un archivo ausente o corrupto da un jar vacío."""

    cookies = httpx.Cookies()
    if not path.exists():
        return cookies
    try:
        rows = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable session file %s: %s", path, exc)
        return cookies
    if not isinstance(rows, list):
        return cookies

    for row in rows:
        if not isinstance(row, dict) or not row.get("name"):
            continue
        cookies.set(
            str(row["name"]),
            str(row.get("value") or ""),
            domain=str(row.get("domain") or ""),
            path=str(row.get("path") or "/"),
        )
    return cookies


def save_cookies(cookies: httpx.Cookies, path: Path) -> Path:
    """Escribe el jar en JSON UTF-8 (formato estable)."""

    rows = [
        {
            "name": cookie.name,
            "value": cookie.value,
            "domain": cookie.domain,
            "path": cookie.path,
        }
        for cookie in cookies.jar
    ]
    path.parent.mkdir(parents=True, exist_ok=True)
    # Session cookies are credentials: owner read/write only.
    path.touch(mode=0o600, exist_ok=True)
    path.chmod(0o600)
    path.write_text(json.dumps(rows, ensure_ascii=False, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return path


def clear_cookies(path: Path) -> None:
    path.unlink(missing_ok=True)
