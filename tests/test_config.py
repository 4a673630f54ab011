"""
Tests for settings, the user .env writer and the cookie store
"""
import json
import logging
import stat
import sys

import httpx
import pytest

from adapters.cookie_store import clear_cookies, load_cookies, save_cookies
from core.config import AppSettings, write_user_env_vars
from core.logging_setup import configure_logging


def test_env_prefix_overrides_defaults(monkeypatch):
    monkeypatch.setenv("GDS_API_BASE_URL", "http://localhost:8787")
    monkeypatch.setenv("GDS_HTTP_TIMEOUT_SECONDS", "3")

    settings = AppSettings()

    assert settings.api_base_url == "http://localhost:8787"
    assert settings.http_timeout_seconds == 3.0


def test_write_user_env_vars_merges_existing(tmp_path):
    env_path = tmp_path / "cfg" / ".env"
    env_path.parent.mkdir()
    env_path.write_text("GDS_LOG_LEVEL=DEBUG\nGDS_API_BASE_URL='http://old'\n", encoding="utf-8")

    write_user_env_vars({"GDS_API_BASE_URL": "https://new.example"}, env_path=env_path)

    lines = env_path.read_text(encoding="utf-8").splitlines()
    assert "GDS_API_BASE_URL=https://new.example" in lines
    assert "GDS_LOG_LEVEL=DEBUG" in lines


def test_cookie_store_round_trip(tmp_path):
    path = tmp_path / "session.json"
    cookies = httpx.Cookies()
    cookies.set("sid", "abc", domain="api.test", path="/")

    save_cookies(cookies, path)
    loaded = load_cookies(path)

    assert loaded.get("sid", domain="api.test") == "abc"

    clear_cookies(path)
    assert not path.exists()


def test_corrupt_session_file_gives_empty_jar(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("{not json", encoding="utf-8")

    assert len(load_cookies(path).jar) == 0


def test_session_file_rows_without_name_are_skipped(tmp_path):
    path = tmp_path / "session.json"
    path.write_text(json.dumps([{"value": "x"}, "junk", {"name": "sid", "value": "1"}]), encoding="utf-8")

    assert [cookie.name for cookie in load_cookies(path).jar] == ["sid"]


def test_configure_logging_quiets_http_libraries():
    configure_logging("INFO")

    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX permissions")
def test_session_file_is_private(tmp_path):
    path = tmp_path / "session.json"
    path.write_text("[]", encoding="utf-8")
    path.chmod(0o644)
    cookies = httpx.Cookies()
    cookies.set("sid", "abc", domain="api.test", path="/")

    save_cookies(cookies, path)

    assert stat.S_IMODE(path.stat().st_mode) == 0o600
