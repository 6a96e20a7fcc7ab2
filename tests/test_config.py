import os

import pytest

import drivepath_lib as dp


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("DRIVE_") or name in ("LOG_LEVEL", "LOG_FILE"):
            monkeypatch.delenv(name, raising=False)


def _write(path, **values):
    path.write_text("".join(f"{k}={v}\n" for k, v in values.items()), encoding="utf-8")
    return str(path)


def test_env_file_and_defaults(tmp_path):
    env = _write(tmp_path / ".env", DRIVE_TOKEN="file-token", DRIVE_TIMEOUT="12")
    cfg = dp.effective_config(env_file=env)
    assert cfg["token"] == "file-token"
    assert cfg["timeout"] == 12
    assert cfg["chunk_size"] == dp.DEFAULT_CHUNK_SIZE
    assert cfg["api_base"] == "https://www.googleapis.com/drive/v3"
    assert cfg["log_level"] == "INFO"


def test_priority_chain(tmp_path, monkeypatch):
    _write(tmp_path / ".env", DRIVE_TOKEN="default", DRIVE_SALT="s1", DRIVE_CHUNK_SIZE="1024", LOG_LEVEL="DEBUG")
    _write(tmp_path / "work.env", DRIVE_TOKEN="profile", DRIVE_SALT="s2")
    monkeypatch.setenv("DRIVE_SALT", "s3")

    cfg = dp.effective_config(env_dir=str(tmp_path), profile="work")
    assert cfg["token"] == "profile"
    assert cfg["salt"] == "s3"
    assert cfg["chunk_size"] == 1024
    assert cfg["log_level"] == "DEBUG"

    cfg = dp.effective_config(env_dir=str(tmp_path), profile="work",
                              overrides={"token": "cli", "timeout": "5", "salt": None})
    assert cfg["token"] == "cli"
    assert cfg["timeout"] == 5
    assert cfg["salt"] == "s3"


def test_profile_from_environment(tmp_path, monkeypatch):
    _write(tmp_path / ".env", DRIVE_TOKEN="default")
    _write(tmp_path / "ci.env", DRIVE_TOKEN="ci")
    monkeypatch.setenv("DRIVE_PROFILE", "ci")
    assert dp.effective_config(env_dir=str(tmp_path))["token"] == "ci"


def test_env_file_hint(tmp_path, monkeypatch):
    env = _write(tmp_path / "custom.env", DRIVE_TOKEN="hinted")
    monkeypatch.setenv("DRIVE_ENV_FILE", env)
    assert dp.effective_config()["token"] == "hinted"


def test_missing_token(tmp_path):
    with pytest.raises(RuntimeError, match="DRIVE_TOKEN"):
        dp.effective_config(env_file=str(tmp_path / "absent.env"))


def test_bad_integer(tmp_path):
    env = _write(tmp_path / ".env", DRIVE_TOKEN="t", DRIVE_TIMEOUT="soon")
    with pytest.raises(dp.BadRequest, match="DRIVE_TIMEOUT"):
        dp.effective_config(env_file=env)


def test_load_env_file(tmp_path):
    assert dp.load_env_file(None) == {}
    assert dp.load_env_file(str(tmp_path / "nope.env")) == {}
    env = _write(tmp_path / ".env", DRIVE_TOKEN="x")
    assert dp.load_env_file(env) == {"DRIVE_TOKEN": "x"}
    # not exported
    assert "DRIVE_TOKEN" not in os.environ


def test_redact():
    assert dp._redact("DRIVE_TOKEN", "abc") == "***"
    assert dp._redact("DRIVE_CLIENT_SECRET", "abc") == "***"
    assert dp._redact("DRIVE_TIMEOUT", "30") == "30"


def test_profile_in_profiles_subfolder(tmp_path):
    env = _write(tmp_path / ".env", DRIVE_TOKEN="default", DRIVE_SALT="base")
    (tmp_path / "profiles").mkdir()
    _write(tmp_path / "profiles" / "nas.env", DRIVE_TOKEN="nas")
    cfg = dp.effective_config(env_file=env, profile="nas")
    assert cfg["token"] == "nas"
    assert cfg["salt"] == "base"


def test_unknown_profile_falls_back_to_default(tmp_path):
    env = _write(tmp_path / ".env", DRIVE_TOKEN="default")
    assert dp.effective_config(env_file=env, profile="missing")["token"] == "default"
