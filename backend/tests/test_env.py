from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pubg_stats import env


def test_load_env_reads_existing_files_without_overriding(tmp_path, monkeypatch) -> None:
    backend_env = tmp_path / "backend.env"
    backend_env.write_text("PUBG_API_KEY=from-backend\nPUBG_DEFAULT_PLATFORM=kakao\n", encoding="utf-8")
    root_env = tmp_path / "root.env"
    root_env.write_text("PUBG_DEFAULT_PLATFORM=psn\n", encoding="utf-8")
    monkeypatch.setattr(env, "ENV_FILES", (backend_env, tmp_path / "missing.env", root_env))
    for name in ("PUBG_API_KEY", "PUBG_DEFAULT_PLATFORM"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)

    loaded = env.load_env()

    assert loaded == [backend_env, root_env]
    assert os.environ["PUBG_API_KEY"] == "from-backend"
    assert os.environ["PUBG_DEFAULT_PLATFORM"] == "kakao"


def test_load_env_warns_when_api_key_missing(tmp_path, monkeypatch, caplog) -> None:
    monkeypatch.setattr(env, "ENV_FILES", (tmp_path / "missing.env",))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PUBG_API_KEY", "")

    with caplog.at_level(logging.WARNING, logger="pubg_stats.env"):
        env.load_env()

    assert "PUBG_API_KEY is not set" in caplog.text
