from __future__ import annotations

import json
from pathlib import Path

import pytest

from voicesub.app import config as app_config


def test_load_default_config_contains_expected_keys() -> None:
    cfg = app_config.load_default_config()
    assert cfg["translator"] in {"mymemory", "argos", "stub"}
    assert cfg["max_attempts"] == 3
    assert cfg["full_text_cap"] == 500
    assert cfg["segment_cap"] == 20
    assert cfg["api_url"].startswith("https://")


def test_resolve_defaults_uses_explicit_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "explicit.json"
    cfg_path.write_text(json.dumps({"target_lang": "ru", "model": "base"}), encoding="utf-8")
    defaults, used = app_config.resolve_defaults(str(cfg_path))
    assert used == cfg_path
    assert defaults["target_lang"] == "ru"
    assert defaults["model"] == "base"


def test_ensure_user_config_exists_creates_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    created = app_config.ensure_user_config_exists({"translator": "stub", "target_lang": "uz"})
    assert created.exists()
    loaded = json.loads(created.read_text(encoding="utf-8"))
    assert loaded["translator"] == "stub"
    assert loaded["target_lang"] == "uz"


def test_load_user_config_ignores_unknown_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"sr": 48000, "translator": "argos", "unexpected": 1}),
        encoding="utf-8",
    )
    loaded, used = app_config.load_user_config(str(cfg_path))
    assert used == cfg_path
    assert loaded["sr"] == 48000
    assert loaded["translator"] == "argos"
    assert "unexpected" not in loaded


def test_load_user_config_accepts_bom(tmp_path: Path) -> None:
    cfg_path = tmp_path / "bom.json"
    cfg_path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"source_lang": "en"}).encode("utf-8"))
    loaded, _used = app_config.load_user_config(str(cfg_path))
    assert loaded["source_lang"] == "en"


def test_save_user_config_merges_and_filters_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"sr": 16000, "translator": "stub", "debug": False}),
        encoding="utf-8",
    )
    saved = app_config.save_user_config(
        {"translator": "mymemory", "segment_cap": 5, "junk": "x"},
        config_path=str(cfg_path),
    )
    assert saved == cfg_path
    loaded = json.loads(cfg_path.read_text(encoding="utf-8"))
    assert loaded["sr"] == 16000
    assert loaded["translator"] == "mymemory"
    assert loaded["segment_cap"] == 5
    assert "junk" not in loaded


def test_cli_flags_override_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(json.dumps({"target_lang": "ru", "max_attempts": 5}), encoding="utf-8")
    args = app_config.resolve_args(["--config", str(cfg_path), "--target-lang", "de"])
    assert args.target_lang == "de"
    assert args.max_attempts == 5


@pytest.mark.parametrize(
    "flags",
    [["--max-attempts", "0"], ["--target-lang", "auto"], ["--base-delay-sec", "-1"], ["--duration", "0"]],
)
def test_invalid_flags_are_rejected(tmp_path: Path, flags) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text("{}", encoding="utf-8")
    with pytest.raises(SystemExit):
        app_config.resolve_args(["--config", str(cfg_path), *flags])
