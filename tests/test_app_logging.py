from __future__ import annotations

import json
import logging
from pathlib import Path

from voicesub.app import config as app_config
from voicesub.app.logging_setup import setup_app_logger


def test_setup_app_logger_writes_json_line(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    logger, log_dir, log_path = setup_app_logger("voicesub.test")

    logger.info("hello", extra={"event": "test_event", "value": 7})
    for h in logger.handlers:
        h.flush()

    assert log_dir == tmp_path / "logs"
    assert log_path.exists()
    lines = [ln for ln in log_path.read_text(encoding="utf-8").splitlines() if ln.strip()]
    assert lines
    payload = json.loads(lines[-1])
    assert payload["message"] == "hello"
    assert payload["event"] == "test_event"
    assert payload["value"] == 7
    assert payload["level"] == "INFO"

    for h in logger.handlers:
        h.close()
    logging.getLogger("voicesub.test").handlers.clear()


def test_child_module_loggers_share_the_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    logger, _log_dir, log_path = setup_app_logger("voicesub.parent", debug=True)

    logging.getLogger("voicesub.parent.child").debug("segment_finalized", extra={"segment_id": "seg-1"})
    for h in logger.handlers:
        h.flush()

    payload = json.loads(log_path.read_text(encoding="utf-8").splitlines()[-1])
    assert payload["logger"] == "voicesub.parent.child"
    assert payload["segment_id"] == "seg-1"
    assert payload["level"] == "DEBUG"

    for h in logger.handlers:
        h.close()
    logging.getLogger("voicesub.parent").handlers.clear()
