import json
import os

from loguru import logger
import pytest

from infrastructure.logging import find_latest_log_file, get_log_directory, init_logging
from infrastructure.settings import JsonSettings


def _settings(tmp_path, data):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return JsonSettings(path)


def test_dotted_keys(tmp_path):
    settings = _settings(tmp_path, {"thumbnail": {"max_dimension": 256}, "slideshow": {}})
    assert settings.get("thumbnail.max_dimension") == 256
    assert settings.get("thumbnail.missing", "x") == "x"
    assert settings.get("slideshow.interval.deeper") is None


def test_typed_getters_fall_back(tmp_path):
    settings = _settings(
        tmp_path, {"a": "12", "b": "fast", "c": 0, "d": "2.5", "e": None}
    )
    assert settings.get_int("a", 1) == 12
    assert settings.get_int("b", 1) == 1
    assert settings.get_int("c", 300) == 0
    assert settings.get_int("missing", 7) == 7
    assert settings.get_float("d", 3.0) == 2.5
    assert settings.get_float("e", 3.0) == 3.0


def test_missing_settings_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        JsonSettings(tmp_path / "nope.json")


def test_bundled_settings_file_loads():
    root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    settings = JsonSettings(os.path.join(root, "settings.json"))
    assert settings.get_int("thumbnail.max_dimension", 0) > 0
    assert 1 <= settings.get_float("slideshow.interval", 0) <= 30


def test_log_directory_expansion(monkeypatch, tmp_path):
    monkeypatch.setenv("LV_LOGS", str(tmp_path))
    assert get_log_directory("$LV_LOGS/app") == os.path.join(str(tmp_path), "app")
    assert get_log_directory("~/logs") == os.path.join(os.path.expanduser("~"), "logs")
    assert get_log_directory(None).endswith("logs")


def test_init_logging_writes_file(tmp_path):
    log_dir = tmp_path / "logs"
    try:
        assert init_logging(str(log_dir), "DEBUG") == log_dir
        logger.info("hello {}", "viewer")
        logger.complete()
        latest = find_latest_log_file(str(log_dir))
        assert latest is not None
        assert latest.name.startswith("app_")
    finally:
        logger.remove()


def test_find_latest_log_file_without_logs(tmp_path):
    assert find_latest_log_file(str(tmp_path / "none")) is None
    assert find_latest_log_file(str(tmp_path)) is None


def test_console_sink_echoes_to_stderr(tmp_path, capsys):
    try:
        init_logging(str(tmp_path), "DEBUG", console=True)
        logger.debug("scan {}", "done")
        logger.complete()
    finally:
        logger.remove()
    assert "scan done" in capsys.readouterr().err
