"""Tests for the JSONL logging sink."""

import json
import logging

import pytest

from tracemap_cli.logging_setup import JsonlHandler
from tracemap_cli.logging_setup import init_json_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


def test_writes_one_json_object_per_record(tmp_path, restore_root_logger):
    log_path = tmp_path / "logs" / "tracemap.log.jsonl"
    init_json_logging(str(log_path), "debug")

    logging.getLogger("tracemap_cli.test").info("hello", extra={"event": "install", "url": "https://cdn.example.com/a.js"})

    lines = log_path.read_text().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["message"] == "hello"
    assert payload["lvl"] == "INFO"
    assert payload["logger"] == "tracemap_cli.test"
    assert payload["event"] == "install"
    assert payload["url"] == "https://cdn.example.com/a.js"


def test_dict_messages_are_merged(tmp_path):
    handler = JsonlHandler(str(tmp_path / "log.jsonl"))
    record = logging.LogRecord("x", logging.INFO, __file__, 1, {"event": "trace", "modules": 3}, None, None)

    payload = handler.build_payload(record)

    assert payload["event"] == "trace"
    assert payload["modules"] == 3


def test_reinit_replaces_handler(tmp_path, restore_root_logger):
    init_json_logging(str(tmp_path / "a.jsonl"))
    init_json_logging(str(tmp_path / "b.jsonl"))

    sinks = [h for h in logging.getLogger().handlers if isinstance(h, JsonlHandler)]
    assert len(sinks) == 1
    assert sinks[0].path == tmp_path / "b.jsonl"
