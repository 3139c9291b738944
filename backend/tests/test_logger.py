import json
import logging
import sys

from app.utils.logger import JsonFormatter


def make_record(**extra):
    record = logging.LogRecord("matchday.settlement", logging.INFO, __file__, 10, "Settling match %s", ("m1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_carries_match_context():
    data = json.loads(JsonFormatter("test").format(make_record(match_id="m1", job="sweep")))

    assert data["message"] == "Settling match m1"
    assert data["logger"] == "matchday.settlement"
    assert data["environment"] == "test"
    assert data["match_id"] == "m1"
    assert data["job"] == "sweep"
    assert "player_id" not in data


def test_json_formatter_includes_exception():
    try:
        raise ValueError("bad start_time")
    except ValueError:
        record = logging.LogRecord("matchday", logging.ERROR, __file__, 1, "boom", (), sys.exc_info())

    data = json.loads(JsonFormatter("test").format(record))
    assert data["exception"] == {"type": "ValueError", "message": "bad start_time"}
