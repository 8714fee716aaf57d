import json
import logging

import pytest

from emitterkit.config import EmitterConfig
from emitterkit.core import log, metrics
from emitterkit.core.emitter import Emitter
from emitterkit.core.errors import HandlerError


def test_emit_records_counters_and_latency(emitter):
    emitter.on("ping", lambda p: None)
    emitter.emit("ping", 1)
    emitter.emit("other")

    assert metrics.counter_value("emitter_emit_total", emitter="test") == 2
    assert metrics.gauge_value("emitter_listeners", emitter="test") == 1
    hists = [h for h in metrics.snapshot_all()["hists"] if h["name"] == "emitter_emit_ms"]
    assert hists and hists[0]["count"] == 2


def test_handler_errors_are_counted(emitter):
    def boom(_):
        raise RuntimeError("x")

    emitter.on("ping", boom)
    with pytest.raises(HandlerError):
        emitter.emit("ping", 1)
    assert metrics.counter_value("emitter_handler_errors_total", emitter="test") == 1


@pytest.mark.asyncio
async def test_wait_outcomes_are_counted(emitter):
    fut = emitter.wait_for("ping")
    emitter.emit("ping", 1)
    await fut
    assert metrics.counter_value("emitter_wait_total", emitter="test", outcome="resolved") == 1


def test_metrics_can_be_disabled():
    quiet = Emitter(EmitterConfig(name="quiet", metrics_enabled=False))
    quiet.on("ping", lambda p: None)
    quiet.emit("ping", 1)
    assert metrics.counter_value("emitter_emit_total", emitter="quiet") == 0
    assert metrics.gauge_value("emitter_listeners", emitter="quiet") == 0


def test_emit_snapshot_logs_metrics(emitter, caplog):
    emitter.emit("ping", 1)
    logger = logging.getLogger("emitterkit.metrics.test")
    with caplog.at_level(logging.INFO, logger="emitterkit.metrics.test"):
        metrics.emit_snapshot(logger)
    assert any("emitter_emit_total" in r.getMessage() for r in caplog.records)


def test_emitter_logs_registrations_at_debug(emitter, caplog):
    with caplog.at_level(logging.DEBUG, logger="emitterkit.test"):
        unsub = emitter.on("ping", print)
        unsub()
    msgs = [r.getMessage() for r in caplog.records if r.name == "emitterkit.test"]
    assert any(m.startswith("on exact='ping'") for m in msgs)
    assert any(m.startswith("off exact='ping'") for m in msgs)


def test_json_handler_writes_one_object_per_line(capsys):
    handler = log.JsonHandler()
    rec = logging.LogRecord("emitterkit.x", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    handler.emit(rec)
    line = capsys.readouterr().out.strip()
    obj = json.loads(line)
    assert obj["msg"] == "hello world"
    assert obj["name"] == "emitterkit.x"


def test_default_emitters_keep_separate_listener_gauges():
    a, b = Emitter(), Emitter()
    a.on("ping", print)
    a.on("pong", print)
    b.on("ping", print)

    assert metrics.gauge_value("emitter_listeners", emitter=a.name) == 2
    assert metrics.gauge_value("emitter_listeners", emitter=b.name) == 1
