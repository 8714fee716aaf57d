# tests/conftest.py
import logging
import os

import pytest

from emitterkit.core import log, metrics
from emitterkit.core.emitter import Emitter


@pytest.fixture(scope="session", autouse=True)
def _bootstrap_logging_and_metrics():
    # reads EMITTERKIT_LOG_LEVEL / EMITTERKIT_LOG_JSON / .env if available
    log.setup()

    interval = float(os.getenv("METRICS_INTERVAL_TEST", "1.0"))
    json_mode = os.getenv("EMITTERKIT_LOG_JSON", "0") == "1"
    metrics.start_exporter(interval_sec=interval, json_mode=json_mode,
                           logger=logging.getLogger("emitterkit.metrics"))
    yield
    metrics.stop_exporter()


@pytest.fixture(autouse=True)
def _fresh_metrics():
    metrics.reset()
    yield


@pytest.fixture
def emitter():
    return Emitter(name="test")
