from __future__ import annotations

import logging
import threading
import time
from collections import deque
from statistics import mean
from typing import Any, Deque, Dict, List, Optional, Tuple

LabelKey = Tuple[Tuple[str, str], ...]
MetricKey = Tuple[str, LabelKey]


def _labels_key(labels: Dict[str, Any] | None) -> LabelKey:
    if not labels:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _pct(vals: List[float], q: float) -> float:
    if not vals:
        return 0.0
    idx = max(0, min(len(vals) - 1, int(round((len(vals) - 1) * q))))
    return vals[idx]


class _Hist:
    def __init__(self, maxlen: int = 1024):
        self.values: Deque[float] = deque(maxlen=maxlen)

    def snapshot(self) -> Dict[str, float]:
        vals = sorted(self.values)
        if not vals:
            return {"count": 0, "min": 0.0, "max": 0.0, "mean": 0.0, "p50": 0.0, "p99": 0.0}
        return {
            "count": float(len(vals)),
            "min": vals[0],
            "max": vals[-1],
            "mean": mean(vals),
            "p50": _pct(vals, 0.50),
            "p99": _pct(vals, 0.99),
        }


class _Registry:
    """Counters, gauges and histograms keyed by (name, sorted labels)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.counters: Dict[MetricKey, float] = {}
        self.gauges: Dict[MetricKey, float] = {}
        self.hists: Dict[MetricKey, _Hist] = {}

    def inc(self, key: MetricKey, n: float) -> None:
        with self._lock:
            self.counters[key] = self.counters.get(key, 0.0) + n

    def set(self, key: MetricKey, v: float) -> None:
        with self._lock:
            self.gauges[key] = float(v)

    def observe(self, key: MetricKey, v: float) -> None:
        with self._lock:
            h = self.hists.get(key)
            if h is None:
                h = self.hists[key] = _Hist()
            h.values.append(float(v))

    def snapshot(self) -> dict:
        with self._lock:
            counters = list(self.counters.items())
            gauges = list(self.gauges.items())
            hists = [(k, h.snapshot()) for k, h in self.hists.items()]
        return {
            "counters": [{"name": n, "labels": dict(l), "value": v} for (n, l), v in counters],
            "gauges": [{"name": n, "labels": dict(l), "value": v} for (n, l), v in gauges],
            "hists": [{"name": n, "labels": dict(l), **s} for (n, l), s in hists],
        }

    def reset(self) -> None:
        with self._lock:
            self.counters.clear()
            self.gauges.clear()
            self.hists.clear()


_REG = _Registry()


def inc(name: str, n: float = 1.0, **labels: Any) -> None:
    _REG.inc((name, _labels_key(labels)), n)


def gauge_set(name: str, v: float, **labels: Any) -> None:
    _REG.set((name, _labels_key(labels)), v)


def observe_hist(name: str, v: float, **labels: Any) -> None:
    _REG.observe((name, _labels_key(labels)), v)


def snapshot_all() -> dict:
    """Current metrics as plain dicts (for tests and the exporter)."""
    return _REG.snapshot()


def counter_value(name: str, **labels: Any) -> float:
    return _REG.counters.get((name, _labels_key(labels)), 0.0)


def gauge_value(name: str, **labels: Any) -> float:
    return _REG.gauges.get((name, _labels_key(labels)), 0.0)


def reset() -> None:
    _REG.reset()


class Timer:
    """Context manager: records elapsed milliseconds into a histogram."""
    def __init__(self, hist_name: str, enabled: bool = True, **labels: Any) -> None:
        self.hist_name = hist_name
        self.enabled = enabled
        self.labels = labels
        self._t0 = 0.0

    def __enter__(self):
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.enabled:
            observe_hist(self.hist_name, (time.perf_counter() - self._t0) * 1000.0, **self.labels)
        return False


# ---------------- Exporter (log every N seconds) ----------------

class _Exporter(threading.Thread):
    def __init__(self, interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None):
        super().__init__(name="metrics-exporter", daemon=True)
        self.interval = max(0.1, float(interval_sec))
        self.json_mode = bool(json_mode)
        self.log = logger or logging.getLogger("emitterkit.metrics")
        self._stop_evt = threading.Event()

    def run(self) -> None:
        while not self._stop_evt.wait(self.interval):
            emit_snapshot(self.log, self.json_mode)

    def stop(self, timeout: float = 1.0) -> None:
        self._stop_evt.set()
        self.join(timeout=timeout)


def emit_snapshot(logger: logging.Logger, json_mode: bool = False) -> None:
    snap = snapshot_all()
    if json_mode:
        for kind in ("counters", "gauges", "hists"):
            for m in snap[kind]:
                logger.info({"type": kind, **m})
        return
    for m in snap["counters"]:
        logger.info("[ctr] %s %s value=%.0f", m["name"], m["labels"], m["value"])
    for m in snap["gauges"]:
        logger.info("[gauge] %s %s value=%.3f", m["name"], m["labels"], m["value"])
    for m in snap["hists"]:
        logger.info(
            "[hist] %s %s n=%d p50=%.3f p99=%.3f max=%.3f",
            m["name"], m["labels"], int(m["count"]), m["p50"], m["p99"], m["max"],
        )


_EXPORTER: Optional[_Exporter] = None


def start_exporter(interval_sec: float = 5.0, json_mode: bool = False, logger: Optional[logging.Logger] = None) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        return
    _EXPORTER = _Exporter(interval_sec=interval_sec, json_mode=json_mode, logger=logger)
    _EXPORTER.start()


def stop_exporter(timeout: float = 1.0) -> None:
    global _EXPORTER
    if _EXPORTER is not None:
        _EXPORTER.stop(timeout=timeout)
        _EXPORTER = None
