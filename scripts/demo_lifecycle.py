import asyncio
import os

from emitterkit.config import EmitterConfig
from emitterkit.core import log
from emitterkit.core.emitter import Emitter
from emitterkit.core.metrics import start_exporter, stop_exporter

l = log.get("demo.lifecycle")


async def main():
    cfg = EmitterConfig.from_env()
    log.setup(cfg.log_level, cfg.log_json)
    start_exporter(interval_sec=float(os.getenv("METRICS_INTERVAL", "5")), json_mode=cfg.log_json)

    bus = Emitter(cfg)
    bus.on("*", lambda key, payload=None: l.info("event %s payload=%s", key, payload))
    bus.on("user.*", lambda payload: l.info("user event %s", payload))
    bus.once("app:ready", lambda: l.info("app ready (first time only)"))

    ready = bus.wait_for("app:ready", timeout_ms=1000)
    bus.emit("user.created", {"id": "u1"})
    bus.emit("app:ready")
    bus.emit("app:ready")
    await ready

    try:
        await bus.wait_for("app:shutdown", timeout_ms=200)
    except TimeoutError as e:
        l.info("%s", e)

    stop_exporter()


if __name__ == "__main__":
    asyncio.run(main())
