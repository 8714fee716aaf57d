from __future__ import annotations

import json
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv

ENV_LEVEL = "EMITTERKIT_LOG_LEVEL"
ENV_JSON = "EMITTERKIT_LOG_JSON"

_configured = False


class JsonHandler(logging.StreamHandler):
    """One JSON object per line on stdout."""
    def __init__(self):
        super().__init__(stream=sys.stdout)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            obj = {
                "ts": record.created,
                "lvl": record.levelname,
                "name": record.name,
                "msg": record.getMessage(),
                "funcName": record.funcName,
                "lineno": record.lineno,
            }
            if record.exc_info:
                obj["exc"] = self.format(record).splitlines()[-1]
            self.stream.write(json.dumps(obj, ensure_ascii=False, default=str) + "\n")
            self.flush()
        except Exception:  # pragma: no cover
            self.handleError(record)


def _level(name: str) -> int:
    lvl = getattr(logging, name.upper(), None)
    return lvl if isinstance(lvl, int) else logging.INFO


def setup(level: Optional[str] = None, json_mode: Optional[bool] = None, *, force: bool = False) -> None:
    """Configure the root logger once.

    Falls back to EMITTERKIT_LOG_LEVEL / EMITTERKIT_LOG_JSON (a .env file is
    loaded first) when arguments are None. Later calls are ignored unless
    force=True.
    """
    global _configured
    if _configured and not force:
        return

    load_dotenv()

    py_level = _level(level or os.getenv(ENV_LEVEL, "INFO"))
    json_flag = json_mode if json_mode is not None else (os.getenv(ENV_JSON, "0") == "1")

    root = logging.getLogger()
    # drop handlers left over from earlier setups (pytest reruns etc.)
    root.handlers.clear()
    root.setLevel(py_level)

    if json_flag:
        root.addHandler(JsonHandler())
    else:
        handler = logging.StreamHandler(stream=sys.stdout)
        handler.setFormatter(logging.Formatter(fmt="[%(asctime)s] %(levelname)s %(name)s | %(message)s"))
        root.addHandler(handler)

    _configured = True


def get(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_level(level: str) -> None:
    """Adjust the root level at runtime (handy in tests)."""
    logging.getLogger().setLevel(_level(level))
