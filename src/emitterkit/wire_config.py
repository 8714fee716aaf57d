# src/emitterkit/wire_config.py
from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Callable, Dict

import yaml

from emitterkit.config import EmitterConfig
from emitterkit.core import log
from emitterkit.core.emitter import Emitter


def _imp(module: str, attr: str) -> Callable[..., Any]:
    mod = importlib.import_module(module)
    fn = getattr(mod, attr)
    if not callable(fn):
        raise TypeError(f"{module}.{attr} is not callable")
    return fn


def build_from_yaml(yaml_path: str | Path, *, setup_logging: bool = True) -> Emitter:
    """Build an Emitter from a YAML file and wire its declared subscriptions.

    emitter:
      name: app
      error_policy: isolate
    subscriptions:
      - key: "user.*"
        module: myapp.audit
        handler: on_user_event
        once: false
    """
    data: Dict[str, Any] = yaml.safe_load(Path(yaml_path).read_text(encoding="utf-8")) or {}
    cfg = EmitterConfig.from_dict(data.get("emitter"))
    if setup_logging:
        log.setup(cfg.log_level, cfg.log_json)

    emitter = Emitter(cfg)
    for sub in data.get("subscriptions") or []:
        fn = _imp(sub["module"], sub["handler"])
        if sub.get("once", False):
            emitter.once(sub["key"], fn)
        else:
            emitter.on(sub["key"], fn)
    return emitter
