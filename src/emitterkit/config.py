# src/emitterkit/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

ERROR_POLICIES = ("isolate", "propagate")


def _flag(raw: str | None, default: bool) -> bool:
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(slots=True)
class EmitterConfig:
    """Runtime settings for one Emitter instance.

    name labels logs and metrics; left as None, each Emitter picks a
    unique "emitter-N" so instances never share a metrics series.

    error_policy:
      - "isolate":   every handler in a snapshot runs; the first failure is
                     raised as HandlerError once the snapshot is done.
      - "propagate": the first failure is raised immediately.
    """

    name: Optional[str] = None
    error_policy: str = "isolate"
    metrics_enabled: bool = True
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self) -> None:
        if self.error_policy not in ERROR_POLICIES:
            raise ValueError(
                f"error_policy must be one of {', '.join(ERROR_POLICIES)}; got {self.error_policy!r}"
            )

    @classmethod
    def from_env(cls) -> "EmitterConfig":
        load_dotenv()
        return cls(
            name=os.getenv("EMITTERKIT_NAME", "").strip() or None,
            error_policy=os.getenv("EMITTERKIT_ERROR_POLICY", "isolate").strip().lower(),
            metrics_enabled=_flag(os.getenv("EMITTERKIT_METRICS"), True),
            log_level=os.getenv("EMITTERKIT_LOG_LEVEL", "INFO"),
            log_json=_flag(os.getenv("EMITTERKIT_LOG_JSON"), False),
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any] | None) -> "EmitterConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(d or {}) - known
        if unknown:
            raise ValueError(f"unknown emitter settings: {', '.join(sorted(unknown))}")
        return cls(**(d or {}))

    @classmethod
    def from_yaml(cls, path: str | Path) -> "EmitterConfig":
        """Read the `emitter:` section of a YAML file."""
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        return cls.from_dict(data.get("emitter"))
