import textwrap

import pytest

from emitterkit.config import EmitterConfig
from emitterkit.wire_config import build_from_yaml


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("EMITTERKIT_NAME", "ui")
    monkeypatch.setenv("EMITTERKIT_ERROR_POLICY", "Propagate")
    monkeypatch.setenv("EMITTERKIT_METRICS", "0")
    monkeypatch.setenv("EMITTERKIT_LOG_JSON", "true")

    cfg = EmitterConfig.from_env()
    assert cfg.name == "ui"
    assert cfg.error_policy == "propagate"
    assert cfg.metrics_enabled is False
    assert cfg.log_json is True


def test_config_from_env_defaults(monkeypatch):
    for var in ("EMITTERKIT_NAME", "EMITTERKIT_ERROR_POLICY", "EMITTERKIT_METRICS", "EMITTERKIT_LOG_JSON"):
        monkeypatch.delenv(var, raising=False)
    cfg = EmitterConfig.from_env()
    assert cfg.name is None
    assert cfg.error_policy == "isolate"
    assert cfg.metrics_enabled is True


def test_config_from_yaml(tmp_path):
    path = tmp_path / "emitter.yaml"
    path.write_text("emitter:\n  name: app\n  error_policy: propagate\n", encoding="utf-8")

    cfg = EmitterConfig.from_yaml(path)
    assert cfg.name == "app"
    assert cfg.error_policy == "propagate"


def test_config_rejects_unknown_keys():
    with pytest.raises(ValueError, match="colour"):
        EmitterConfig.from_dict({"colour": "blue"})


def test_build_from_yaml_wires_subscriptions(tmp_path, monkeypatch):
    (tmp_path / "audit_handlers.py").write_text(
        textwrap.dedent(
            """
            seen = []

            def on_user(payload):
                seen.append(("user", payload))

            def on_first(payload):
                seen.append(("first", payload))
            """
        ),
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    cfg = tmp_path / "wiring.yaml"
    cfg.write_text(
        textwrap.dedent(
            """
            emitter:
              name: wired
            subscriptions:
              - key: "user.*"
                module: audit_handlers
                handler: on_user
              - key: "user.created"
                module: audit_handlers
                handler: on_first
                once: true
            """
        ),
        encoding="utf-8",
    )

    emitter = build_from_yaml(cfg, setup_logging=False)
    assert emitter.name == "wired"

    emitter.emit("user.created", 1)
    emitter.emit("user.created", 2)

    import audit_handlers
    assert audit_handlers.seen == [("first", 1), ("user", 1), ("user", 2)]
