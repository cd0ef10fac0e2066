import sys

from polyflow.runners import default_registry
from polyflow.settings import Settings, get_settings, set_settings


def test_defaults_from_empty_environment():
    settings = Settings.from_env({})

    assert settings.workflows_dir == "workflows"
    assert settings.max_concurrency == 0
    assert settings.log_level == "WARNING"
    assert settings.python_interpreter == (sys.executable or "python3")
    assert settings.shell_interpreter == "bash"
    assert settings.host == "127.0.0.1"
    assert settings.port == 3000
    assert settings.disabled_runners == frozenset()


def test_environment_overrides():
    settings = Settings.from_env({
        "POLYFLOW_WORKFLOWS_DIR": "/srv/flows",
        "POLYFLOW_MAX_CONCURRENCY": "8",
        "POLYFLOW_LOG_LEVEL": "debug",
        "POLYFLOW_NODE": "/opt/node/bin/node",
        "POLYFLOW_DISABLED_RUNNERS": "WASM, lua,,",
        "POLYFLOW_PORT": "8080",
    })

    assert settings.workflows_dir == "/srv/flows"
    assert settings.max_concurrency == 8
    assert settings.log_level == "DEBUG"
    assert settings.node_interpreter == "/opt/node/bin/node"
    assert settings.disabled_runners == frozenset({"wasm", "lua"})
    assert not settings.runner_enabled("wasm")
    assert settings.runner_enabled("python")
    assert settings.port == 8080


def test_default_registry_honours_disabled_runners():
    registry = default_registry(Settings(disabled_runners=frozenset({"wasm", "lua"})))

    assert registry.languages == ["javascript", "python", "shell"]
    assert "bash" in registry
    assert "lua" not in registry


def test_get_settings_is_cached_and_replaceable(monkeypatch):
    monkeypatch.setenv("POLYFLOW_WORKFLOWS_DIR", "from-env")
    first = get_settings()
    assert first.workflows_dir == "from-env"
    assert get_settings() is first

    custom = Settings(workflows_dir="custom")
    set_settings(custom)
    assert get_settings() is custom
