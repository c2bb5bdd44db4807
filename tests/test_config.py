from __future__ import annotations

import os

import pytest

from monitor import config
from monitor.config import DEFAULT_CONFIG, ConfigError, load_config, split_endpoint, validate_config
from monitor.main import build_config, build_session, main, parse_args


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in DEFAULT_CONFIG:
        monkeypatch.delenv(f"MONITOR_{key.upper()}", raising=False)
    monkeypatch.setattr(config, "MONITOR_CONFIG", DEFAULT_CONFIG.copy())
    yield
    # load_dotenv writes straight into os.environ
    for key in DEFAULT_CONFIG:
        os.environ.pop(f"MONITOR_{key.upper()}", None)


def test_defaults(tmp_path):
    loaded = load_config(str(tmp_path / "missing.env"))

    assert loaded["client_port"] == "localhost:36330"
    assert loaded["heartbeat_interval"] == 60
    assert loaded["reconnect_backoff"] == 5.0


def test_environment_overrides_are_coerced(tmp_path, monkeypatch):
    monkeypatch.setenv("MONITOR_HEARTBEAT_INTERVAL", "15")
    monkeypatch.setenv("MONITOR_RECONNECT_BACKOFF", "0.5")
    monkeypatch.setenv("MONITOR_CLIENT_NAME", "rig-7")

    loaded = load_config(str(tmp_path / "missing.env"))

    assert loaded["heartbeat_interval"] == 15
    assert loaded["reconnect_backoff"] == 0.5
    assert loaded["client_name"] == "rig-7"


def test_env_file_is_read(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("MONITOR_CLIENT_PORT=fah.local:36331\nMONITOR_INDEX_PREFIX=fah\n")

    loaded = load_config(str(env_file))

    assert loaded["client_port"] == "fah.local:36331"
    assert loaded["index_prefix"] == "fah"


@pytest.mark.parametrize(
    "name, value",
    [
        ("MONITOR_HEARTBEAT_INTERVAL", "soon"),
        ("MONITOR_SLOT_INFO_INTERVAL", "0"),
        ("MONITOR_CLIENT_PORT", "36330"),
        ("MONITOR_RECONNECT_BACKOFF", "-1"),
        ("MONITOR_ELASTICSEARCH", " , "),
        ("MONITOR_LOG_LEVEL", "chatty"),
    ],
)
def test_invalid_values(tmp_path, monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    args = parse_args(["--env-file", str(tmp_path / "missing.env")])

    with pytest.raises(ConfigError):
        build_config(args)


def test_split_endpoint():
    assert split_endpoint("localhost:36330") == ("localhost", 36330)
    assert split_endpoint("[::1]:36330") == ("::1", 36330)
    for bad in ("localhost", ":36330", "host:port", "host:70000"):
        with pytest.raises(ConfigError):
            split_endpoint(bad)


def test_validate_config_normalizes_log_level():
    settings = DEFAULT_CONFIG.copy()
    settings["log_level"] = "debug"

    validate_config(settings)

    assert settings["log_level"] == "DEBUG"


def test_command_line_overrides_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("MONITOR_CLIENT_NAME", "from-env")
    args = parse_args(["--client-name", "from-cli", "--env-file", str(tmp_path / "missing.env")])

    settings = build_config(args)

    assert settings["client_name"] == "from-cli"
    assert settings["client_port"] == "localhost:36330"


def test_command_line_replaces_invalid_environment_value(tmp_path, monkeypatch):
    monkeypatch.setenv("MONITOR_CLIENT_PORT", "36330")
    args = parse_args(["--client-port", "fah.local:36330", "--env-file", str(tmp_path / "missing.env")])

    settings = build_config(args)

    assert settings["client_port"] == "fah.local:36330"


def test_load_config_leaves_validation_to_caller(tmp_path, monkeypatch):
    monkeypatch.setenv("MONITOR_CLIENT_PORT", "36330")

    assert load_config(str(tmp_path / "missing.env"))["client_port"] == "36330"


def test_build_session_watches_all_kinds():
    settings = DEFAULT_CONFIG.copy()
    settings["slot_info_interval"] = 45

    session = build_session(settings)

    assert [(s.target, s.interval) for s in session.subscriptions] == [
        ("$heartbeat", 60),
        ("$queue-info", 30),
        ("$slot-info", 45),
    ]
    assert session.endpoint == "localhost:36330"


def test_main_rejects_bad_configuration(tmp_path, capsys):
    status = main(["--client-port", "nowhere", "--env-file", str(tmp_path / "missing.env")])

    assert status == 2
    assert "configuration error" in capsys.readouterr().err
