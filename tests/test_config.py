import pytest

from liqid_k8s import config
from liqid_k8s.config import load_settings
from liqid_k8s.errors import ConfigurationError


@pytest.fixture(autouse=True)
def no_default_file(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DEFAULT_CONFIG_PATH", tmp_path / "absent" / "config.yaml")


def test_defaults_without_file_or_env():
    settings = load_settings(environ={})
    assert settings.proxy_url is None
    assert settings.timeout_s == 300
    assert settings.log_level == "WARNING"
    assert settings.fabric_port == 8080
    assert not settings.force and not settings.no_update


def test_yaml_file_then_environment(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("proxy_url: http://127.0.0.1:8001\ntimeout_s: 60\nlog_level: info\n")

    settings = load_settings(str(path), environ={"LIQID_K8S_TIMEOUT": "90"})

    assert settings.proxy_url == "http://127.0.0.1:8001"
    assert settings.timeout_s == 90
    assert settings.log_level == "INFO"


def test_config_path_from_environment(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("fabric_port: 9090\n")
    settings = load_settings(environ={"LIQID_K8S_CONFIG": str(path)})
    assert settings.fabric_port == 9090


def test_command_line_overrides_win(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("timeout_s: 60\n")
    settings = load_settings(str(path), environ={}).with_overrides(timeout_s=5, proxy_url=None, force=True)
    assert settings.timeout_s == 5
    assert settings.proxy_url is None
    assert settings.force


def test_missing_explicit_file_is_an_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_settings(str(tmp_path / "absent.yaml"), environ={})


def test_malformed_yaml_is_an_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("timeout_s: [unclosed\n")
    with pytest.raises(ConfigurationError):
        load_settings(str(path), environ={})


def test_non_mapping_yaml_is_an_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError):
        load_settings(str(path), environ={})


@pytest.mark.parametrize("value", ["soon", "0", "-3"])
def test_bad_timeout_is_an_error(value):
    with pytest.raises(ConfigurationError):
        load_settings(environ={"LIQID_K8S_TIMEOUT": value})
