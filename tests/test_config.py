"""Tests for environment-driven defaults."""

import os

from projectxfer import config


def test_defaults_without_environment():
    assert config.export_dir() == config.DEFAULT_EXPORT_DIR
    assert config.http_timeout() == config.DEFAULT_HTTP_TIMEOUT
    assert config.verify_tls() is False
    assert config.endpoint_default("source_url") is None
    assert config.endpoint_default("not_an_option") is None


def test_invalid_timeout_falls_back(monkeypatch):
    monkeypatch.setenv("PROJECTXFER_HTTP_TIMEOUT", "soon")
    assert config.http_timeout() == config.DEFAULT_HTTP_TIMEOUT
    monkeypatch.setenv("PROJECTXFER_HTTP_TIMEOUT", "-5")
    assert config.http_timeout() == config.DEFAULT_HTTP_TIMEOUT
    monkeypatch.setenv("PROJECTXFER_HTTP_TIMEOUT", "45.5")
    assert config.http_timeout() == 45.5


def test_verify_tls_truthy_values(monkeypatch):
    for value in ("1", "true", "YES", " on "):
        monkeypatch.setenv("PROJECTXFER_VERIFY_TLS", value)
        assert config.verify_tls() is True
    monkeypatch.setenv("PROJECTXFER_VERIFY_TLS", "0")
    assert config.verify_tls() is False


def test_blank_values_are_treated_as_unset(monkeypatch):
    monkeypatch.setenv("PROJECTXFER_SOURCE_URL", "   ")
    assert config.endpoint_default("source_url") is None


def test_dotenv_does_not_override_process_env(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "PROJECTXFER_SOURCE_URL=https://from-file:9443\nPROJECTXFER_TARGET_URL=https://target-file:9443\n"
    )
    monkeypatch.setenv("PROJECTXFER_SOURCE_URL", "https://from-env:9443")

    config.load_env(str(env_file))
    try:
        assert config.endpoint_default("source_url") == "https://from-env:9443"
        assert config.endpoint_default("target_url") == "https://target-file:9443"
    finally:
        os.environ.pop("PROJECTXFER_TARGET_URL", None)
