"""
Unit tests for configuration and the command line.
"""

import pytest

from sloth.__main__ import build_parser, main
from sloth.config import APIConfig, ServerConfig, validate_port


class TestAPIConfig:
    def test_defaults(self):
        config = APIConfig()

        assert config.parse_form is True
        assert config.default_content_type == "application/json"
        config.validate()

    def test_empty_content_type_allowed(self):
        APIConfig(default_content_type="").validate()

    @pytest.mark.parametrize("value", ["a\r\nb", "a\nb", None])
    def test_invalid_content_type(self, value):
        with pytest.raises(ValueError):
            APIConfig(default_content_type=value).validate()


class TestServerConfig:
    def test_defaults_valid(self):
        ServerConfig().validate()

    @pytest.mark.parametrize("overrides", [
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"queue_size": 0},
        {"buffer_size": 512},
        {"timeout": 0},
        {"keep_alive_timeout": -1},
        {"log_level": "LOUD"},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_no_timeout(self):
        ServerConfig(timeout=None).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SLOTH_HOST", "0.0.0.0")
        monkeypatch.setenv("SLOTH_WORKERS", "32")
        monkeypatch.setenv("SLOTH_TIMEOUT", "2.5")
        monkeypatch.setenv("SLOTH_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.max_workers == 32
        assert config.timeout == 2.5
        assert config.log_level == "DEBUG"

    def test_from_env_defaults(self, monkeypatch):
        for name in ("SLOTH_HOST", "SLOTH_WORKERS", "SLOTH_TIMEOUT", "SLOTH_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()


class TestValidatePort:
    @pytest.mark.parametrize("port", [0, 80, 65535])
    def test_valid(self, port):
        validate_port(port)

    @pytest.mark.parametrize("port", [-1, 65536])
    def test_invalid(self, port):
        with pytest.raises(ValueError):
            validate_port(port)


class TestCommandLine:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SLOTH_LOG_LEVEL", raising=False)
        args = build_parser().parse_args([])

        assert args.port == 8080
        assert args.log_level == "INFO"
        assert args.content_type == "application/json"
        assert not args.no_parse_form
        assert not args.gzip

    def test_log_level_case_insensitive(self):
        args = build_parser().parse_args(["--log-level", "debug"])
        assert args.log_level == "DEBUG"

    def test_invalid_workers(self, capsys):
        assert main(["--workers", "0"]) == 2
        assert "Error:" in capsys.readouterr().err

    @pytest.mark.parametrize("name, value", [("SLOTH_WORKERS", "lots"), ("SLOTH_TIMEOUT", "soon")])
    def test_invalid_environment(self, monkeypatch, capsys, name, value):
        monkeypatch.setenv(name, value)

        assert main([]) == 2
        assert "Error:" in capsys.readouterr().err

    def test_invalid_port(self, capsys):
        assert main(["--port", "70000"]) == 1
        assert "Invalid port" in capsys.readouterr().err
