"""
Unit tests for ServerConfig and command-line handling.
"""

from pathlib import Path

import pytest

from rawhttp.config import ServerConfig
from rawhttp.__main__ import parse_args, build_config, main


class TestServerConfig:

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "localhost"
        assert config.port == 4221
        assert config.directory is None
        assert config.timeout is None
        config.validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"backlog": 0},
        {"buffer_size": 0},
        {"timeout": 0},
        {"keep_alive_timeout": 0},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"queue_size": 0},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
    ])
    def test_invalid_values(self, overrides: dict):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_missing_directory(self, tmp_path: Path):
        with pytest.raises(ValueError, match="does not exist"):
            ServerConfig(directory=str(tmp_path / "nope")).validate()

    def test_existing_directory(self, storage_dir: Path):
        ServerConfig(directory=str(storage_dir)).validate()

    def test_log_level_any_case(self):
        ServerConfig(log_level="debug").validate()


class TestFromEnv:

    def test_reads_variables(self, monkeypatch: pytest.MonkeyPatch, storage_dir: Path):
        monkeypatch.setenv("RAWHTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("RAWHTTP_PORT", "8080")
        monkeypatch.setenv("RAWHTTP_DIRECTORY", str(storage_dir))
        monkeypatch.setenv("RAWHTTP_WORKERS", "16")
        monkeypatch.setenv("RAWHTTP_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.directory == str(storage_dir)
        assert config.max_workers == 16
        assert config.log_level == "DEBUG"

    def test_defaults_when_unset(self, monkeypatch: pytest.MonkeyPatch):
        for name in ("RAWHTTP_HOST", "RAWHTTP_PORT", "RAWHTTP_DIRECTORY",
                     "RAWHTTP_WORKERS", "RAWHTTP_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    def test_bad_number(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RAWHTTP_PORT", "eighty")

        with pytest.raises(ValueError):
            ServerConfig.from_env()


class TestCommandLine:

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch: pytest.MonkeyPatch):
        for name in ("RAWHTTP_HOST", "RAWHTTP_PORT", "RAWHTTP_DIRECTORY",
                     "RAWHTTP_WORKERS", "RAWHTTP_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

    def test_no_flags_keeps_defaults(self):
        assert build_config(parse_args([])) == ServerConfig()

    def test_flags_override(self, storage_dir: Path):
        args = parse_args([
            "--host", "0.0.0.0",
            "-p", "9000",
            "--directory", str(storage_dir),
            "--log-level", "DEBUG",
            "--log-format", "json",
        ])
        config = build_config(args)

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.directory == str(storage_dir)
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_flags_beat_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("RAWHTTP_PORT", "8080")

        assert build_config(parse_args([])).port == 8080
        assert build_config(parse_args(["--port", "9090"])).port == 9090

    def test_workers_lowers_min(self):
        config = build_config(parse_args(["--workers", "2"]))

        assert config.max_workers == 2
        assert config.min_workers == 2
        config.validate()

    def test_main_rejects_missing_directory(self, tmp_path: Path, capsys: pytest.CaptureFixture):
        code = main(["--directory", str(tmp_path / "nope"), "--port", "0"])

        assert code == 1
        assert "Error:" in capsys.readouterr().err

    def test_version(self, capsys: pytest.CaptureFixture):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "rawhttp" in capsys.readouterr().out
