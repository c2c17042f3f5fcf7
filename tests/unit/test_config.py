"""
Unit tests for configuration loading and validation.
"""

import os
from pathlib import Path

import pytest

from fileserver.config import ConfigError, ServerConfig


def _write(path: Path, text: str) -> Path:
    path.write_text(text)
    return path


class TestFromFile:

    def test_load(self, tmp_path: Path, doc_root: Path):
        path = _write(tmp_path / "config.yaml", (
            "host: 0.0.0.0\n"
            'port: "9090"\n'
            f"root: {doc_root}\n"
            "username: admin\n"
            "password: secret\n"
        ))
        config = ServerConfig.from_file(path)

        assert config.host == "0.0.0.0"
        assert config.port == 9090
        assert config.root == str(doc_root)
        assert config.username == "admin"
        assert config.password == "secret"
        config.validate()

    def test_defaults(self, tmp_path: Path, doc_root: Path):
        config = ServerConfig.from_file(_write(tmp_path / "c.yaml", f"root: {doc_root}\n"))

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.threaded is False
        assert config.username is None

    def test_root_is_canonicalized(self, tmp_path: Path, doc_root: Path):
        (tmp_path / "alias").symlink_to(doc_root)
        config = ServerConfig.from_file(
            _write(tmp_path / "c.yaml", f"root: {tmp_path / 'alias' / 'sub' / '..'}\n")
        )

        assert config.root == str(doc_root)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Could not read"):
            ServerConfig.from_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = _write(tmp_path / "c.yaml", "root: [unclosed\n")

        with pytest.raises(ConfigError, match="Could not parse YAML"):
            ServerConfig.from_file(path)

    def test_not_a_mapping(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="mapping"):
            ServerConfig.from_file(_write(tmp_path / "c.yaml", "- a\n- b\n"))

    def test_missing_root(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="root"):
            ServerConfig.from_file(_write(tmp_path / "c.yaml", "port: 80\n"))

    def test_unknown_keys_ignored(self, tmp_path: Path, doc_root: Path):
        config = ServerConfig.from_file(
            _write(tmp_path / "c.yaml", f"root: {doc_root}\ncolour: blue\n")
        )
        assert not hasattr(config, "colour")

    def test_bad_port_type(self, tmp_path: Path, doc_root: Path):
        with pytest.raises(ConfigError, match="port"):
            ServerConfig.from_file(
                _write(tmp_path / "c.yaml", f"root: {doc_root}\nport: http\n")
            )


class TestValidate:

    def test_root_must_exist(self, tmp_path: Path):
        config = ServerConfig(root=str(tmp_path / "missing"))

        with pytest.raises(ConfigError, match="not a directory"):
            config.validate()

    def test_root_must_be_directory(self, doc_root: Path):
        config = ServerConfig(root=str(doc_root / "a.txt"))

        with pytest.raises(ConfigError):
            config.validate()

    @pytest.mark.parametrize("overrides", [
        {"port": 70000},
        {"port": -1},
        {"timeout": 0},
        {"backlog": 0},
        {"log_level": "CHATTY"},
    ])
    def test_invalid_values(self, doc_root: Path, overrides: dict):
        config = ServerConfig(root=str(doc_root), **overrides)

        with pytest.raises(ConfigError):
            config.validate()

    def test_ephemeral_port_allowed(self, doc_root: Path):
        ServerConfig(root=str(doc_root), port=0).validate()

    def test_frozen(self, doc_root: Path):
        config = ServerConfig(root=str(doc_root))

        with pytest.raises(AttributeError):
            config.port = 1

    def test_relative_root(self, doc_root: Path, monkeypatch):
        monkeypatch.chdir(doc_root)
        config = ServerConfig(root="sub")

        assert config.root == os.path.join(str(doc_root), "sub")


class TestThreadedFlag:

    @pytest.mark.parametrize("text, expected", [
        ("true", True),
        ("false", False),
        ('"false"', False),
        ('"True"', True),
        ('"no"', False),
        ('"1"', True),
    ])
    def test_coerced_to_bool(self, tmp_path: Path, doc_root: Path, text: str, expected: bool):
        config = ServerConfig.from_file(
            _write(tmp_path / "c.yaml", f"root: {doc_root}\nthreaded: {text}\n")
        )
        assert config.threaded is expected

    @pytest.mark.parametrize("text", ['"maybe"', "2", "[true]"])
    def test_rejects_non_bool(self, tmp_path: Path, doc_root: Path, text: str):
        with pytest.raises(ConfigError, match="threaded"):
            ServerConfig.from_file(
                _write(tmp_path / "c.yaml", f"root: {doc_root}\nthreaded: {text}\n")
            )


class TestRequestLimits:

    def test_defaults(self, doc_root: Path):
        config = ServerConfig(root=str(doc_root))

        assert config.max_headers == 100
        assert config.max_request_size == 64 * 1024

    def test_from_yaml(self, tmp_path: Path, doc_root: Path):
        config = ServerConfig.from_file(_write(tmp_path / "c.yaml", (
            f"root: {doc_root}\n"
            "max_headers: 20\n"
            'max_request_size: "16384"\n'
        )))

        assert config.max_headers == 20
        assert config.max_request_size == 16384
        config.validate()

    @pytest.mark.parametrize("overrides", [
        {"max_headers": 0},
        {"max_request_size": 1024},
    ])
    def test_invalid_limits(self, doc_root: Path, overrides: dict):
        with pytest.raises(ConfigError):
            ServerConfig(root=str(doc_root), **overrides).validate()
