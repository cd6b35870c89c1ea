"""Unit tests for XDG path management.

Tests for the paths module that provides XDG-compliant directory paths.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from qsysbridge.core.paths import (
    APP_NAME,
    ensure_certificate_dir,
    get_certificate_dir,
    get_config_dir,
    get_connections_path,
)


class TestGetConfigDir:
    """Tests for get_config_dir function."""

    def test_default_config_dir(self) -> None:
        """get_config_dir returns default path when XDG_CONFIG_HOME not set."""
        with patch.dict(os.environ, {}, clear=True):
            os.environ.pop("XDG_CONFIG_HOME", None)

            result = get_config_dir()

        assert result == Path.home() / ".config" / APP_NAME

    def test_respects_xdg_config_home(self, tmp_path: Path) -> None:
        """get_config_dir respects XDG_CONFIG_HOME environment variable."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            result = get_config_dir()

        assert result == tmp_path / APP_NAME


class TestConveniencePaths:
    """Tests for the file and directory helpers."""

    def test_get_connections_path(self, tmp_path: Path) -> None:
        """Connection settings live in the config directory."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            result = get_connections_path()

        assert result == tmp_path / APP_NAME / "connections.toml"

    def test_get_certificate_dir_sanitises_host(self, tmp_path: Path) -> None:
        """Unsafe host characters are replaced."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            result = get_certificate_dir("fe80::1%eth0")

        assert result == tmp_path / APP_NAME / "certs" / "fe80__1_eth0"


class TestEnsureDirs:
    """Tests for directory creation functions."""

    def test_ensure_certificate_dir_idempotent(self, tmp_path: Path) -> None:
        """ensure_certificate_dir can be called repeatedly."""
        with patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}):
            first = ensure_certificate_dir("ibmi.example.com")
            second = ensure_certificate_dir("ibmi.example.com")

        assert first == second
        assert first.is_dir()

    def test_ensure_dir_permission_error(self, tmp_path: Path) -> None:
        """Permission errors become RuntimeError."""
        with (
            patch.dict(os.environ, {"XDG_CONFIG_HOME": str(tmp_path)}),
            patch.object(Path, "mkdir", side_effect=PermissionError("denied")),
            pytest.raises(RuntimeError, match="Permission denied"),
        ):
            ensure_certificate_dir("ibmi.example.com")
