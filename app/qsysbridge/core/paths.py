"""XDG-compliant path management for qsysbridge.

XDG default: ~/.config/qsysbridge/ (connection settings and debug
certificates).
"""

import os
import re
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "qsysbridge"

# Remote and workspace roots for connection-scoped JSON configuration
WORKSPACE_CONFIG_ROOT = ".vscode"
SERVER_CONFIG_ROOT = "/etc/.vscode"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/qsysbridge/ (or XDG_CONFIG_HOME/qsysbridge/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_connections_path() -> Path:
    """Get the connection settings file path.

    Returns:
        Path to ~/.config/qsysbridge/connections.toml.
    """
    return get_config_dir() / "connections.toml"


def get_certificate_dir(host: str) -> Path:
    """Get the local debug certificate directory for a host.

    Host names are reduced to a filesystem-safe form.

    Args:
        host: Remote host name.

    Returns:
        Path to ~/.config/qsysbridge/certs/<host>/.
    """
    safe = re.sub(r"[^A-Za-z0-9._-]", "_", host) or "default"
    return get_config_dir() / "certs" / safe


def _ensure_dir(path: Path, name: str) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_certificate_dir(host: str) -> Path:
    """Create the certificate directory for a host if it doesn't exist.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_certificate_dir(host), "certificate")
