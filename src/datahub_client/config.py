"""Configuration utilities for datahub_client.

This module loads client settings (API URL, token, owner profile) and
resolves project paths.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from datahub_client.core.exceptions import ConfigurationError


DEFAULT_API_URL = "https://api.datahub.io"
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "datahub" / "config.json"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Settings needed to talk to the DataHub API.

    Attributes:
        api_url: Base URL of the API.
        token: Long-lived user token.
        owner_id: Id of the logged-in user.
        owner: Username of the logged-in user.
        timeout: Request timeout in seconds.
        debug: Enable debug logging of requests and payloads.
    """

    api_url: str = DEFAULT_API_URL
    token: str | None = None
    owner_id: str | None = None
    owner: str | None = None
    timeout: float = 60.0
    debug: bool = False

    def require_token(self) -> str:
        """Return the token, or raise when the user is not logged in."""
        if not self.token:
            raise ConfigurationError(
                "No DataHub token configured. Log in or set DATAHUB_TOKEN"
            )
        return self.token


def _is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def load_config(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ClientConfig:
    """Load client settings from the config file and the environment.

    The config file (``~/.config/datahub/config.json`` unless ``path`` or
    ``DATAHUB_JSON`` says otherwise) has the shape
    ``{"api": ..., "token": ..., "profile": {"id": ..., "username": ...}}``.
    ``DATAHUB_API``, ``DATAHUB_TOKEN``, ``DATAHUB_OWNER_ID``,
    ``DATAHUB_OWNER`` and ``DATAHUB_DEBUG`` override the file.

    Args:
        path: Explicit config file path.
        env: Environment mapping. If None, uses os.environ.

    Returns:
        The resolved ClientConfig. A missing file yields defaults.

    Raises:
        ConfigurationError: If the config file exists but is not valid JSON.
    """
    if env is None:
        env = os.environ
    if path is None:
        path = Path(env["DATAHUB_JSON"]) if env.get("DATAHUB_JSON") else DEFAULT_CONFIG_PATH

    data: dict = {}
    if path.exists():
        try:
            with path.open() as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Couldn't read config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must hold a JSON object")

    profile = data.get("profile") or {}
    return ClientConfig(
        api_url=env.get("DATAHUB_API") or data.get("api") or DEFAULT_API_URL,
        token=env.get("DATAHUB_TOKEN") or data.get("token"),
        owner_id=env.get("DATAHUB_OWNER_ID") or profile.get("id"),
        owner=env.get("DATAHUB_OWNER") or profile.get("username"),
        timeout=float(data.get("timeout", 60.0)),
        debug=_is_truthy(env.get("DATAHUB_DEBUG")) or bool(data.get("debug", False)),
    )


def find_project_root(start: Path | None = None) -> Path:
    """Find the data package root by walking up from start directory.

    Searches for marker files in the following priority order:
    1. .datahub - Flow and push state directory
    2. datapackage.json - Data package descriptor
    3. .git - Version control root

    Args:
        start: Directory to start searching from. If None, uses current directory.

    Returns:
        Path to project root directory. Returns start directory if no markers found.

    Example:
        >>> from datahub_client.config import find_project_root
        >>> root = find_project_root()
        >>> flow = root / ".datahub" / "flow.yaml"
    """
    if start is None:
        start = Path.cwd()

    markers = [".datahub", "datapackage.json", ".git"]
    current = start.resolve()

    for parent in [current, *current.parents]:
        for marker in markers:
            if (parent / marker).exists():
                return parent

    return start.resolve()
