"""Gateway factory and configuration management."""

import copy
import os
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from tokenbook.core.gateway.base import TokenGateway
from tokenbook.core.session import SessionContext
from tokenbook.exceptions import AuthenticationError

CONFIG_DIR = Path("~/.config/tokenbook").expanduser()
CONFIG_FILE = CONFIG_DIR / "config.toml"

GATEWAY_TYPES = ("http", "local")

DEFAULT_CONFIG: dict[str, Any] = {
    "gateway": "http",
    "log_level": "WARNING",
    "http": {
        "base_url": "http://localhost:3000",
        "timeout": 30.0,
    },
    "local": {
        "data_dir": "~/.config/tokenbook",
    },
}


def get_config() -> dict[str, Any]:
    """Load configuration from config file.

    Returns default config if file doesn't exist or can't be parsed.
    Tables in the file are merged over the default tables.
    """
    merged = copy.deepcopy(DEFAULT_CONFIG)
    if not CONFIG_FILE.exists():
        return merged

    try:
        with open(CONFIG_FILE, "rb") as f:
            config = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError):
        return merged

    for key, value in config.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    with open(CONFIG_FILE, "wb") as f:
        tomli_w.dump(config, f)

    os.chmod(CONFIG_FILE, 0o600)


def get_gateway(
    session: SessionContext | None, gateway_type: str | None = None
) -> TokenGateway:
    """Get the configured token gateway for a session.

    Args:
        session: The signed-in session; its credential authenticates calls.
        gateway_type: Override gateway type. If None, uses config file.

    Returns:
        TokenGateway instance.

    Raises:
        ValueError: If gateway type is unknown.
        AuthenticationError: If the HTTP gateway is requested without a session.
    """
    from tokenbook.core.gateway.http import HttpGateway
    from tokenbook.core.gateway.local import LocalGateway

    config = get_config()

    if gateway_type is None:
        gateway_type = config.get("gateway", "http")

    if gateway_type == "http":
        if session is None:
            raise AuthenticationError("Not signed in")
        http_config = config.get("http", {})
        return HttpGateway(
            base_url=http_config.get("base_url", "http://localhost:3000"),
            credential=session.credential,
            timeout=float(http_config.get("timeout", 30.0)),
        )

    elif gateway_type == "local":
        local_config = config.get("local", {})
        data_dir = local_config.get("data_dir", "~/.config/tokenbook")
        return LocalGateway(session=session, data_dir=data_dir)

    else:
        raise ValueError(
            f"Unknown gateway type: {gateway_type}. Supported gateways: http, local"
        )
