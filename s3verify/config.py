"""Configuration loading for the S3 conformance tester.

Settings are resolved from three sources, highest priority first:
1. Command-line flags
2. Environment variables (for CI/CD)
3. config.json file (for local development)

Environment Variables:
    S3_URL=https://play.min.io
    S3_ACCESS=your-access-key
    S3_SECRET=your-secret-key
    S3_REGION=us-east-1              (optional)
    S3_ADDRESSING_STYLE=path         (optional, path or virtual)
    S3_FIXTURES=fixtures.json        (optional)

config.json:
    {
        "endpoint_url": "https://play.min.io",
        "access_key": "...",
        "secret_key": "...",
        "region_name": "us-east-1",
        "addressing_style": "path",
        "fixtures": "fixtures.json"
    }
"""

import json
import os
from pathlib import Path
from typing import Any, Optional

from s3verify.models import ServerSettings


class ConfigError(Exception):
    """Raised when configuration loading fails."""

    pass


# Settings field -> environment variable
ENV_VARS = {
    "endpoint_url": "S3_URL",
    "access_key": "S3_ACCESS",
    "secret_key": "S3_SECRET",
    "region_name": "S3_REGION",
    "addressing_style": "S3_ADDRESSING_STYLE",
    "fixtures_path": "S3_FIXTURES",
}

# Settings field -> config.json key
JSON_KEYS = {
    "endpoint_url": "endpoint_url",
    "access_key": "access_key",
    "secret_key": "secret_key",
    "region_name": "region_name",
    "addressing_style": "addressing_style",
    "fixtures_path": "fixtures",
}

REQUIRED_FIELDS = ["endpoint_url", "access_key", "secret_key"]

ADDRESSING_STYLES = ("path", "virtual")


def load_from_json(config_path: str) -> dict[str, Any]:
    """Load settings from a JSON file.

    Args:
        config_path: Path to the config.json file.

    Returns:
        Dictionary of settings fields present in the file.

    Raises:
        ConfigError: If the file doesn't exist or contains invalid JSON.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a JSON object")

    return {
        field: data[key]
        for field, key in JSON_KEYS.items()
        if data.get(key) not in (None, "")
    }


def load_from_env() -> dict[str, Any]:
    """Load settings from S3_* environment variables."""
    return {
        field: os.environ[var]
        for field, var in ENV_VARS.items()
        if os.environ.get(var)
    }


def load_settings(
    config_path: str = "config.json",
    overrides: Optional[dict[str, Any]] = None,
) -> ServerSettings:
    """Resolve server settings with flag > environment > file priority.

    Args:
        config_path: Path to config.json (optional; skipped if absent).
        overrides: Values from command-line flags; None values are ignored.

    Returns:
        The resolved ServerSettings.

    Raises:
        ConfigError: If a required setting is missing or a value is invalid.
    """
    values: dict[str, Any] = {}

    if Path(config_path).exists():
        values.update(load_from_json(config_path))

    values.update(load_from_env())

    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    missing = [field for field in REQUIRED_FIELDS if not values.get(field)]
    if missing:
        raise ConfigError(
            f"Missing required setting(s): {', '.join(missing)}. Pass --url, "
            "--access and --secret, set S3_URL, S3_ACCESS and S3_SECRET, "
            "or create a config.json file."
        )

    style = values.get("addressing_style", "path")
    if style not in ADDRESSING_STYLES:
        raise ConfigError(f"Invalid addressing style '{style}'. Expected: path or virtual")

    endpoint = values["endpoint_url"]
    if not endpoint.startswith(("http://", "https://")):
        raise ConfigError(f"Endpoint URL must start with http:// or https://: {endpoint}")

    return ServerSettings(**values)
