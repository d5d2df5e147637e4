"""Configuration models and loading for the migration tool."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError
from .models.migration import FieldMap

logger = logging.getLogger(__name__)


# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "WOO_URL": ("woo", "url"),
    "WOO_CONSUMER_KEY": ("woo", "consumer_key"),
    "WOO_CONSUMER_SECRET": ("woo", "consumer_secret"),
    "SWELL_STORE_ID": ("swell", "store_id"),
    "SWELL_SECRET_KEY": ("swell", "secret_key"),
    "DATA_DIR": ("paths", "data"),
    "IMAGES_DIR": ("paths", "images"),
}


class WooSettings(BaseModel):
    url: str = ""
    consumer_key: str = ""
    consumer_secret: str = ""
    version: str = "v3"
    timeout: float = 30.0


class SwellSettings(BaseModel):
    store_id: str = ""
    secret_key: str = ""
    base_url: str = "https://api.swell.store"
    timeout: float = 60.0


class PathSettings(BaseModel):
    data: str = "./data"
    images: Optional[str] = None


class MigrationSettings(BaseModel):
    """Top-level settings for a migration run."""
    woo: WooSettings = Field(default_factory=WooSettings)
    swell: SwellSettings = Field(default_factory=SwellSettings)
    paths: PathSettings = Field(default_factory=PathSettings)
    per_page: int = Field(default=100, ge=1, le=100)
    rate_limit: Optional[float] = None  # Requests per second
    max_retries: int = Field(default=3, ge=0)
    custom_fields: List[Dict[str, str]] = Field(default_factory=list)

    def validate_credentials(self) -> List[str]:
        """
        Validate that everything needed to reach both APIs is present.

        Returns:
            List of validation error messages
        """
        errors = []

        if not self.woo.url:
            errors.append("WooCommerce store URL is required (woo.url / WOO_URL)")
        if not self.woo.consumer_key:
            errors.append("WooCommerce consumer key is required (woo.consumer_key / WOO_CONSUMER_KEY)")
        if not self.woo.consumer_secret:
            errors.append("WooCommerce consumer secret is required (woo.consumer_secret / WOO_CONSUMER_SECRET)")
        if not self.swell.store_id:
            errors.append("Swell store ID is required (swell.store_id / SWELL_STORE_ID)")
        if not self.swell.secret_key:
            errors.append("Swell secret key is required (swell.secret_key / SWELL_SECRET_KEY)")
        if not self.paths.data:
            errors.append("Data directory is required (paths.data / DATA_DIR)")

        return errors


def _apply_env_overrides(data: Dict[str, Any], environ: Dict[str, str]) -> Dict[str, Any]:
    """Overlay environment variables on the file configuration."""
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            data.setdefault(section, {})[key] = value
    return data


def load_settings(
    path: Optional[str] = None,
    environ: Optional[Dict[str, str]] = None
) -> MigrationSettings:
    """
    Load and validate migration settings.

    Args:
        path: Optional JSON config file
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated settings with the data directory created

    Raises:
        ConfigurationError: If the file is unreadable, invalid, or a
            required credential is missing
    """
    data: Dict[str, Any] = {}

    if path:
        try:
            with open(path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    data = _apply_env_overrides(data, dict(os.environ) if environ is None else environ)

    try:
        settings = MigrationSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    errors = settings.validate_credentials()
    for item in settings.custom_fields:
        try:
            FieldMap.from_dict(item)
        except ValueError as e:
            errors.append(str(e))
    if errors:
        raise ConfigurationError("; ".join(errors))

    Path(settings.paths.data).mkdir(parents=True, exist_ok=True)
    logger.debug(f"Using data directory {settings.paths.data}")

    return settings
