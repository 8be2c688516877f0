"""Configuration loading with environment variable substitution."""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from capdeploy.runtime.config.config_data import Settings
from capdeploy.runtime.config.config_utils import (
    environment_overlay,
    substitute_env_vars,
)

CONFIG_PATH = Path("capdeploy.yaml")

# Used when the project carries no capdeploy.yaml: everything comes from the
# azd/CI environment variables the deployment scripts have always read.
DEFAULT_CONFIG = """\
config:
  azure:
    env_name: "${AZURE_ENV_NAME:-}"
    resource_group: "${AZURE_RESOURCE_GROUP:-}"
    registry_name: "${AZURE_ACR_NAME:-}"
    source_registry_name: "${AZURE_ACR_NAME_SRC:-}"
  changelog:
    source_repo: "${CAPDEPLOY_SOURCE_REPO:-}"
"""


def load_settings(
    file_path: Path | None = None,
    *,
    environment: str | None = None,
    dotenv_path: Path | None = None,
) -> Settings:
    """
    Load capdeploy settings from YAML with environment variable substitution.

    Args:
        file_path: Path to the YAML file. Defaults to ./capdeploy.yaml; when that
                   file does not exist the built-in DEFAULT_CONFIG is used.
        environment: Deployment environment whose `{ENV}_` prefixed variables
                     override unprefixed ones (defaults to CAPDEPLOY_ENVIRONMENT).
        dotenv_path: Optional .env file loaded before substitution. Existing
                     process variables are never overridden.

    Returns:
        Validated Settings

    Raises:
        ValueError: If a required variable is missing, the YAML is invalid,
                    the `config` key is absent, or validation fails
        FileNotFoundError: If an explicit file_path does not exist
    """
    if dotenv_path is not None and dotenv_path.exists():
        load_dotenv(dotenv_path, override=False)

    if file_path is None:
        content = CONFIG_PATH.read_text() if CONFIG_PATH.exists() else DEFAULT_CONFIG
        source = str(CONFIG_PATH) if CONFIG_PATH.exists() else "<defaults>"
    else:
        content = file_path.read_text()
        source = str(file_path)

    env_mode = environment or os.getenv("CAPDEPLOY_ENVIRONMENT")
    logger.info(f"Loading configuration from {source} (environment: {env_mode or '-'})")

    variables = environment_overlay(env_mode)
    content = substitute_env_vars(content, variables)

    try:
        loaded: dict[str, Any] | None = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    if not loaded:
        raise ValueError("Failed to parse YAML")
    if "config" not in loaded:
        raise ValueError("Invalid YAML structure: missing 'config' key")

    try:
        settings = Settings(**(loaded["config"] or {}))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

    logger.debug(
        f"Resolved registry={settings.azure.registry_name} "
        f"resource_group={settings.azure.resource_group}"
    )
    return settings
