import os
import re
from collections.abc import Mapping

from loguru import logger

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def environment_overlay(
    environment: str | None, environ: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Build the variable mapping used for substitution.

    Variables prefixed with the upper-cased environment name shadow their
    unprefixed counterparts, e.g. TEST_AZURE_RESOURCE_GROUP is visible as
    AZURE_RESOURCE_GROUP when loading for the "test" environment. The process
    environment is never modified.
    """
    base = dict(os.environ if environ is None else environ)
    if not environment:
        return base

    prefix = f"{environment.upper()}_"
    overrides = {
        name[len(prefix) :]: value
        for name, value in base.items()
        if name.startswith(prefix) and len(name) > len(prefix)
    }
    logger.info(
        f"Applying {len(overrides)} environment-specific overrides for {environment}"
    )
    logger.debug(f"Override keys: {sorted(overrides)}")
    base.update(overrides)
    return base


def substitute_env_vars(text: str, environ: Mapping[str, str] | None = None) -> str:
    """
    Substitute environment variable placeholders in text.

    Supports formats:
    - ${VAR_NAME} - required variable (raises error if missing)
    - ${VAR_NAME:-default} - optional with default value
    - ${VAR_NAME:?error_message} - required with custom error message
    """
    variables = os.environ if environ is None else environ

    def replacer(match: re.Match[str]) -> str:
        var_expr = match.group(1)

        # Handle default values: ${VAR:-default}
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return variables.get(var_name) or default

        # Handle error messages: ${VAR:?message}
        elif ":?" in var_expr:
            var_name, error_msg = var_expr.split(":?", 1)
            value = variables.get(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name}: {error_msg}")
            return value

        # Handle required variables: ${VAR}
        else:
            var_name = var_expr
            value = variables.get(var_name)
            if value is None:
                raise ValueError(f"Required environment variable {var_name} not set")
            return value

    return _PLACEHOLDER.sub(replacer, text)
