"""Exceptions raised by deployment operations."""


class DeploymentError(Exception):
    """Raised when a deployment operation fails."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ConfigurationError(DeploymentError):
    """Required configuration is missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None):
        self.missing = list(missing or [])
        details = None
        if self.missing:
            details = "Missing required environment variables:\n" + "\n".join(
                f"  - {name}" for name in self.missing
            )
        super().__init__(message, details)


class BindingGrantFailure(DeploymentError):
    """The AcrPull grant or the registry binding call failed."""


class ImportFailure(DeploymentError):
    """Copying an image into the target registry failed."""


def format_context(**context: object) -> str:
    """Render keyword context as aligned `key: value` lines for error details."""
    items = [(key, value) for key, value in context.items() if value not in (None, "")]
    if not items:
        return ""
    width = max(len(key) for key, _ in items)
    return "\n".join(f"{key.ljust(width)}  {value}" for key, value in items)
