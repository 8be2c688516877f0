"""capdeploy - image reconciliation for Azure Container Apps environments."""

__version__ = "0.1.0"
