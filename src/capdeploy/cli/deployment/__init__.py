"""Deployment engine for Azure Container Apps services."""
