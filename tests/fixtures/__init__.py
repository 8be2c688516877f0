"""Shared test fixtures."""

from .azure import *  # noqa: F401,F403
