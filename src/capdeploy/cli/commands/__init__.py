"""CLI command modules.

Command Groups:
- deploy: Fast-path deployment of one service
- promote / release-notes: Cross-environment image promotion
- resolve / validate-binding: Configured image maintenance
- status: Read-only service status
"""

from .deploy import deploy
from .images import resolve, validate_binding
from .promote import promote, release_notes
from .status import status

__all__ = [
    "deploy",
    "promote",
    "release_notes",
    "resolve",
    "status",
    "validate_binding",
]
