"""
Errors raised by external collaborators.
"""

from typing import Any, Dict, Optional


class ProviderError(Exception):
    """
    A collaborator rejected a request or returned something unusable.

    ``payload`` holds the provider's raw response details. Services log it
    and never pass it on to API callers.
    """

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}
