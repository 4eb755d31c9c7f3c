"""
Exception hierarchy for the AcePrep backend.

Every domain error carries a human-readable message, a machine-readable
error_code and the HTTP status the API answers with. The FastAPI app turns
any AcePrepError into ``{"error": message}``.
"""

from typing import Any, Dict, Optional


class AcePrepError(Exception):
    """Base exception for all AcePrep domain errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.context = context or {}
        super().__init__(message)


class MaterialError(AcePrepError):
    """Missing, too short or unreadable study material. User-correctable."""

    def __init__(self, message: str, error_code: str = "MATERIAL_INVALID"):
        super().__init__(message, error_code=error_code, status_code=400)


class ToolAccessError(AcePrepError):
    """Tool requested from a tier that does not include it."""

    def __init__(self, tool: str):
        super().__init__(f"{tool} is Pro-only.", error_code="TOOL_RESTRICTED", status_code=403, context={"tool": tool})


class RateLimitError(AcePrepError):
    def __init__(self, message: str = "Too many requests. Try again in a minute."):
        super().__init__(message, error_code="RATE_LIMITED", status_code=429)


class ConfigurationError(AcePrepError):
    """Missing backend credentials or invalid settings. Fatal, never retried."""

    def __init__(self, message: str):
        super().__init__(message, error_code="CONFIGURATION_ERROR", status_code=500)


class GenerationError(AcePrepError):
    """A single call to the text-generation backend failed."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="GENERATION_FAILED", status_code=502, context=context)
