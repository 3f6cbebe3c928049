"""
Custom exceptions for AccessVision
"""

__all__ = [
    "AccessVisionError",
    "ConfigurationError",
    "ValidationError",
    "DeviceUnavailableError",
    "AnalysisError",
]


class AccessVisionError(Exception):
    """Base exception for all AccessVision errors"""
    pass


class ConfigurationError(AccessVisionError):
    """Configuration error"""
    pass


class ValidationError(AccessVisionError):
    """Invalid settings value"""
    pass


class DeviceUnavailableError(AccessVisionError):
    """Capture or speech hardware denied or missing.

    ``reason`` is the message shown to the user.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class AnalysisError(AccessVisionError):
    """Analysis service failure (absorbed by the analysis client)"""
    pass
