"""
Exception hierarchy for the owcs analyzer.

Extraction errors (MalformedRegistration, UnresolvedSymbol, UnparsableConfig)
never abort an analysis pass: they are raised where the problem is detected
and caught by the phase that owns the affected item, which logs them and
skips that item. ConfigError is a user error and reaches the CLI.
"""


class OwcsError(Exception):
    """Base exception for all owcs errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} ({self.details})"
        return self.message


class ConfigError(OwcsError):
    """Invalid owcs configuration file or option."""


class MalformedRegistration(OwcsError):
    """A registration call is missing a literal tag name or an implementation."""


class UnresolvedSymbol(OwcsError):
    """An implementation declaration could not be found."""


class UnparsableConfig(OwcsError):
    """A build configuration file exists but does not match a known pattern."""
