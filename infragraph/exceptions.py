"""
Exceptions raised by the infragraph core.
"""


class InfragraphError(Exception):
    """Base exception for all infragraph errors."""
    pass


class ParseError(InfragraphError, ValueError):
    """Raised when a document cannot be parsed or lacks a required block."""
    pass


class UnknownProviderError(InfragraphError, KeyError):
    """Raised when a provider id is not in the registry."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""
