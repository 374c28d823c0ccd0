"""
Exceptions raised by the AIX object providers.
"""

from typing import Optional, Sequence


class AixObjectError(Exception):
    """Base exception for all AIX object operations."""
    pass


class ParseError(AixObjectError):
    """Command output does not follow the colon-separated stanza format."""
    pass


class ValidationError(AixObjectError, ValueError):
    """Declared values were rejected before any command was run."""
    pass


class ExecutionFailure(AixObjectError):
    """A native command exited with a nonzero status or reported a failure.

    Attributes:
        command: argv that was executed
        exitstatus: process exit status, if the process ran at all
        output: captured output of the command
    """

    def __init__(self, message: str, command: Optional[Sequence[str]] = None,
                 exitstatus: Optional[int] = None, output: str = ""):
        self.command = list(command) if command else []
        self.exitstatus = exitstatus
        self.output = output
        super().__init__(message)


class ProviderError(AixObjectError):
    """An operation on a single user or group failed.

    Attributes:
        kind: object kind ("user" or "group")
        name: object name
        detail: underlying error message
    """

    def __init__(self, message: str, kind: str, name: str, detail: str = ""):
        self.kind = kind
        self.name = name
        self.detail = detail
        super().__init__(message)
